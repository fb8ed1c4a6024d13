from __future__ import annotations

import logging
from collections.abc import Callable

from wallboard.application.ports import ChangeHandler
from wallboard.domain.events import ResourceChanged
from wallboard.domain.models.resources import WatchedResource

log = logging.getLogger(__name__)


class ChangeEventBus:
    """Per-resource change notifications with one uniform subscribe call.

    Handlers run synchronously on the dispatching loop. A failing handler is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[WatchedResource, list[ChangeHandler]] = {}

    def subscribe(self, resource: WatchedResource, handler: ChangeHandler) -> Callable[[], None]:
        handlers = self._handlers.setdefault(resource, [])
        handlers.append(handler)
        log.debug("Change bus subscribe resource=%s handlers=%s", resource.value, len(handlers))

        def unsubscribe() -> None:
            current = self._handlers.get(resource)
            if not current or handler not in current:
                return
            current.remove(handler)
            if not current:
                del self._handlers[resource]
            log.debug("Change bus unsubscribe resource=%s", resource.value)

        return unsubscribe

    def dispatch(self, event: ResourceChanged) -> None:
        handlers = list(self._handlers.get(event.resource, ()))
        log.debug(
            "Change bus dispatch resource=%s version=%s handlers=%s",
            event.resource.value,
            event.version,
            len(handlers),
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                log.exception("Change handler failed resource=%s", event.resource.value)

    def handler_count(self, resource: WatchedResource | None = None) -> int:
        if resource is not None:
            return len(self._handlers.get(resource, ()))
        return sum(len(items) for items in self._handlers.values())
