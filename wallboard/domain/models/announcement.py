from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TickerLevel(StrEnum):
    INFO = "info"
    WARN = "warn"
    CRITICAL = "critical"

    @classmethod
    def coerce(cls, value: Any) -> "TickerLevel":
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            return cls.INFO


@dataclass(slots=True, frozen=True)
class TickerMessage:
    message: str
    level: TickerLevel = TickerLevel.INFO

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "level": self.level.value}
