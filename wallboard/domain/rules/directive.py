from __future__ import annotations

import re
from dataclasses import dataclass

_HIGHLIGHT_DIRECTIVE = re.compile(r"^\s*\[HIGHLIGHT_JOB:([a-f0-9\-]+)\]\s*", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class ParsedAnnouncement:
    highlight_id: str | None
    text: str | None


def parse_announcement(message: str | None) -> ParsedAnnouncement:
    """Split a leading ``[HIGHLIGHT_JOB:<id>]`` directive from ticker text.

    Only a directive at the start of the message is recognised. ``text`` is
    None when nothing but whitespace remains.
    """
    raw = message or ""
    highlight_id: str | None = None
    match = _HIGHLIGHT_DIRECTIVE.match(raw)
    if match:
        highlight_id = match.group(1)
        raw = raw[match.end():]
    text = raw.strip()
    return ParsedAnnouncement(highlight_id=highlight_id, text=text or None)
