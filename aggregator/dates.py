"""Provider date/time strings to canonical ``YYYY-MM-DD`` / ``HH:MM``."""

from __future__ import annotations

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_CLOCK_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?(?::\d{2})?\s*([AaPp][Mm])?\s*$")


def normalize_time(raw: str | None) -> str:
    """``"19:30:00"``, ``"7:30 PM"`` or ``"7pm"`` to ``"19:30"``; ``""`` if unknown."""
    if not raw:
        return ""
    m = _CLOCK_RE.match(raw)
    if not m:
        raise ValueError(f"unrecognised time {raw!r}")
    hours, minutes, meridiem = int(m.group(1)), int(m.group(2) or 0), m.group(3)
    if meridiem:
        if not 1 <= hours <= 12:
            raise ValueError(f"unrecognised time {raw!r}")
        hours = hours % 12 + (12 if meridiem.lower() == "pm" else 0)
    if hours > 23 or minutes > 59:
        raise ValueError(f"unrecognised time {raw!r}")
    return f"{hours:02d}:{minutes:02d}"


def normalize_date(raw: str) -> str:
    """Validate and return a ``YYYY-MM-DD`` string (leading part of *raw*)."""
    return date.fromisoformat(raw[:10]).isoformat()


def parse_iso(raw: str) -> datetime:
    """``datetime.fromisoformat`` that also accepts a trailing ``Z``."""
    return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))


def split_datetime(raw: str, tz_name: str | None = None) -> tuple[str, str]:
    """Split an ISO-8601 timestamp into canonical date and time.

    Timestamps with an offset are converted to *tz_name* when given, else
    kept in their own offset (the venue's local time for most providers).
    A date-only value yields an empty time.
    """
    raw = raw.strip()
    if len(raw) == 10:
        return normalize_date(raw), ""
    dt = parse_iso(raw)
    if tz_name and dt.tzinfo is not None:
        try:
            dt = dt.astimezone(ZoneInfo(tz_name))
        except ZoneInfoNotFoundError:
            pass
    return dt.date().isoformat(), f"{dt.hour:02d}:{dt.minute:02d}"
