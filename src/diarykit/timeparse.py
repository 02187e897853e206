from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from ._util import _now_local
from .errors import TimeParseError


def _with_local_tz(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=_now_local().tzinfo)
    return dt.astimezone()


_RELATIVE = re.compile(r"(\d+)\s*(week|weeks|day|days|hour|hours|minute|minutes)\s*ago")
_DAYWORD = re.compile(r"(today|yesterday|tomorrow)(?:\s+(.+))?")


def parse_dt(value: str | None) -> datetime:
    """
    Parse flexible user time into an aware local datetime.
    Accepts:
      - None / blank -> now
      - ISO 8601 (with or without tz; naive assumed local), date-only "2026-02-25"
      - "7:34am", "7:34 am", "19:34", "7am"
      - "2026-02-25 7:34am", "2026-02-25 19:34", "2026/02/25"
      - relative: "2 weeks ago", "3 days ago", "2 hours ago", "15 minutes ago"
      - keywords: "today", "yesterday 9am", "tomorrow 7pm"
    Raises TimeParseError for anything else.
    """
    now = _now_local()
    if not value or not value.strip():
        return now.replace(microsecond=0)

    raw = value.strip()
    s = raw.lower()

    try:
        return _with_local_tz(datetime.fromisoformat(raw)).replace(microsecond=0)
    except ValueError:
        pass

    m = _RELATIVE.fullmatch(s)
    if m:
        n = int(m.group(1))
        unit = m.group(2)
        if unit.startswith("week"):
            delta = timedelta(weeks=n)
        elif unit.startswith("day"):
            delta = timedelta(days=n)
        elif unit.startswith("hour"):
            delta = timedelta(hours=n)
        else:
            delta = timedelta(minutes=n)
        return (now - delta).replace(microsecond=0)

    m = _DAYWORD.fullmatch(s)
    if m:
        base = now
        if m.group(1) == "yesterday":
            base = now - timedelta(days=1)
        elif m.group(1) == "tomorrow":
            base = now + timedelta(days=1)
        rest = m.group(2)
        if not rest:
            return base.replace(microsecond=0)
        try:
            return _parse_time_only(rest, base)
        except ValueError:
            raise TimeParseError(value) from None

    dt_formats = [
        "%Y-%m-%d %I:%M%p",
        "%Y-%m-%d %I:%M %p",
        "%Y-%m-%d %I%p",
        "%Y-%m-%d %H:%M",
        "%Y/%m/%d %I:%M%p",
        "%Y/%m/%d %I:%M %p",
        "%Y/%m/%d %H:%M",
        "%Y/%m/%d",
    ]
    for fmt in dt_formats:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=now.tzinfo)
        except ValueError:
            continue

    try:
        return _parse_time_only(raw, now)
    except ValueError:
        pass

    raise TimeParseError(value)


def parse_ts(value: str | None) -> str:
    """Same as parse_dt, as an ISO string with seconds precision."""
    return parse_dt(value).isoformat(timespec="seconds")


def parse_day(value: str | None) -> date:
    return parse_dt(value).date()


def _parse_time_only(time_str: str, base_dt: datetime) -> datetime:
    """
    Parse a time like '9am', '7:34am', '14:30' and apply it to base_dt's date.
    Returns timezone-aware datetime (base_dt tz).
    """
    s = time_str.strip().lower()

    t_formats = [
        "%I:%M%p",
        "%I:%M %p",
        "%I%p",
        "%H:%M",
    ]
    for fmt in t_formats:
        try:
            t = datetime.strptime(s, fmt)
            return base_dt.replace(hour=t.hour, minute=t.minute, second=0, microsecond=0)
        except ValueError:
            continue

    raise ValueError(f"Could not parse time-only value: {time_str!r}")
