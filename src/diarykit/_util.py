"""Shared low-level time helpers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _now_iso() -> str:
    return _now_local().isoformat(timespec="seconds")


def _fmt_time(dt: datetime) -> str:
    # Windows-safe formatting
    try:
        return dt.strftime("%-I:%M %p")
    except ValueError:
        return dt.strftime("%I:%M %p").lstrip("0")


def _dt_from_entry_ts(ts: Any) -> datetime | None:
    """Timestamp field value -> aware local datetime, or None if unusable."""
    if isinstance(ts, datetime):
        dt = ts
    else:
        try:
            dt = datetime.fromisoformat(str(ts))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_now_local().tzinfo)
    return dt.astimezone()


def _day_of(ts: Any) -> date | None:
    dt = _dt_from_entry_ts(ts)
    return dt.date() if dt else None
