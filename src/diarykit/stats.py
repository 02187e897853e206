"""Derived statistics over a record list.

Plain functions, recomputed on every call.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, NamedTuple

from ._util import _day_of, _now_local
from .categories import UNCATEGORIZED
from .entities import EntityType
from .query import DateWindow, Query, filter_records

KeyFunc = Callable[[dict[str, Any]], Any]


def _key_func(key: str | KeyFunc) -> KeyFunc:
    if callable(key):
        return key
    return lambda r: r.get(key)


def frequency_table(records: Iterable[dict[str, Any]], key: str | KeyFunc) -> list[tuple[str, int]]:
    """
    Count records per key value, most frequent first.
    List values (tags) count once per element. Empty values are skipped.
    Ties keep the order in which the values were first seen.
    """
    get = _key_func(key)
    counts: dict[str, int] = {}
    for r in records:
        value = get(r)
        if isinstance(value, (set, frozenset)):
            # no insertion order to keep
            values = sorted(value, key=str)
        elif isinstance(value, (list, tuple)):
            values = value
        else:
            values = [value]
        for v in values:
            if v is None:
                continue
            label = str(v).strip()
            if not label:
                continue
            counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items(), key=lambda x: -x[1])


def shares(counts: Iterable[tuple[str, int]]) -> dict[str, float]:
    """Fraction of the total per label; all zeros when the total is zero."""
    pairs = list(counts)
    total = sum(c for _, c in pairs)
    if total <= 0:
        return {label: 0.0 for label, _ in pairs}
    return {label: c / total for label, c in pairs}


def category_distribution(
    records: Iterable[dict[str, Any]],
    category_names: Iterable[str],
    field_name: str,
) -> list[tuple[str, int]]:
    """
    Records per known category, plus an "Uncategorized" bucket for records
    with no category or one that has since been deleted. Names match ignoring
    case and are reported in their stored spelling; a stored category that is
    itself called "Uncategorized" shares the bucket.
    """
    counts: dict[str, int] = {}
    by_key: dict[str, str] = {}
    for name in category_names:
        key = name.strip().casefold()
        if key == UNCATEGORIZED.casefold() or key in by_key:
            continue
        by_key[key] = name
        counts[name] = 0
    uncategorized = 0
    for r in records:
        value = r.get(field_name)
        name = by_key.get(value.strip().casefold()) if isinstance(value, str) else None
        if name is None:
            uncategorized += 1
        else:
            counts[name] += 1
    dist = list(counts.items())
    if uncategorized:
        dist.append((UNCATEGORIZED, uncategorized))
    return sorted(dist, key=lambda x: -x[1])


def outcome_summary(records: Iterable[dict[str, Any]], entity: EntityType) -> dict[str, int]:
    """Records per status, with every declared status present (e.g. win/loss/draw)."""
    out = {s: 0 for s in entity.statuses}
    for label, c in frequency_table(records, entity.status_of):
        out[label] = out.get(label, 0) + c
    return out


# -------------------------
# Calendar helpers
# -------------------------

class Streaks(NamedTuple):
    current: int
    longest: int


def streaks(days: Iterable[date], today: date | None = None) -> Streaks:
    """
    Current and longest runs of consecutive calendar days.

    The current run counts back from `today`; if today has no record the
    current streak is 0. Days after `today` are ignored.
    """
    today = today or _now_local().date()
    day_set = {d for d in days if d <= today}
    if not day_set:
        return Streaks(0, 0)

    longest = 0
    for d in day_set:
        if d - timedelta(days=1) in day_set:
            continue
        run = 1
        while d + timedelta(days=run) in day_set:
            run += 1
        longest = max(longest, run)

    current = 0
    cursor = today
    while cursor in day_set:
        current += 1
        cursor -= timedelta(days=1)

    return Streaks(current, longest)


def days_with_records(records: Iterable[dict[str, Any]], entity: EntityType) -> set[date]:
    out: set[date] = set()
    for r in records:
        day = _day_of(entity.date_of(r))
        if day is not None:
            out.add(day)
    return out


def has_record_on(day_set: set[date], day: date) -> bool:
    return day in day_set


def month_grid(day_set: set[date], year: int, month: int) -> list[list[tuple[date, bool] | None]]:
    """Weeks (Monday first) of (day, has_record) cells; None pads outside the month."""
    weeks: list[list[tuple[date, bool] | None]] = []
    for week in calendar.Calendar(firstweekday=0).monthdatescalendar(year, month):
        weeks.append([(d, d in day_set) if d.month == month else None for d in week])
    return weeks


def monthly_counts(records: Iterable[dict[str, Any]], entity: EntityType) -> list[tuple[str, int]]:
    counts: dict[str, int] = {}
    for r in records:
        day = _day_of(entity.date_of(r))
        if day is None:
            continue
        label = f"{day.year:04d}-{day.month:02d}"
        counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items())


def created_in_window(
    records: Iterable[dict[str, Any]],
    entity: EntityType,
    window: DateWindow,
    now: datetime | None = None,
) -> int:
    return len(filter_records(records, entity, Query(window=window), now))


def average_per_day(records: Iterable[dict[str, Any]], entity: EntityType, today: date | None = None) -> float:
    """Records per day since the first one (at least one day)."""
    rows = list(records)
    days = [d for d in (_day_of(entity.date_of(r)) for r in rows) if d is not None]
    if not days:
        return 0.0
    today = today or _now_local().date()
    span = max((today - min(days)).days, 1)
    return len(rows) / span


# -------------------------
# Numeric scores
# -------------------------

def daily_averages(records: Iterable[dict[str, Any]], entity: EntityType) -> list[tuple[date, float, int]]:
    """(day, average score, entries) for each day that has a numeric score."""
    if entity.score_field is None:
        return []
    by_day: dict[date, list[float]] = {}
    for r in records:
        s = r.get(entity.score_field)
        if isinstance(s, bool) or not isinstance(s, (int, float)):
            continue
        day = _day_of(entity.date_of(r))
        if day is None:
            continue
        by_day.setdefault(day, []).append(float(s))
    return [(d, sum(v) / len(v), len(v)) for d, v in sorted(by_day.items())]


@dataclass(frozen=True)
class Trend:
    slope: float
    direction: str
    net: float


def trend(values: list[float], epsilon: float = 0.05) -> Trend:
    """Least-squares slope per step, labelled against `epsilon`."""
    n = len(values)
    if n < 2:
        return Trend(0.0, "→ stable (not enough data)", 0.0)

    xs = list(range(n))
    x_mean = sum(xs) / n
    y_mean = sum(values) / n
    num = sum((x - x_mean) * (y - y_mean) for x, y in zip(xs, values))
    den = sum((x - x_mean) ** 2 for x in xs)
    slope = (num / den) if den else 0.0

    if slope > epsilon:
        direction = "↑ increasing"
    elif slope < -epsilon:
        direction = "↓ decreasing"
    else:
        direction = "→ stable"
    return Trend(slope, direction, values[-1] - values[0])


def sparkline(values: list[float], vmin: float = 1.0, vmax: float = 10.0) -> str:
    if not values:
        return ""
    blocks = "▁▂▃▄▅▆▇█"
    span = max(1e-9, vmax - vmin)
    out = []
    for v in values:
        x = (v - vmin) / span
        idx = int(round(x * (len(blocks) - 1)))
        idx = max(0, min(len(blocks) - 1, idx))
        out.append(blocks[idx])
    return "".join(out)
