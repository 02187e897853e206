"""Filtering and sorting over a record list.

Every call works on the records it is given and returns a new list; nothing
is cached between calls. Sorting is stable, so records with equal keys keep
their insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable

from ._util import _dt_from_entry_ts, _now_local
from .entities import EntityType

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class DateWindow(str, Enum):
    ALL = "all"
    TODAY = "today"
    LAST_7_DAYS = "7"
    LAST_30_DAYS = "30"
    THIS_MONTH = "month"
    CUSTOM = "custom"


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_ASC = "title"
    TITLE_DESC = "title-desc"
    MAGNITUDE_DESC = "magnitude"
    COUNT_DESC = "count"
    CATEGORY = "category"


@dataclass(frozen=True)
class Query:
    search: str = ""
    window: DateWindow = DateWindow.ALL
    start: date | None = None
    end: date | None = None
    status: str | None = None
    categories: frozenset[str] = field(default_factory=frozenset)
    tags: frozenset[str] = field(default_factory=frozenset)
    sort: SortOrder = SortOrder.NEWEST

    def is_filtering(self) -> bool:
        return bool(
            self.search.strip()
            or self.window is not DateWindow.ALL
            or self.status is not None
            or self.categories
            or self.tags
        )

    def with_changes(self, **changes: Any) -> Query:
        return replace(self, **changes)


def window_cutoff(window: DateWindow, now: datetime | None = None) -> tuple[datetime | None, str]:
    """Lower bound (inclusive) for a rolling window plus a label for display."""
    now = now or _now_local()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window is DateWindow.TODAY:
        return midnight, "today"
    if window is DateWindow.LAST_7_DAYS:
        return midnight - timedelta(days=6), "last 7 days"
    if window is DateWindow.LAST_30_DAYS:
        return midnight - timedelta(days=29), "last 30 days"
    if window is DateWindow.THIS_MONTH:
        return midnight.replace(day=1), "this month"
    return None, "all time"


def window_bounds(window: DateWindow, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """
    [start, end) for a rolling window. Every rolling window ends at the next
    midnight, so future-dated records never count as "today" or "last 7 days".
    """
    now = now or _now_local()
    start, _ = window_cutoff(window, now)
    if start is None:
        return None, None
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window is DateWindow.THIS_MONTH:
        first = midnight.replace(day=1)
        if first.month == 12:
            return start, first.replace(year=first.year + 1, month=1)
        return start, first.replace(month=first.month + 1)
    return start, midnight + timedelta(days=1)


def _in_window(dt: datetime | None, query: Query, now: datetime) -> bool:
    if query.window is DateWindow.ALL:
        return True
    if dt is None:
        return False
    if query.window is DateWindow.CUSTOM:
        day = dt.date()
        if query.start and day < query.start:
            return False
        if query.end and day > query.end:
            return False
        return True
    start, end = window_bounds(query.window, now)
    if start is not None and dt < start:
        return False
    return end is None or dt < end


def matches_search(record: dict[str, Any], entity: EntityType, text: str) -> bool:
    needle = text.strip().casefold()
    if not needle:
        return True
    for key in entity.search_fields:
        value = record.get(key)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        if needle in str(value).casefold():
            return True
    return False


def _tags_of(record: dict[str, Any], entity: EntityType) -> set[str]:
    if entity.tag_field is None:
        return set()
    tags = record.get(entity.tag_field) or []
    if not isinstance(tags, list):
        return set()
    return {str(t).casefold() for t in tags}


def filter_records(
    records: Iterable[dict[str, Any]],
    entity: EntityType,
    query: Query,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    now = now or _now_local()
    wanted_tags = {t.casefold() for t in query.tags}
    # category names are unique ignoring case
    wanted_categories = {c.strip().casefold() for c in query.categories}
    out: list[dict[str, Any]] = []
    for r in records:
        if not matches_search(r, entity, query.search):
            continue
        if not _in_window(_dt_from_entry_ts(entity.date_of(r)), query, now):
            continue
        if query.status is not None and entity.status_of(r) != query.status:
            continue
        if wanted_categories:
            cat = r.get(entity.category_field) if entity.category_field else None
            if not isinstance(cat, str) or cat.strip().casefold() not in wanted_categories:
                continue
        if wanted_tags and not (wanted_tags & _tags_of(r, entity)):
            continue
        out.append(r)
    return out


def _date_key(entity: EntityType):
    def key(r: dict[str, Any]) -> datetime:
        return _dt_from_entry_ts(entity.date_of(r)) or _EARLIEST

    return key


def sort_records(records: Iterable[dict[str, Any]], entity: EntityType, order: SortOrder) -> list[dict[str, Any]]:
    rows = list(records)
    if order is SortOrder.NEWEST:
        return sorted(rows, key=_date_key(entity), reverse=True)
    if order is SortOrder.OLDEST:
        return sorted(rows, key=_date_key(entity))
    if order is SortOrder.TITLE_ASC:
        return sorted(rows, key=lambda r: entity.title_of(r).casefold())
    if order is SortOrder.TITLE_DESC:
        return sorted(rows, key=lambda r: entity.title_of(r).casefold(), reverse=True)
    if order is SortOrder.MAGNITUDE_DESC:
        return sorted(rows, key=entity.magnitude_of, reverse=True)
    if order is SortOrder.COUNT_DESC:
        return sorted(rows, key=entity.count_of, reverse=True)
    if order is SortOrder.CATEGORY:
        newest = sorted(rows, key=_date_key(entity), reverse=True)
        field_name = entity.category_field
        return sorted(newest, key=lambda r: str((r.get(field_name) if field_name else None) or "").casefold())
    raise ValueError(f"unknown sort order: {order!r}")


def apply_query(
    records: Iterable[dict[str, Any]],
    entity: EntityType,
    query: Query,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    return sort_records(filter_records(records, entity, query, now), entity, query.sort)
