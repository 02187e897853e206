"""Record store: the authoritative collection for one record kind.

The store trusts its caller. It does not validate field values, and updates or
deletes that name an unknown id do nothing instead of raising.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from datetime import date, datetime
from typing import Any, Iterable

from ._util import _now_iso
from .collection import PersistedCollection
from .entities import EntityType
from .query import DateWindow, Query, SortOrder, apply_query
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

RecordRef = dict[str, Any] | str


def new_id() -> str:
    return uuid.uuid4().hex


def _id_of(record_or_id: RecordRef) -> Any:
    if isinstance(record_or_id, dict):
        return record_or_id.get("id")
    return record_or_id


class RecordStore(PersistedCollection):
    def __init__(
        self,
        storage: KeyValueStorage,
        entity: EntityType,
        *,
        lock: threading.RLock | None = None,
        autoload: bool = True,
    ) -> None:
        super().__init__(storage, entity.storage_key, lock=lock)
        self.entity = entity
        self.query = Query()
        if autoload:
            self.load()

    def __repr__(self) -> str:
        return f"RecordStore({self.entity.name!r}, {len(self)} records)"

    @property
    def records(self) -> list[dict[str, Any]]:
        return self.items

    def _index_of(self, record_id: Any) -> int | None:
        for i, r in enumerate(self._items):
            if r.get("id") == record_id:
                return i
        return None

    def get(self, record_id: str) -> dict[str, Any] | None:
        with self.lock:
            idx = self._index_of(record_id)
            return None if idx is None else copy.deepcopy(self._items[idx])

    # -------------------------
    # Mutations
    # -------------------------

    def add(self, record: dict[str, Any]) -> dict[str, Any] | None:
        """
        Append a record. A caller-supplied `id` is kept; otherwise one is
        generated, and `created_at` is stamped when missing.
        Returns the stored record, or None if its id is already taken.
        """
        rec = copy.deepcopy(record)
        with self.lock:
            if not rec.get("id"):
                rec["id"] = new_id()
            elif self._index_of(rec["id"]) is not None:
                logger.warning("Ignoring add to %r: id %r already present", self.key, rec["id"])
                return None
            rec.setdefault("created_at", _now_iso())
            self._items.append(rec)
            self._commit()
            return copy.deepcopy(rec)

    def update(self, record: dict[str, Any]) -> bool:
        """Replace the record with the same id in place. Unknown id: no-op."""
        with self.lock:
            idx = self._index_of(record.get("id"))
            if idx is None:
                logger.debug("update on %r: id %r not found", self.key, record.get("id"))
                return False
            self._items[idx] = copy.deepcopy(record)
            self._commit()
            return True

    def delete(self, record_or_id: RecordRef) -> bool:
        record_id = _id_of(record_or_id)
        with self.lock:
            kept = [r for r in self._items if r.get("id") != record_id]
            if len(kept) == len(self._items):
                return False
            self._items = kept
            self._commit()
            return True

    def delete_many(self, ids: Iterable[RecordRef]) -> int:
        wanted = {_id_of(x) for x in ids}
        with self.lock:
            kept = [r for r in self._items if r.get("id") not in wanted]
            removed = len(self._items) - len(kept)
            if removed:
                self._items = kept
                self._commit()
            return removed

    def delete_all(self) -> int:
        with self.lock:
            removed = len(self._items)
            self._items = []
            self._commit()
            return removed

    def toggle(self, record_id: str, field_name: str) -> bool | None:
        """Flip a boolean flag (favorite, archived, ...). None if the id is unknown."""
        with self.lock:
            idx = self._index_of(record_id)
            if idx is None:
                return None
            rec = self._items[idx]
            rec[field_name] = not bool(rec.get(field_name))
            if field_name == "is_archived":
                rec["archived_at"] = _now_iso() if rec[field_name] else None
            self._commit()
            return rec[field_name]

    def mark_viewed(self, record_id: str) -> bool:
        with self.lock:
            idx = self._index_of(record_id)
            if idx is None:
                return False
            rec = self._items[idx]
            rec["view_count"] = int(rec.get("view_count") or 0) + 1
            rec["last_viewed_at"] = _now_iso()
            self._commit()
            return True

    # -------------------------
    # View state
    # -------------------------

    def _set_query(self, **changes: Any) -> None:
        with self.lock:
            self.query = self.query.with_changes(**changes)
        self._notify()

    def set_search(self, text: str) -> None:
        self._set_query(search=text or "")

    def set_window(self, window: DateWindow | str, start: date | None = None, end: date | None = None) -> None:
        self._set_query(window=DateWindow(window), start=start, end=end)

    def set_sort(self, order: SortOrder | str) -> None:
        self._set_query(sort=SortOrder(order))

    def set_status(self, status: str | None) -> None:
        self._set_query(status=status)

    def set_categories(self, names: Iterable[str]) -> None:
        self._set_query(categories=frozenset(names))

    def set_tags(self, tags: Iterable[str]) -> None:
        self._set_query(tags=frozenset(tags))

    def clear_filters(self) -> None:
        # sort order is a preference, not a filter
        self._set_query(
            search="",
            window=DateWindow.ALL,
            start=None,
            end=None,
            status=None,
            categories=frozenset(),
            tags=frozenset(),
        )

    def has_active_filters(self) -> bool:
        return self.query.is_filtering()

    def filtered_and_sorted(self, now: datetime | None = None) -> list[dict[str, Any]]:
        with self.lock:
            return apply_query(self.items, self.entity, self.query, now)
