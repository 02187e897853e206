"""Counters kept on one collection for references held by another.

Example: a match names its MVP; the player with that name carries an MVP
counter and the time of the last change. Source and target must share one
lock so the record change and the counter change happen together.
"""

from __future__ import annotations

import logging
from typing import Any

from ._util import _now_iso
from .entities import Reference
from .store import RecordRef, RecordStore, _id_of

logger = logging.getLogger(__name__)


def _ref_name(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class ReferenceLink:
    def __init__(self, source: RecordStore, target: RecordStore, reference: Reference | None = None) -> None:
        reference = reference or source.entity.reference
        if reference is None:
            raise ValueError(f"{source.entity.name!r} records do not reference another kind")
        if source.lock is not target.lock:
            raise ValueError("linked stores must share one lock")
        self.source = source
        self.target = target
        self.reference = reference
        self.lock = source.lock

    def _find_target(self, name: str) -> dict[str, Any] | None:
        title = self.target.entity.title_field
        for rec in self.target.records:
            if rec.get(title) == name:
                return rec
        return None

    def _adjust(self, value: Any, delta: int) -> None:
        name = _ref_name(value)
        if not name:
            return
        ref = self.reference
        rec = self._find_target(name)
        if rec is None:
            if delta > 0:
                self.target.add({
                    self.target.entity.title_field: name,
                    ref.counter_field: delta,
                    ref.timestamp_field: _now_iso(),
                })
            else:
                logger.debug("No %s named %r to decrement", self.target.entity.name, name)
            return
        rec[ref.counter_field] = max(0, int(rec.get(ref.counter_field) or 0) + delta)
        rec[ref.timestamp_field] = _now_iso()
        self.target.update(rec)

    # -------------------------
    # Source mutations
    # -------------------------

    def add(self, record: dict[str, Any]) -> dict[str, Any] | None:
        with self.lock:
            stored = self.source.add(record)
            if stored is not None:
                self._adjust(stored.get(self.reference.field), +1)
            return stored

    def update(self, record: dict[str, Any]) -> bool:
        with self.lock:
            old = self.source.get(record.get("id"))
            if old is None:
                return False
            self.source.update(record)
            # always decrement-then-increment, even when the name is unchanged
            self._adjust(old.get(self.reference.field), -1)
            self._adjust(record.get(self.reference.field), +1)
            return True

    def delete(self, record_or_id: RecordRef) -> bool:
        with self.lock:
            old = self.source.get(_id_of(record_or_id))
            if old is None:
                return False
            self.source.delete(old["id"])
            self._adjust(old.get(self.reference.field), -1)
            return True

    def delete_many(self, ids: list[RecordRef]) -> int:
        with self.lock:
            return sum(1 for x in ids if self.delete(x))

    def delete_all(self) -> int:
        with self.lock:
            return self.delete_many([r["id"] for r in self.source.records])

    # -------------------------
    # Target helpers
    # -------------------------

    def references_to(self, name: str) -> int:
        wanted = _ref_name(name)
        return sum(1 for r in self.source.records if _ref_name(r.get(self.reference.field)) == wanted)

    def suggest(self, text: str, limit: int = 5) -> list[str]:
        """Target names containing `text` (case-insensitive), most referenced first."""
        needle = text.strip().casefold()
        if not needle:
            return []
        title = self.target.entity.title_field
        counter = self.reference.counter_field
        hits = [r for r in self.target.records if needle in str(r.get(title, "")).casefold()]
        hits.sort(key=lambda r: str(r.get(title, "")).casefold())
        hits.sort(key=lambda r: int(r.get(counter) or 0), reverse=True)
        return [str(r.get(title)) for r in hits[:limit]]

    def delete_target(self, name: str) -> bool:
        """Remove a target record by name. Refused (False) while source records still name it."""
        with self.lock:
            if self.references_to(name):
                logger.info("Refusing to delete %r: still referenced", name)
                return False
            rec = self._find_target(_ref_name(name))
            if rec is None:
                return False
            return self.target.delete(rec["id"])

    def rename_target(self, old: str, new: str) -> bool:
        """Rename a target and the source records that name it; counters stay attached."""
        old_name, new_name = _ref_name(old), _ref_name(new)
        with self.lock:
            rec = self._find_target(old_name)
            if rec is None or not new_name:
                return False
            if new_name != old_name and self._find_target(new_name) is not None:
                return False
            rec[self.target.entity.title_field] = new_name
            self.target.update(rec)
            field_name = self.reference.field
            for src in self.source.records:
                if _ref_name(src.get(field_name)) == old_name:
                    src[field_name] = new_name
                    self.source.update(src)
            return True
