"""One place to open every store backed by the same storage.

All stores opened through a Diary share a single lock, so mutations that touch
two collections (match -> player counters) are atomic.
"""

from __future__ import annotations

import threading
from typing import Any

from .categories import CategoryStore
from .entities import ENTITY_TYPES, EntityType, get_entity
from .links import ReferenceLink
from .settings import OnboardingFlag
from .store import RecordRef, RecordStore
from .storage import KeyValueStorage


class Diary:
    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self.lock = threading.RLock()
        self.onboarding = OnboardingFlag(storage)
        self._stores: dict[str, RecordStore] = {}
        self._categories: dict[str, CategoryStore] = {}
        self._links: dict[str, ReferenceLink] = {}

    def store(self, kind: str | EntityType) -> RecordStore:
        entity = kind if isinstance(kind, EntityType) else get_entity(kind)
        with self.lock:
            if entity.name not in self._stores:
                self._stores[entity.name] = RecordStore(self.storage, entity, lock=self.lock)
            return self._stores[entity.name]

    def categories(self, kind: str) -> CategoryStore | None:
        entity = get_entity(kind)
        if entity.categories_key is None:
            return None
        with self.lock:
            if kind not in self._categories:
                self._categories[kind] = CategoryStore(
                    self.storage, entity.categories_key, entity.default_categories, lock=self.lock
                )
            return self._categories[kind]

    def link(self, kind: str) -> ReferenceLink | None:
        """Link from `kind` records to the kind they reference, if any."""
        entity = get_entity(kind)
        if entity.reference is None:
            return None
        with self.lock:
            if kind not in self._links:
                self._links[kind] = ReferenceLink(self.store(kind), self.store(entity.reference.target))
            return self._links[kind]

    def links_into(self, kind: str) -> list[ReferenceLink]:
        """Links whose target is `kind` (players are targets of matches)."""
        return [self.link(e.name) for e in ENTITY_TYPES.values()
                if e.reference is not None and e.reference.target == kind]

    # -------------------------
    # Mutations routed through links
    # -------------------------

    def add(self, kind: str, record: dict[str, Any]) -> dict[str, Any] | None:
        link = self.link(kind)
        return link.add(record) if link else self.store(kind).add(record)

    def update(self, kind: str, record: dict[str, Any]) -> bool:
        link = self.link(kind)
        return link.update(record) if link else self.store(kind).update(record)

    def delete(self, kind: str, record_or_id: RecordRef) -> bool:
        """
        Delete one record. For kinds that other records reference by name the
        delete is refused (False) while references remain.
        """
        link = self.link(kind)
        if link:
            return link.delete(record_or_id)
        store = self.store(kind)
        with self.lock:
            rec = store.get(record_or_id if isinstance(record_or_id, str) else record_or_id.get("id"))
            if rec is None:
                return False
            for incoming in self.links_into(kind):
                if incoming.references_to(store.entity.title_of(rec)):
                    return False
            return store.delete(rec["id"])

    def delete_all(self, kind: str) -> int:
        link = self.link(kind)
        if link:
            return link.delete_all()
        with self.lock:
            if self.links_into(kind):
                return sum(1 for r in self.store(kind).records if self.delete(kind, r["id"]))
            return self.store(kind).delete_all()
