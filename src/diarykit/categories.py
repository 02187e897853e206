"""User-editable category/tag labels, stored apart from the records.

Renaming or deleting a category only touches this list. Records keep the old
name string and show up as "Uncategorized" until they are edited, so that
name is reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from .collection import PersistedCollection
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


class CategoryStore(PersistedCollection):
    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        defaults: tuple[str, ...] = (),
        *,
        lock: threading.RLock | None = None,
        autoload: bool = True,
    ) -> None:
        super().__init__(storage, key, lock=lock)
        self.defaults = defaults
        if autoload:
            self.load()

    def _initial_items(self) -> list[dict[str, Any]]:
        return [{"name": name, "is_custom": False} for name in self.defaults]

    @property
    def names(self) -> list[str]:
        with self.lock:
            return [str(c.get("name", "")) for c in self._items]

    def _find(self, name: str) -> int | None:
        key = name.strip().casefold()
        for i, c in enumerate(self._items):
            if str(c.get("name", "")).strip().casefold() == key:
                return i
        return None

    def exists(self, name: str) -> bool:
        with self.lock:
            return self._find(name) is not None

    @staticmethod
    def is_reserved(name: str) -> bool:
        return (name or "").strip().casefold() == UNCATEGORIZED.casefold()

    def add_category(self, name: str) -> bool:
        clean = (name or "").strip()
        with self.lock:
            if not clean or self.is_reserved(clean) or self._find(clean) is not None:
                logger.debug("Not adding category %r to %r", name, self.key)
                return False
            self._items.append({"name": clean, "is_custom": True})
            self._commit()
            return True

    def rename_category(self, old: str, new: str) -> bool:
        clean = (new or "").strip()
        with self.lock:
            idx = self._find(old)
            if idx is None or not clean or self.is_reserved(clean):
                return False
            other = self._find(clean)
            if other is not None and other != idx:
                return False
            self._items[idx] = {**self._items[idx], "name": clean}
            self._commit()
            return True

    def delete_category(self, name: str) -> bool:
        with self.lock:
            idx = self._find(name)
            if idx is None:
                return False
            del self._items[idx]
            self._commit()
            return True

    def display_name(self, value: Any) -> str:
        """Stored spelling of a record's category, or "Uncategorized" if it is gone."""
        if not isinstance(value, str) or not value.strip():
            return UNCATEGORIZED
        with self.lock:
            idx = self._find(value)
            if idx is None:
                return UNCATEGORIZED
            return str(self._items[idx].get("name"))
