"""Base for an in-memory list of dicts mirrored into key-value storage.

The whole list is written under one key after every mutation. Reading is
best-effort: a missing or undecodable snapshot means "no data yet".
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

Listener = Callable[[Any], None]


def encode_snapshot(items: list[dict[str, Any]]) -> dict[str, Any]:
    return {"version": SNAPSHOT_VERSION, "items": copy.deepcopy(items)}


def decode_snapshot(blob: Any, key: str = "?") -> list[dict[str, Any]] | None:
    """
    Snapshot -> list of item dicts, or None when there is nothing usable.
    Accepts the versioned envelope and the older bare-list layout.
    """
    if blob is None:
        return None

    if isinstance(blob, list):
        items = blob
    elif isinstance(blob, dict) and isinstance(blob.get("items"), list):
        version = blob.get("version")
        if not isinstance(version, int) or version > SNAPSHOT_VERSION:
            logger.warning("Snapshot %r has unsupported version %r; starting empty", key, version)
            return None
        items = blob["items"]
    else:
        logger.warning("Snapshot %r is not a list or envelope; starting empty", key)
        return None

    if not all(isinstance(item, dict) for item in items):
        logger.warning("Snapshot %r holds non-object items; starting empty", key)
        return None
    return items


class PersistedCollection:
    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        *,
        lock: threading.RLock | None = None,
    ) -> None:
        self.storage = storage
        self.key = key
        self.lock = lock if lock is not None else threading.RLock()
        self.last_persist_error: Exception | None = None
        self._items: list[dict[str, Any]] = []
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.items)

    @property
    def items(self) -> list[dict[str, Any]]:
        with self.lock:
            return copy.deepcopy(self._items)

    def _initial_items(self) -> list[dict[str, Any]]:
        return []

    def load(self) -> None:
        with self.lock:
            try:
                blob = self.storage.get(self.key)
            except (OSError, ValueError) as e:
                logger.warning("Could not read %r: %s", self.key, e)
                blob = None
            items = decode_snapshot(blob, self.key)
            self._items = items if items is not None else self._initial_items()
            logger.debug("Loaded %d items from %r", len(self._items), self.key)
            self._notify()

    def persist(self) -> bool:
        """
        Write the whole collection under its key.
        Returns False (and keeps the in-memory state) if the write failed.
        """
        with self.lock:
            try:
                self.storage.set(self.key, encode_snapshot(self._items))
            except (OSError, TypeError, ValueError) as e:
                self.last_persist_error = e
                logger.error("Could not persist %r (%d items kept in memory): %s", self.key, len(self._items), e)
                return False
            self.last_persist_error = None
            return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(self)` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Listener %r failed for %r", listener, self.key)

    def _commit(self) -> None:
        self.persist()
        self._notify()
