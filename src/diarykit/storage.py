"""Local key-value storage for collection snapshots.

Every store writes its whole collection under one fixed key. On disk all keys
live in a single JSON document, written atomically.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def load_json(path: Path) -> dict[str, Any]:
    """
    Safe load:
    - creates parent dirs
    - if missing/empty -> writes {}
    - if corrupt -> backs up raw text then resets to {}
    Always returns a dict.
    """
    path = Path(path)
    _ensure_parent(path)

    if not path.exists():
        save_json(path, {})
        return {}

    txt = path.read_text(encoding="utf-8").strip()
    if not txt:
        save_json(path, {})
        return {}

    try:
        data = json.loads(txt)
    except json.JSONDecodeError:
        # corruption guard: backup then reset
        backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
        backup.write_text(txt, encoding="utf-8")
        logger.warning("Data file %s is not valid JSON; backed up to %s and reset", path, backup)
        save_json(path, {})
        return {}

    if not isinstance(data, dict):
        logger.warning("Data file %s does not hold a JSON object; ignoring its contents", path)
        return {}
    return data


def save_json(path: Path, data: Any) -> None:
    """
    Atomic-ish save:
    - write to temp file in same directory
    - flush + fsync
    - os.replace to target
    - chmod 0600 best-effort
    """
    path = Path(path)
    _ensure_parent(path)

    tmp = path.with_name(path.name + ".tmp")

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    ) + "\n"

    with open(tmp, "w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())

    os.replace(tmp, path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


class KeyValueStorage(Protocol):
    """What a store needs from its persistence medium."""

    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...


class JsonFileStorage:
    """All keys in one JSON file; every `set` rewrites the whole document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Any:
        return load_json(self.path).get(key)

    def set(self, key: str, value: Any) -> None:
        data = load_json(self.path)
        data[key] = value
        save_json(self.path, data)

    def remove(self, key: str) -> None:
        data = load_json(self.path)
        if key in data:
            del data[key]
            save_json(self.path, data)

    def keys(self) -> list[str]:
        return sorted(load_json(self.path))

    def __repr__(self) -> str:
        return f"JsonFileStorage({str(self.path)!r})"


class MemoryStorage:
    """In-process storage; values are deep-copied in and out like a real write."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
