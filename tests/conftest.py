from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from diarykit.storage import JsonFileStorage, MemoryStorage


@pytest.fixture()
def memory() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def file_storage(tmp_path: Path) -> JsonFileStorage:
    return JsonFileStorage(tmp_path / "data.json")


@pytest.fixture()
def now() -> datetime:
    return datetime.now().astimezone().replace(microsecond=0)


def iso_days_ago(now: datetime, days: int) -> str:
    return (now - timedelta(days=days)).isoformat(timespec="seconds")


class FailingStorage(MemoryStorage):
    """Reads work, writes fail like a full or read-only disk."""

    def set(self, key, value):
        raise OSError(28, "No space left on device")
