"""Tests for storage: load_json/save_json and the key-value storages."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from diarykit.storage import JsonFileStorage, MemoryStorage, load_json, save_json


@pytest.fixture()
def tmp_json(tmp_path: Path) -> Path:
    return tmp_path / "data.json"


# ---- save_json ----


def test_save_writes_valid_json(tmp_json):
    save_json(tmp_json, {"a": 1, "b": [1, 2, 3]})
    data = json.loads(tmp_json.read_text())
    assert data == {"a": 1, "b": [1, 2, 3]}


def test_save_creates_parent_dirs(tmp_path):
    deep = tmp_path / "a" / "b" / "c" / "data.json"
    save_json(deep, {"x": 1})
    assert deep.exists()


def test_save_is_atomic_no_tmp_left(tmp_json):
    save_json(tmp_json, {"x": 1})
    tmp = tmp_json.with_name(tmp_json.name + ".tmp")
    assert not tmp.exists()


def test_save_sets_permissions(tmp_json):
    save_json(tmp_json, {})
    mode = oct(os.stat(tmp_json).st_mode & 0o777)
    assert mode == "0o600"


def test_save_keeps_unicode(tmp_json):
    save_json(tmp_json, {"name": "Bois d'Été 🌸"})
    assert "Été 🌸" in tmp_json.read_text(encoding="utf-8")


# ---- load_json ----


def test_load_missing_returns_empty_dict_and_creates_file(tmp_json):
    assert load_json(tmp_json) == {}
    assert tmp_json.exists()


def test_load_empty_file_returns_empty_dict(tmp_json):
    tmp_json.write_text("", encoding="utf-8")
    assert load_json(tmp_json) == {}


def test_load_corrupt_returns_empty_and_backs_up(tmp_json):
    tmp_json.write_text("not valid json {{{{", encoding="utf-8")
    result = load_json(tmp_json)
    assert result == {}
    backups = list(tmp_json.parent.glob("*.corrupt-*.json"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "not valid json {{{{"


def test_load_non_dict_json_returns_empty(tmp_json):
    tmp_json.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert load_json(tmp_json) == {}


def test_roundtrip(tmp_json):
    original = {"saved_entries": {"version": 1, "items": [{"id": "a1", "name": "Vetiver"}]}}
    save_json(tmp_json, original)
    assert load_json(tmp_json) == original


# ---- JsonFileStorage ----


def test_file_storage_keys_are_independent(tmp_json):
    storage = JsonFileStorage(tmp_json)
    storage.set("saved_matches", [1])
    storage.set("saved_players", [2])
    storage.set("saved_matches", [3])
    assert storage.get("saved_matches") == [3]
    assert storage.get("saved_players") == [2]
    assert storage.keys() == ["saved_matches", "saved_players"]


def test_file_storage_missing_key_is_none(tmp_json):
    assert JsonFileStorage(tmp_json).get("nothing") is None


def test_file_storage_remove(tmp_json):
    storage = JsonFileStorage(tmp_json)
    storage.set("k", 1)
    storage.remove("k")
    storage.remove("k")
    assert storage.get("k") is None


def test_file_storage_rejects_unserializable_without_touching_file(tmp_json):
    storage = JsonFileStorage(tmp_json)
    storage.set("k", 1)
    with pytest.raises(TypeError):
        storage.set("other", object())
    assert load_json(tmp_json) == {"k": 1}


# ---- MemoryStorage ----


def test_memory_storage_copies_values():
    storage = MemoryStorage()
    value = {"items": [{"id": "x"}]}
    storage.set("k", value)
    value["items"].append({"id": "y"})
    got = storage.get("k")
    assert got == {"items": [{"id": "x"}]}
    got["items"].clear()
    assert storage.get("k") == {"items": [{"id": "x"}]}
