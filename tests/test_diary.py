from __future__ import annotations

import csv

import pytest

from diarykit.diary import Diary
from diarykit.entities import ENTRY, MATCH
from diarykit.export import csv_fields, export_csv
from diarykit.settings import ONBOARDING_KEY, OnboardingFlag
from diarykit.storage import MemoryStorage


@pytest.fixture()
def diary(memory) -> Diary:
    return Diary(memory)


def test_stores_are_cached_and_share_lock(diary):
    assert diary.store("match") is diary.store("match")
    assert diary.store("match").lock is diary.store("player").lock is diary.lock


def test_unknown_kind(diary):
    with pytest.raises(KeyError):
        diary.store("recipe")


def test_categories_only_for_kinds_that_have_them(diary):
    assert diary.categories("entry") is not None
    assert diary.categories("player") is None


def test_add_match_updates_player_counter(diary):
    diary.add("match", {"team_a": "Lions", "team_b": "Tigers", "mvp": "Ana"})
    assert diary.store("player").records[0]["mvp_count"] == 1


def test_player_delete_refused_while_referenced(diary):
    m = diary.add("match", {"team_a": "Lions", "team_b": "Tigers", "mvp": "Ana"})
    [ana] = diary.store("player").records
    assert diary.delete("player", ana["id"]) is False
    assert len(diary.store("player")) == 1

    diary.delete("match", m["id"])
    assert diary.delete("player", ana) is True
    assert len(diary.store("player")) == 0


def test_player_delete_all_keeps_referenced(diary):
    diary.add("match", {"team_a": "Lions", "team_b": "Tigers", "mvp": "Ana"})
    diary.add("player", {"name": "Ben"})
    assert diary.delete_all("player") == 1
    assert [p["name"] for p in diary.store("player").records] == ["Ana"]


def test_plain_kind_routes_to_store(diary):
    rec = diary.add("entry", {"name": "Vetiver"})
    assert diary.update("entry", {**rec, "name": "Vetiver Extreme"}) is True
    assert diary.delete("entry", rec["id"]) is True
    assert diary.delete("entry", rec["id"]) is False


# ---- onboarding ----


def test_onboarding_defaults_to_incomplete(memory):
    assert OnboardingFlag(memory).is_complete() is False


def test_onboarding_persists(memory):
    OnboardingFlag(memory).complete()
    assert memory.get(ONBOARDING_KEY) is True
    assert OnboardingFlag(memory).is_complete() is True
    OnboardingFlag(memory).reset()
    assert OnboardingFlag(memory).is_complete() is False


def test_onboarding_ignores_non_bool():
    assert OnboardingFlag(MemoryStorage({ONBOARDING_KEY: "yes"})).is_complete() is False


# ---- export ----


def test_csv_fields_lead_with_id_and_dates():
    rows = [{"name": "a", "id": "1", "created_at": "x", "tags": ["t"]}, {"id": "2", "extra": 1}]
    assert csv_fields(rows, ENTRY) == ["id", "created_at", "name", "tags", "extra"]
    assert csv_fields([], MATCH) == ["id", "created_at", "date", "team_a"]


def test_export_csv_flattens_lists(tmp_path):
    out = tmp_path / "nested" / "entries.csv"
    rows = [
        {"id": "1", "created_at": "2026-01-01T10:00:00", "name": "Vetiver", "tags": ["rain", "office"]},
        {"id": "2", "created_at": "2026-01-02T10:00:00", "name": "Amber", "rating": 7},
    ]
    assert export_csv(rows, ENTRY, out) == 2

    with out.open(encoding="utf-8", newline="") as f:
        read = list(csv.DictReader(f))
    assert read[0]["tags"] == "rain, office"
    assert read[0]["rating"] == ""
    assert read[1]["rating"] == "7"


def test_export_csv_empty_writes_header(tmp_path):
    out = tmp_path / "empty.csv"
    assert export_csv([], ENTRY, out) == 0
    assert out.read_text(encoding="utf-8").strip() == "id,created_at,name"
