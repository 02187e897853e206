"""Tests for reference counters kept between matches and players."""

from __future__ import annotations

import threading

import pytest

from diarykit.entities import ENTRY, MATCH, PLAYER
from diarykit.links import ReferenceLink
from diarykit.store import RecordStore


@pytest.fixture()
def stores(memory):
    lock = threading.RLock()
    return RecordStore(memory, MATCH, lock=lock), RecordStore(memory, PLAYER, lock=lock)


@pytest.fixture()
def link(stores) -> ReferenceLink:
    return ReferenceLink(*stores)


def _match(mvp=None, **extra):
    rec = {"team_a": "Lions", "team_b": "Tigers", "score_a": 2, "score_b": 1}
    if mvp is not None:
        rec["mvp"] = mvp
    rec.update(extra)
    return rec


def _counts(players: RecordStore) -> dict[str, int]:
    return {p["name"]: p["mvp_count"] for p in players.records}


def test_first_reference_creates_target(link, stores):
    _, players = stores
    link.add(_match("Ana"))
    [ana] = players.records
    assert ana["name"] == "Ana"
    assert ana["mvp_count"] == 1
    assert ana["last_mvp_at"]


def test_reference_counts_accumulate(link, stores):
    _, players = stores
    for name in ("Ana", "Ana", "Ben"):
        link.add(_match(name))
    assert _counts(players) == {"Ana": 2, "Ben": 1}


def test_blank_reference_is_ignored(link, stores):
    _, players = stores
    link.add(_match("   "))
    link.add(_match())
    assert players.records == []


def test_edit_moves_counter(link, stores):
    _, players = stores
    m = link.add(_match("Ana"))
    link.add(_match("Ben"))
    link.update({**m, "mvp": "Ben"})
    assert _counts(players) == {"Ana": 0, "Ben": 2}


def test_edit_same_reference_keeps_count(link, stores):
    _, players = stores
    m = link.add(_match("Ana"))
    link.update({**m, "notes": "close game"})
    assert _counts(players) == {"Ana": 1}


def test_edit_clears_reference(link, stores):
    _, players = stores
    m = link.add(_match("Ana"))
    link.update({k: v for k, v in m.items() if k != "mvp"})
    assert _counts(players) == {"Ana": 0}


def test_update_unknown_match(link, stores):
    _, players = stores
    assert link.update({"id": "nope", "mvp": "Ana"}) is False
    assert players.records == []


def test_delete_decrements(link, stores):
    matches, players = stores
    m = link.add(_match("Ana"))
    link.add(_match("Ana"))
    assert link.delete(m["id"]) is True
    assert _counts(players) == {"Ana": 1}
    assert link.delete(m["id"]) is False
    assert len(matches) == 1


def test_counter_never_negative(link, stores):
    matches, players = stores
    players.add({"name": "Ana", "mvp_count": 0})
    m = link.add(_match())
    matches.update({**m, "mvp": "Ana"})  # bypasses the link
    link.delete(m["id"])
    assert _counts(players) == {"Ana": 0}


def test_delete_all_resets_counters(link, stores):
    matches, players = stores
    for name in ("Ana", "Ben", "Ana"):
        link.add(_match(name))
    assert link.delete_all() == 3
    assert len(matches) == 0
    assert _counts(players) == {"Ana": 0, "Ben": 0}


def test_counters_survive_restart(memory, link):
    link.add(_match("Ana"))
    reopened = RecordStore(memory, PLAYER)
    assert reopened.records[0]["mvp_count"] == 1


def test_references_to(link):
    link.add(_match("Ana"))
    link.add(_match(" Ana "))
    assert link.references_to("Ana") == 2
    assert link.references_to("Ben") == 0


def test_suggest_orders_by_count_then_name(link, stores):
    _, players = stores
    for name in ("Bea", "Anabel", "Ana", "Ana", "Zed"):
        link.add(_match(name))
    assert link.suggest("a") == ["Ana", "Anabel", "Bea"]
    assert link.suggest("A", limit=1) == ["Ana"]
    assert link.suggest("  ") == []


def test_delete_target_refused_while_referenced(link, stores):
    _, players = stores
    m = link.add(_match("Ana"))
    assert link.delete_target("Ana") is False
    assert len(players) == 1

    link.delete(m["id"])
    assert link.delete_target("Ana") is True
    assert players.records == []
    assert link.delete_target("Ana") is False


def test_rename_target_cascades(link, stores):
    matches, players = stores
    link.add(_match("Ana"))
    link.add(_match("Ben"))
    assert link.rename_target("Ana", "Anna") is True
    assert _counts(players) == {"Anna": 1, "Ben": 1}
    assert [m.get("mvp") for m in matches.records] == ["Anna", "Ben"]


def test_rename_target_refuses_taken_or_missing(link):
    link.add(_match("Ana"))
    link.add(_match("Ben"))
    assert link.rename_target("Ana", "Ben") is False
    assert link.rename_target("Cid", "Dee") is False
    assert link.rename_target("Ana", "  ") is False


def test_link_requires_shared_lock(memory):
    with pytest.raises(ValueError):
        ReferenceLink(RecordStore(memory, MATCH), RecordStore(memory, PLAYER))


def test_link_requires_reference(memory):
    lock = threading.RLock()
    with pytest.raises(ValueError):
        ReferenceLink(RecordStore(memory, ENTRY, lock=lock), RecordStore(memory, PLAYER, lock=lock))
