from __future__ import annotations

import pytest

from diarykit.categories import UNCATEGORIZED, CategoryStore
from diarykit.entities import ENTRY
from diarykit.store import RecordStore


@pytest.fixture()
def cats(memory) -> CategoryStore:
    return CategoryStore(memory, ENTRY.categories_key, ENTRY.default_categories)


def test_defaults_seeded_on_first_load(cats):
    assert cats.names == list(ENTRY.default_categories)
    assert all(c["is_custom"] is False for c in cats.items)


def test_defaults_not_reseeded_once_saved(memory):
    cats = CategoryStore(memory, ENTRY.categories_key, ENTRY.default_categories)
    cats.delete_category("Floral")
    reopened = CategoryStore(memory, ENTRY.categories_key, ENTRY.default_categories)
    assert "Floral" not in reopened.names


def test_add_custom(cats):
    assert cats.add_category("  Leather ") is True
    assert cats.names[-1] == "Leather"
    assert cats.items[-1]["is_custom"] is True


@pytest.mark.parametrize("name", ["", "   ", "woody", "WOODY "])
def test_add_rejects_blank_and_duplicates(cats, name):
    before = cats.names
    assert cats.add_category(name) is False
    assert cats.names == before


def test_exists_is_case_insensitive(cats):
    assert cats.exists("citrus")
    assert not cats.exists("Leather")


def test_rename(cats):
    assert cats.rename_category("woody", "Woods") is True
    assert "Woods" in cats.names
    assert not cats.exists("Woody")


def test_rename_refuses_existing_or_blank(cats):
    assert cats.rename_category("Woody", "citrus") is False
    assert cats.rename_category("Woody", "  ") is False
    assert cats.rename_category("Nope", "Other") is False


def test_rename_same_name_with_new_casing(cats):
    assert cats.rename_category("Woody", "WOODY") is True
    assert "WOODY" in cats.names


def test_rename_does_not_touch_records(memory, cats):
    store = RecordStore(memory, ENTRY)
    rec = store.add({"name": "Vetiver", "category": "Woody"})
    cats.rename_category("Woody", "Woods")
    assert store.get(rec["id"])["category"] == "Woody"
    assert cats.display_name("Woody") == UNCATEGORIZED


def test_delete_makes_records_uncategorized(cats):
    assert cats.delete_category("Citrus") is True
    assert cats.display_name("Citrus") == UNCATEGORIZED
    assert cats.delete_category("Citrus") is False


def test_display_name_uses_stored_spelling(cats):
    assert cats.display_name("floral") == "Floral"
    assert cats.display_name(None) == UNCATEGORIZED
    assert cats.display_name("") == UNCATEGORIZED


def test_categories_persist(file_storage):
    cats = CategoryStore(file_storage, ENTRY.categories_key, ENTRY.default_categories)
    cats.add_category("Leather")
    reopened = CategoryStore(file_storage, ENTRY.categories_key, ENTRY.default_categories)
    assert reopened.names == cats.names


@pytest.mark.parametrize("name", ["Uncategorized", " uncategorized "])
def test_uncategorized_is_reserved(cats, name):
    assert cats.is_reserved(name)
    assert cats.add_category(name) is False
    assert cats.rename_category("Woody", name) is False
    assert "Woody" in cats.names
