"""Record kinds.

A record is a plain dict. An `EntityType` says which of its keys play which
role (title, date, category, status, ...) so the store, the query engine and
the statistics can work the same way for every diary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class Reference:
    """Source records name a target record in `field` (e.g. a match's MVP)."""

    field: str
    target: str
    counter_field: str = "ref_count"
    timestamp_field: str = "last_referenced_at"


@dataclass(frozen=True)
class EntityType:
    name: str
    storage_key: str
    title_field: str = "title"
    date_field: str = "created_at"
    search_fields: tuple[str, ...] = ("title", "notes")
    category_field: str | None = None
    categories_key: str | None = None
    default_categories: tuple[str, ...] = ()
    tag_field: str | None = None
    status_field: str | None = None
    statuses: tuple[str, ...] = ()
    score_field: str | None = None
    count_field: str | None = None
    magnitude: Callable[[dict[str, Any]], float] | None = None
    derived_status: Callable[[dict[str, Any]], str | None] | None = None
    reference: Reference | None = None
    required: tuple[str, ...] = ()
    flags: tuple[str, ...] = ("is_favorite",)

    def status_of(self, record: dict[str, Any]) -> str | None:
        if self.derived_status is not None:
            return self.derived_status(record)
        if self.status_field is None:
            return None
        value = record.get(self.status_field)
        return None if value is None else str(value)

    def date_of(self, record: dict[str, Any]) -> Any:
        # records without the kind's own date fall back to their creation time
        return record.get(self.date_field) or record.get("created_at")

    def title_of(self, record: dict[str, Any]) -> str:
        return str(record.get(self.title_field) or "")

    def magnitude_of(self, record: dict[str, Any]) -> float:
        if self.magnitude is None:
            return 0.0
        try:
            return float(self.magnitude(record))
        except (TypeError, ValueError):
            return 0.0

    def count_of(self, record: dict[str, Any]) -> int:
        if self.count_field is None:
            return 0
        value = record.get(self.count_field)
        if isinstance(value, (list, tuple, dict)):
            return len(value)
        if isinstance(value, int):
            return value
        return 0


def _score(record: dict[str, Any], key: str) -> int:
    value = record.get(key)
    return int(value) if isinstance(value, (int, float)) else 0


def score_difference(match: dict[str, Any]) -> int:
    return _score(match, "score_a") - _score(match, "score_b")


def match_outcome(match: dict[str, Any]) -> str:
    diff = score_difference(match)
    if diff > 0:
        return "win"
    if diff < 0:
        return "loss"
    return "draw"


ENTRY = EntityType(
    name="entry",
    storage_key="saved_entries",
    title_field="name",
    search_fields=("name", "brand", "notes"),
    category_field="category",
    categories_key="saved_entry_categories",
    default_categories=("Floral", "Woody", "Citrus", "Oriental", "Fresh"),
    tag_field="tags",
    score_field="rating",
)

PLAYER = EntityType(
    name="player",
    storage_key="saved_players",
    title_field="name",
    search_fields=("name",),
    count_field="mvp_count",
)

MATCH = EntityType(
    name="match",
    storage_key="saved_matches",
    date_field="date",
    search_fields=("team_a", "team_b", "mvp", "notes"),
    required=("team_b",),
    statuses=("win", "loss", "draw"),
    magnitude=lambda m: abs(score_difference(m)),
    derived_status=match_outcome,
    title_field="team_a",
    reference=Reference(
        field="mvp",
        target="player",
        counter_field="mvp_count",
        timestamp_field="last_mvp_at",
    ),
)

TOURNAMENT = EntityType(
    name="tournament",
    storage_key="saved_tournaments",
    title_field="name",
    date_field="start_date",
    search_fields=("name", "location", "notes"),
    status_field="status",
    statuses=("upcoming", "active", "completed", "cancelled"),
    count_field="match_ids",
)

ZONE = EntityType(
    name="zone",
    storage_key="saved_zones",
    title_field="name",
    search_fields=("name", "notes"),
    status_field="status",
    statuses=("clean", "needs_attention", "dirty"),
    count_field="tasks",
    category_field="room",
    categories_key="saved_rooms",
    default_categories=("Kitchen", "Bathroom", "Bedroom", "Living Room"),
)

IDEA = EntityType(
    name="idea",
    storage_key="saved_ideas",
    search_fields=("title", "description", "notes"),
    category_field="category",
    categories_key="saved_idea_categories",
    default_categories=("Crafts", "Outdoors", "Cooking", "Music"),
    tag_field="tags",
    status_field="status",
    statuses=("new", "in_progress", "done"),
    flags=("is_favorite", "is_archived"),
)

GAME = EntityType(
    name="game",
    storage_key="saved_games",
    search_fields=("title", "platform", "notes"),
    category_field="genre",
    categories_key="saved_genres",
    default_categories=("Action", "Puzzle", "Strategy", "RPG"),
    tag_field="tags",
    status_field="status",
    statuses=("backlog", "playing", "finished", "dropped"),
    score_field="rating",
)

STORY = EntityType(
    name="story",
    storage_key="saved_stories",
    search_fields=("title", "body", "notes"),
    tag_field="tags",
    score_field="mood",
    count_field="photos",
)

ENTITY_TYPES: dict[str, EntityType] = {
    e.name: e for e in (ENTRY, PLAYER, MATCH, TOURNAMENT, ZONE, IDEA, GAME, STORY)
}


def get_entity(name: str) -> EntityType:
    try:
        return ENTITY_TYPES[name]
    except KeyError:
        raise KeyError(f"unknown record kind {name!r} (known: {', '.join(sorted(ENTITY_TYPES))})") from None
