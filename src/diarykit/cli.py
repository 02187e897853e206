from __future__ import annotations

import argparse
import stat
import sys
from datetime import date
from pathlib import Path
from typing import Any

from ._util import _dt_from_entry_ts, _fmt_time, _now_iso, _now_local
from .categories import CategoryStore
from .diary import Diary
from .entities import ENTITY_TYPES, EntityType, get_entity
from .errors import DiarykitError, TimeParseError, UnsafeDataPathError
from .export import export_csv
from .logging_config import configure_logging
from .paths import assert_safe_data_path, describe_resolution, resolve_data_path
from .query import DateWindow, SortOrder, window_cutoff
from .storage import JsonFileStorage, load_json
from .store import RecordStore
from .stats import (
    average_per_day,
    category_distribution,
    daily_averages,
    days_with_records,
    frequency_table,
    month_grid,
    monthly_counts,
    outcome_summary,
    shares,
    sparkline,
    streaks,
    trend,
)
from .timeparse import parse_day, parse_ts


# -------------------------
# Input helpers
# -------------------------

def _parse_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    parts: list[str] = []
    for chunk in raw.replace(",", " ").split():
        c = chunk.strip()
        if c:
            parts.append(c)
    seen = set()
    out: list[str] = []
    for p in parts:
        key = p.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


def _coerce(value: str) -> Any:
    s = value.strip()
    if s.lower() in ("true", "yes"):
        return True
    if s.lower() in ("false", "no"):
        return False
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return float(s)
    except ValueError:
        return s


def _parse_assignment(raw: str) -> tuple[str, Any]:
    """'key=value' -> (key, coerced value)."""
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        raise SystemExit(f"--set expects key=value (got {raw!r})")
    if key == "id":
        raise SystemExit("--set cannot change a record id")
    return key, _coerce(value)


def _resolve_id(store: RecordStore, prefix: str) -> str:
    """Full id from a unique prefix (list output shows 8 characters)."""
    hits = [r["id"] for r in store.records if str(r.get("id", "")).startswith(prefix)]
    if not hits:
        raise SystemExit(f"No {store.entity.name} with id {prefix!r}")
    if len(hits) > 1:
        raise SystemExit(f"Id prefix {prefix!r} is ambiguous ({len(hits)} {store.entity.name} records)")
    return hits[0]


def _apply_fields(args: argparse.Namespace, entity: EntityType, rec: dict[str, Any],
                  cats: CategoryStore | None) -> dict[str, Any]:
    """Copy validated command-line fields onto a record dict."""
    if args.title is not None:
        title = args.title.strip()
        if not title:
            raise SystemExit(f"--title cannot be blank ({entity.name} {entity.title_field} is required)")
        rec[entity.title_field] = title

    if args.notes is not None:
        rec["notes"] = args.notes

    if args.category is not None:
        if entity.category_field is None or cats is None:
            raise SystemExit(f"{entity.name} records have no category")
        if args.category == "":
            rec.pop(entity.category_field, None)
        elif not cats.exists(args.category):
            raise SystemExit(
                f"Unknown category {args.category!r}. Add it first: dk category {entity.name} add {args.category!r}"
            )
        else:
            rec[entity.category_field] = cats.display_name(args.category)

    if args.tags is not None:
        if entity.tag_field is None:
            raise SystemExit(f"{entity.name} records have no tags")
        rec[entity.tag_field] = _parse_tags(args.tags)

    if args.status is not None:
        if entity.status_field is None:
            raise SystemExit(f"{entity.name} status is not set directly")
        if args.status not in entity.statuses:
            raise SystemExit(f"--status must be one of: {', '.join(entity.statuses)}")
        rec[entity.status_field] = args.status

    if args.score is not None:
        if entity.score_field is None:
            raise SystemExit(f"{entity.name} records have no score")
        if not (1 <= args.score <= 10):
            raise SystemExit("--score must be between 1 and 10")
        rec[entity.score_field] = args.score

    if args.date is not None:
        rec[entity.date_field] = parse_ts(args.date)

    if args.ref is not None:
        if entity.reference is None:
            raise SystemExit(f"{entity.name} records do not reference another kind")
        ref = args.ref.strip()
        if ref:
            rec[entity.reference.field] = ref
        else:
            rec.pop(entity.reference.field, None)

    for raw in args.set or []:
        key, value = _parse_assignment(raw)
        rec[key] = value

    for key in getattr(args, "unset", None) or []:
        if key in ("id", "created_at"):
            raise SystemExit(f"--unset cannot remove {key!r}")
        rec.pop(key, None)

    for key in (entity.title_field, *entity.required):
        value = rec.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise SystemExit(f"{entity.name} {key!r} is required")
    return rec


# -------------------------
# Print blocks
# -------------------------

def _short(rec: dict[str, Any]) -> str:
    return str(rec.get("id", ""))[:8]


def _when(entity: EntityType, rec: dict[str, Any]) -> tuple[str, str]:
    dt = _dt_from_entry_ts(entity.date_of(rec))
    if not dt:
        return "unknown-date", "unknown-time"
    return dt.date().isoformat(), _fmt_time(dt)


def _line(entity: EntityType, rec: dict[str, Any], cats: CategoryStore | None) -> str:
    d, _ = _when(entity, rec)
    line = f"{_short(rec)}  {d} — {entity.title_of(rec)}"
    if entity.name == "match":
        line += f" vs {rec.get('team_b', '')} {rec.get('score_a', 0)}:{rec.get('score_b', 0)}"
    if cats is not None and entity.category_field:
        line += f" [{cats.display_name(rec.get(entity.category_field))}]"
    tags = rec.get(entity.tag_field) if entity.tag_field else None
    if tags:
        line += f" #{' #'.join(str(t) for t in tags)}"
    status = entity.status_of(rec)
    if status:
        line += f" ({status})"
    if entity.score_field and rec.get(entity.score_field) is not None:
        line += f" {rec[entity.score_field]}/10"
    if entity.reference and rec.get(entity.reference.field):
        line += f" ⭐ {rec[entity.reference.field]}"
    if rec.get("is_favorite"):
        line += " ♥"
    return line


def _print_block(entity: EntityType, rec: dict[str, Any], cats: CategoryStore | None) -> None:
    d, t = _when(entity, rec)
    print("```")
    print(f"📒 {entity.name.capitalize()}")
    print(f"- 🆔 Id: {rec.get('id', '')}")
    print(f"- 📅 Date: {d}")
    print(f"- 🕒 Time: {t}")
    print(f"- ✏️ {entity.title_field}: {entity.title_of(rec)}")
    if cats is not None and entity.category_field:
        print(f"- 🗂️ Category: {cats.display_name(rec.get(entity.category_field))}")
    shown = {"id", "created_at", entity.date_field, entity.title_field, entity.category_field, "notes"}
    for key, value in rec.items():
        if key in shown or value in (None, "", []):
            continue
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        print(f"- {key}: {value}")
    if rec.get("notes"):
        print(f"- 📝 Notes: {rec['notes']}")
    print("```")


# -------------------------
# Record commands
# -------------------------

def _open(args: argparse.Namespace) -> Diary:
    return Diary(JsonFileStorage(args.data_path))


def cmd_add(args: argparse.Namespace) -> None:
    diary = _open(args)
    entity = get_entity(args.kind)
    cats = diary.categories(args.kind)

    rec = _apply_fields(args, entity, {}, cats)
    if entity.date_field != "created_at":
        rec.setdefault(entity.date_field, _now_iso())

    stored = diary.add(args.kind, rec)
    if stored is None:
        raise SystemExit(f"Could not add {entity.name}: id already exists")
    _warn_if_unsaved(diary.store(args.kind))

    if args.format == "block":
        _print_block(entity, stored, cats)
    else:
        print(f"✅ Added {entity.name} {_short(stored)}: {entity.title_of(stored)}")


def cmd_edit(args: argparse.Namespace) -> None:
    diary = _open(args)
    entity = get_entity(args.kind)
    store = diary.store(args.kind)
    cats = diary.categories(args.kind)

    rec = store.get(_resolve_id(store, args.id))
    rec = _apply_fields(args, entity, rec, cats)
    rec["updated_at"] = _now_iso()

    diary.update(args.kind, rec)
    _warn_if_unsaved(store)
    print(f"✏️ Updated {entity.name} {_short(rec)}: {entity.title_of(rec)}")


def cmd_show(args: argparse.Namespace) -> None:
    diary = _open(args)
    store = diary.store(args.kind)
    record_id = _resolve_id(store, args.id)
    store.mark_viewed(record_id)
    _print_block(store.entity, store.get(record_id), diary.categories(args.kind))


def cmd_flag(args: argparse.Namespace) -> None:
    diary = _open(args)
    store = diary.store(args.kind)
    if args.flag not in store.entity.flags:
        raise SystemExit(f"--flag must be one of: {', '.join(store.entity.flags)}")
    value = store.toggle(_resolve_id(store, args.id), args.flag)
    print(f"🔁 {args.flag} = {value}")


def cmd_delete(args: argparse.Namespace) -> None:
    diary = _open(args)
    store = diary.store(args.kind)
    ids = [_resolve_id(store, x) for x in args.ids]

    if not args.yes:
        raise SystemExit(f"Refusing to delete {len(ids)} {store.entity.name} record(s) without --yes.")

    for record_id in ids:
        rec = store.get(record_id)
        if diary.delete(args.kind, record_id):
            print(f"🗑️ Deleted {store.entity.name} {record_id[:8]}")
            continue
        if rec is not None:
            name = store.entity.title_of(rec)
            uses = sum(link.references_to(name) for link in diary.links_into(args.kind))
            print(f"⚠️ Cannot delete {name!r}: used in {uses} record{'' if uses == 1 else 's'}", file=sys.stderr)


def cmd_reset(args: argparse.Namespace) -> None:
    diary = _open(args)
    before = len(diary.store(args.kind))

    if not args.yes:
        raise SystemExit(f"Refusing to reset without --yes (this deletes {before} {args.kind} records).")

    removed = diary.delete_all(args.kind)
    print(f"🧹 {args.kind} reset: deleted {removed} of {before} records.")


def cmd_rename(args: argparse.Namespace) -> None:
    diary = _open(args)
    links = diary.links_into(args.kind)
    if not links:
        raise SystemExit(f"{args.kind} records are not referenced by name; use `dk edit {args.kind} ID --title ...`")
    new = args.new.strip()
    if not new:
        raise SystemExit("New name cannot be blank")
    for link in links:
        if not link.rename_target(args.old, new):
            raise SystemExit(f"Could not rename {args.old!r} to {new!r} (missing, or name already taken)")
    print(f"✏️ Renamed {args.old!r} → {new!r}")


def cmd_suggest(args: argparse.Namespace) -> None:
    link = _open(args).link(args.kind)
    if link is None:
        raise SystemExit(f"{args.kind} records do not reference another kind")
    for name in link.suggest(args.text, limit=args.limit):
        print(name)


def _apply_query_args(store: RecordStore, args: argparse.Namespace) -> str:
    """Push list/export filter flags into the store's view state. Returns a window label."""
    start = parse_day(args.date_from) if args.date_from else None
    end = parse_day(args.date_to) if args.date_to else None
    if start or end:
        store.set_window(DateWindow.CUSTOM, start, end)
        label = f"{start or '…'} → {end or '…'}"
    else:
        store.set_window(args.window)
        _, label = window_cutoff(DateWindow(args.window))
    store.set_sort(args.sort)
    store.set_search(args.search or "")
    store.set_status(args.status)
    store.set_categories(args.category or [])
    store.set_tags(args.tag or [])
    return label


def cmd_list(args: argparse.Namespace) -> None:
    diary = _open(args)
    store = diary.store(args.kind)
    cats = diary.categories(args.kind)

    if not len(store):
        print(f"No {args.kind} records yet.")
        return

    label = _apply_query_args(store, args)
    rows = store.filtered_and_sorted()
    if not rows:
        print(f"No {args.kind} records match ({label}).")
        return

    if args.format == "block":
        for r in rows[: args.limit]:
            _print_block(store.entity, r, cats)
        return

    print(f"=== {args.kind.capitalize()} records ({label}, {args.sort}) ===")
    for r in rows[: args.limit]:
        print(_line(store.entity, r, cats))
    if len(rows) > args.limit:
        print(f"… {len(rows) - args.limit} more")


def cmd_export(args: argparse.Namespace) -> None:
    store = _open(args).store(args.kind)
    label = _apply_query_args(store, args)
    out_path = Path(args.csv).expanduser().resolve()
    n = export_csv(store.filtered_and_sorted(), store.entity, out_path)

    if n:
        print(f"📄 Exported {n} {args.kind} rows ({label}) → {out_path}")
    else:
        print(f"📄 Exported header-only {args.kind} CSV (no rows for {label}) → {out_path}")


# -------------------------
# Stats commands
# -------------------------

def _pct(x: float) -> str:
    return f"{x * 100:.0f}%"


def cmd_stats(args: argparse.Namespace) -> None:
    diary = _open(args)
    store = diary.store(args.kind)
    entity = store.entity
    cats = diary.categories(args.kind)

    if not len(store):
        print(f"No {args.kind} records yet.")
        return

    store.set_window(args.window)
    recent = store.filtered_and_sorted()
    _, label = window_cutoff(DateWindow(args.window))
    if not recent:
        print(f"No {args.kind} records found for {label}.")
        return

    today = _now_local().date()
    st = streaks(days_with_records(store.records, entity), today)

    print(f"=== {args.kind.capitalize()} Stats ({label}) ===")
    print(f"- records: {len(recent)} (of {len(store)} total)")
    print(f"- average per day: {average_per_day(store.records, entity, today):.2f}")
    print(f"- streak: current {st.current} day(s), longest {st.longest} day(s)")

    if cats is not None and entity.category_field:
        dist = category_distribution(recent, cats.names, entity.category_field)
        share = shares(dist)
        print("\n[Categories]")
        for name, c in dist:
            print(f"- {name}: {c} ({_pct(share[name])})")

    if entity.tag_field:
        top = frequency_table(recent, entity.tag_field)[:10]
        if top:
            print("\n[Top tags]")
            for t, c in top:
                print(f"- {t}: {c}")

    if entity.statuses:
        summary = outcome_summary(recent, entity)
        share = shares(summary.items())
        print("\n[Status]")
        for name, c in summary.items():
            print(f"- {name}: {c} ({_pct(share[name])})")

    if entity.reference:
        top = frequency_table(recent, entity.reference.field)[:10]
        if top:
            print(f"\n[{entity.reference.field.upper()} frequency]")
            for name, c in top:
                print(f"- {name}: {c}")

    daily = daily_averages(recent, entity)
    if daily:
        scores = [avg for _, avg, _ in daily]
        tr = trend(scores, args.trend_epsilon)
        print("\n[Score trend]")
        print(f"- average (daily): {sum(scores) / len(scores):.2f}/10")
        print(f"- direction: {tr.direction}")
        print(f"- slope: {tr.slope:+.3f} points/day (epsilon={args.trend_epsilon})")
        print(f"- net change: {tr.net:+.2f} (first day avg → last day avg)")
        print(f"- sparkline: {sparkline(scores)}")

    print("\n[By month]")
    for month, c in monthly_counts(recent, entity):
        print(f"- {month}: {c}")


def cmd_streak(args: argparse.Namespace) -> None:
    store = _open(args).store(args.kind)
    st = streaks(days_with_records(store.records, store.entity))
    print(f"🔥 Current streak: {st.current} day(s)")
    print(f"🏆 Longest streak: {st.longest} day(s)")


def cmd_calendar(args: argparse.Namespace) -> None:
    store = _open(args).store(args.kind)
    if args.month:
        try:
            year, month = (int(x) for x in args.month.split("-", 1))
            date(year, month, 1)
        except ValueError:
            raise SystemExit(f"--month must look like 2026-02 (got {args.month!r})") from None
    else:
        today = _now_local().date()
        year, month = today.year, today.month

    grid = month_grid(days_with_records(store.records, store.entity), year, month)
    print(f"=== {args.kind.capitalize()} calendar {year:04d}-{month:02d} ===")
    print(" Mo  Tu  We  Th  Fr  Sa  Su")
    for week in grid:
        cells = []
        for cell in week:
            if cell is None:
                cells.append("   ")
            else:
                d, has = cell
                cells.append(f"{d.day:>2}{'●' if has else ' '}")
        print(" ".join(cells))


# -------------------------
# Category commands
# -------------------------

def _categories_or_exit(diary: Diary, kind: str) -> CategoryStore:
    cats = diary.categories(kind)
    if cats is None:
        raise SystemExit(f"{kind} records have no categories")
    return cats


def cmd_category_list(args: argparse.Namespace) -> None:
    diary = _open(args)
    cats = _categories_or_exit(diary, args.kind)
    entity = get_entity(args.kind)
    dist = dict(category_distribution(diary.store(args.kind).records, cats.names, entity.category_field))
    for c in cats.items:
        mark = " (custom)" if c.get("is_custom") else ""
        print(f"- {c['name']}{mark}: {dist.get(c['name'], 0)}")


def cmd_category_add(args: argparse.Namespace) -> None:
    cats = _categories_or_exit(_open(args), args.kind)
    name = args.name.strip()
    if not name:
        raise SystemExit("Category name is required")
    if cats.is_reserved(name):
        raise SystemExit(f"{name!r} is reserved for records without a category")
    if cats.exists(name):
        raise SystemExit(f"Category {name!r} already exists")
    cats.add_category(name)
    print(f"🗂️ Added category {name!r}")


def cmd_category_rename(args: argparse.Namespace) -> None:
    cats = _categories_or_exit(_open(args), args.kind)
    new = args.new.strip()
    if not new:
        raise SystemExit("New category name is required")
    if cats.is_reserved(new):
        raise SystemExit(f"{new!r} is reserved for records without a category")
    if not cats.exists(args.old):
        raise SystemExit(f"No category {args.old!r}")
    if not cats.rename_category(args.old, new):
        raise SystemExit(f"Category {new!r} already exists")
    print(f"🗂️ Renamed category {args.old!r} → {new!r} (existing records keep the old name)")


def cmd_category_delete(args: argparse.Namespace) -> None:
    cats = _categories_or_exit(_open(args), args.kind)
    if not cats.exists(args.name):
        raise SystemExit(f"No category {args.name!r}")
    if not args.yes:
        raise SystemExit("Refusing to delete a category without --yes.")
    cats.delete_category(args.name)
    print(f"🗑️ Deleted category {args.name!r} (its records now show as Uncategorized)")


# -------------------------
# Core commands
# -------------------------

def _warn_if_unsaved(store: RecordStore) -> None:
    if store.last_persist_error is not None:
        print(f"⚠️ Saved in memory only, write failed: {store.last_persist_error}", file=sys.stderr)


def cmd_init(args: argparse.Namespace) -> None:
    diary = _open(args)
    existing = set(diary.storage.keys())
    for kind, entity in ENTITY_TYPES.items():
        if entity.storage_key not in existing:
            diary.store(kind).persist()
        cats = diary.categories(kind)
        if cats is not None and cats.key not in existing:
            cats.persist()
    print(f"✅ Initialized data file: {args.data_path}")


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {describe_resolution(args.data_arg, args.profile)}")


def cmd_kinds(args: argparse.Namespace) -> None:
    for name, e in ENTITY_TYPES.items():
        extras = []
        if e.category_field:
            extras.append(f"category={e.category_field}")
        if e.statuses:
            extras.append(f"status={'/'.join(e.statuses)}")
        if e.score_field:
            extras.append(f"score={e.score_field}")
        if e.reference:
            extras.append(f"ref={e.reference.field}→{e.reference.target}")
        print(f"- {name}: title={e.title_field} date={e.date_field} {' '.join(extras)}".rstrip())


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== Diarykit Doctor ===")

    assert_safe_data_path(args.data_path, args.allow_repo_data_path)
    print("✅ Data path safety guard: OK")

    data = load_json(args.data_path)
    print(f"✅ JSON readable: OK ({len(data)} keys)")

    diary = Diary(JsonFileStorage(args.data_path))
    for kind in ENTITY_TYPES:
        n = len(diary.store(kind))
        if n:
            print(f"- {kind}: {n} records")

    try:
        perms = stat.S_IMODE(args.data_path.stat().st_mode)
        print(f"🔐 File permissions: {oct(perms)} (target 0o600)")
    except FileNotFoundError:
        print("⚠️ Data file missing (run `dk init`)")

    print("=== Done ===")


def cmd_onboarding(args: argparse.Namespace) -> None:
    flag = _open(args).onboarding
    if args.action == "done":
        flag.complete()
    elif args.action == "reset":
        flag.reset()
    print("✅ onboarding complete" if flag.is_complete() else "👋 onboarding not completed")


# -------------------------
# Parser
# -------------------------

def _add_field_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--title", default=None, help="Title/name (the kind's main text field)")
    p.add_argument("--notes", default=None)
    p.add_argument("--category", default=None, help="Existing category name ('' clears it)")
    p.add_argument("--tags", default=None, help="Comma or space-separated tags")
    p.add_argument("--status", default=None)
    p.add_argument("--score", type=int, default=None, help="Score/rating 1–10")
    p.add_argument("--date", default=None, help="ISO, human, or relative (e.g. yesterday 9am)")
    p.add_argument("--ref", default=None, help="Referenced name (e.g. a match's MVP)")
    p.add_argument("--set", action="append", metavar="KEY=VALUE", help="Any other field; repeatable")


def _add_query_args(p: argparse.ArgumentParser, default_window: str = "all") -> None:
    p.add_argument("--window", choices=[w.value for w in DateWindow if w is not DateWindow.CUSTOM],
                   default=default_window, help="today, 7, 30, month, or all")
    p.add_argument("--from", dest="date_from", default=None, help="Custom range start (inclusive)")
    p.add_argument("--to", dest="date_to", default=None, help="Custom range end (inclusive)")
    p.add_argument("--sort", choices=[s.value for s in SortOrder], default=SortOrder.NEWEST.value)
    p.add_argument("--search", default=None, help="Case-insensitive text search")
    p.add_argument("--status", default=None)
    p.add_argument("--category", action="append", help="Only these categories; repeatable")
    p.add_argument("--tag", action="append", help="Only records with any of these tags; repeatable")


def build_parser() -> argparse.ArgumentParser:
    kinds = sorted(ENTITY_TYPES)
    category_kinds = sorted(k for k, e in ENTITY_TYPES.items() if e.categories_key)

    p = argparse.ArgumentParser(prog="dk", description="Diarykit personal journal toolkit")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Initialize data store safely").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)
    sub.add_parser("kinds", help="List record kinds and their fields").set_defaults(func=cmd_kinds)

    add = sub.add_parser("add", help="Add a record")
    add.add_argument("kind", choices=kinds)
    _add_field_args(add)
    add.add_argument("--format", choices=["line", "block"], default="line")
    add.set_defaults(func=cmd_add)

    edit = sub.add_parser("edit", help="Edit a record (only the given fields change)")
    edit.add_argument("kind", choices=kinds)
    edit.add_argument("id", help="Record id or unique prefix")
    _add_field_args(edit)
    edit.add_argument("--unset", action="append", metavar="KEY", help="Remove a field; repeatable")
    edit.set_defaults(func=cmd_edit)

    show = sub.add_parser("show", help="Show one record")
    show.add_argument("kind", choices=kinds)
    show.add_argument("id")
    show.set_defaults(func=cmd_show)

    flag = sub.add_parser("flag", help="Toggle a flag such as is_favorite")
    flag.add_argument("kind", choices=kinds)
    flag.add_argument("id")
    flag.add_argument("--flag", default="is_favorite")
    flag.set_defaults(func=cmd_flag)

    delete = sub.add_parser("delete", help="Delete records (requires --yes)")
    delete.add_argument("kind", choices=kinds)
    delete.add_argument("ids", nargs="+")
    delete.add_argument("--yes", action="store_true", help="Confirm deletion")
    delete.set_defaults(func=cmd_delete)

    reset = sub.add_parser("reset", help="Delete ALL records of a kind (requires --yes)")
    reset.add_argument("kind", choices=kinds)
    reset.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    reset.set_defaults(func=cmd_reset)

    rename = sub.add_parser("rename", help="Rename a referenced record (e.g. a player) everywhere")
    rename.add_argument("kind", choices=kinds)
    rename.add_argument("old")
    rename.add_argument("new")
    rename.set_defaults(func=cmd_rename)

    suggest = sub.add_parser("suggest", help="Complete a referenced name (e.g. match MVP)")
    suggest.add_argument("kind", choices=kinds)
    suggest.add_argument("text")
    suggest.add_argument("--limit", type=int, default=5)
    suggest.set_defaults(func=cmd_suggest)

    lst = sub.add_parser("list", help="List records with filters and sorting")
    lst.add_argument("kind", choices=kinds)
    _add_query_args(lst)
    lst.add_argument("--limit", type=int, default=50)
    lst.add_argument("--format", choices=["line", "block"], default="line")
    lst.set_defaults(func=cmd_list)

    export = sub.add_parser("export", help="Export records to CSV")
    export.add_argument("kind", choices=kinds)
    export.add_argument("--csv", required=True, help="Output CSV path (e.g. ~/entries.csv)")
    _add_query_args(export)
    export.set_defaults(func=cmd_export)

    stats = sub.add_parser("stats", help="Counts, shares, streaks and score trend")
    stats.add_argument("kind", choices=kinds)
    stats.add_argument("--window", choices=[w.value for w in DateWindow if w is not DateWindow.CUSTOM],
                       default="all")
    stats.add_argument("--trend-epsilon", type=float, default=0.05,
                       help="Trend sensitivity in score points/day (default 0.05)")
    stats.set_defaults(func=cmd_stats)

    streak = sub.add_parser("streak", help="Current and longest daily streak")
    streak.add_argument("kind", choices=kinds)
    streak.set_defaults(func=cmd_streak)

    cal = sub.add_parser("calendar", help="Month grid marking days with records")
    cal.add_argument("kind", choices=kinds)
    cal.add_argument("--month", default=None, help="YYYY-MM (default: this month)")
    cal.set_defaults(func=cmd_calendar)

    # ---- category ----
    category = sub.add_parser("category", help="Manage categories")
    category.add_argument("kind", choices=category_kinds)
    cat_sub = category.add_subparsers(dest="category_cmd", required=True)
    cat_sub.add_parser("list", help="List categories with record counts").set_defaults(func=cmd_category_list)

    cat_add = cat_sub.add_parser("add", help="Add a custom category")
    cat_add.add_argument("name")
    cat_add.set_defaults(func=cmd_category_add)

    cat_rename = cat_sub.add_parser("rename", help="Rename a category (records are not changed)")
    cat_rename.add_argument("old")
    cat_rename.add_argument("new")
    cat_rename.set_defaults(func=cmd_category_rename)

    cat_delete = cat_sub.add_parser("delete", help="Delete a category (requires --yes)")
    cat_delete.add_argument("name")
    cat_delete.add_argument("--yes", action="store_true")
    cat_delete.set_defaults(func=cmd_category_delete)

    onboarding = sub.add_parser("onboarding", help="Show or change the first-run flag")
    onboarding.add_argument("action", choices=["status", "done", "reset"], nargs="?", default="status")
    onboarding.set_defaults(func=cmd_onboarding)

    return p


def main(argv=None) -> None:
    p = build_parser()
    args = p.parse_args(argv)
    configure_logging(args.verbose)

    args.data_arg = args.data
    try:
        args.data_path = resolve_data_path(args.data, args.profile)
    except DiarykitError as e:
        raise SystemExit(str(e)) from None

    try:
        assert_safe_data_path(args.data_path, args.allow_repo_data_path)
    except UnsafeDataPathError as e:
        print("🚫 Refusing to use a data file inside a git repo.", file=sys.stderr)
        print(f"   data_path: {e.data_path}", file=sys.stderr)
        print(f"   repo_root: {e.repo_root}", file=sys.stderr)
        print(
            "   Fix: use ~/.config/diarykit/*.json or pass --allow-repo-data-path",
            file=sys.stderr,
        )
        raise SystemExit(2)

    try:
        args.func(args)
    except TimeParseError as e:
        raise SystemExit(str(e)) from None


if __name__ == "__main__":
    main()
