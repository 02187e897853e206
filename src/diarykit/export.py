from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable

from .entities import EntityType

LEADING_FIELDS = ["id", "created_at"]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items())
    return value


def csv_fields(records: list[dict[str, Any]], entity: EntityType) -> list[str]:
    fields = list(LEADING_FIELDS)
    for name in (entity.date_field, entity.title_field):
        if name not in fields:
            fields.append(name)
    for r in records:
        for k in r:
            if k not in fields:
                fields.append(k)
    return fields


def write_csv(out_path: Path, fieldnames: list[str], rows: list[dict[str, Any]]) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, quoting=csv.QUOTE_MINIMAL)
        w.writeheader()
        if rows:
            w.writerows(rows)


def export_csv(records: Iterable[dict[str, Any]], entity: EntityType, out_path: Path) -> int:
    """Write records (already filtered/sorted by the caller) as CSV. Returns the row count."""
    rows = list(records)
    fields = csv_fields(rows, entity)
    write_csv(Path(out_path), fields, [{k: _cell(r.get(k)) for k in fields} for r in rows])
    return len(rows)
