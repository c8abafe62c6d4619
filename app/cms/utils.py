from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.cms.validation import ValidationError, parse_int

Cleaner = Callable[[dict], tuple[dict, list[str]]]


def apply_changes(obj: Any, values: dict) -> dict:
    """Set attributes on `obj`, returning {field: {old, new}} for the ones that changed."""
    changes: dict[str, dict] = {}
    for key, new in values.items():
        old = getattr(obj, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(obj, key, new)
    return changes


def sync_items(s: Session, model: type, items: Any, clean: Cleaner, *, label: str) -> dict:
    """
    Apply a list of item payloads to `model` rows.

    Items with an `id` update that row (or delete it when `_delete` is true);
    items without one are created. All errors are collected and raised together
    as a ValidationError; the caller rolls back.
    """
    if items is None:
        return {"created": 0, "updated": 0, "deleted": 0}
    if not isinstance(items, list):
        raise ValidationError(f"{label} must be a list.")

    errors: list[tuple[int, str]] = []
    summary = {"created": 0, "updated": 0, "deleted": 0}
    pending: list[tuple[int, dict, Any]] = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            errors.append((idx, f"{label} #{idx}: must be an object."))
            continue
        raw_id = item.get("id")
        item_id = parse_int(raw_id) if raw_id not in (None, "") else None
        if raw_id not in (None, "") and item_id is None:
            errors.append((idx, f"{label} #{idx}: invalid id."))
            continue

        row = None
        if item_id is not None:
            row = s.get(model, item_id)
            if row is None:
                errors.append((idx, f"{label} #{idx}: id {item_id} not found."))
                continue
            if item.get("_delete") is True:
                s.delete(row)
                summary["deleted"] += 1
                continue
        pending.append((idx, item, row))

    # deletes must reach the database before inserts that reuse a unique value
    if summary["deleted"]:
        s.flush()

    for idx, item, row in pending:
        cleaned, item_errors = clean(item)
        if item_errors:
            errors.extend((idx, f"{label} #{idx}: {e}") for e in item_errors)
            continue

        if row is not None:
            if apply_changes(row, cleaned):
                if hasattr(row, "updated_at"):
                    row.updated_at = datetime.utcnow()
                summary["updated"] += 1
        else:
            s.add(model(**cleaned))
            summary["created"] += 1

    if errors:
        raise ValidationError([msg for _, msg in sorted(errors, key=lambda e: e[0])])
    s.flush()
    return summary
