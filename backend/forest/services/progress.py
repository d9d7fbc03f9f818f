"""Translation progress rollups for the dashboard."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..errors import ValidationError
from ..workflow import TEXT_STATUSES, TRANSLATION_STATUSES, TextStatus

GROUP_BY_OPTIONS = ("status", "category", "language")
RECENT_ACTIVITY_LIMIT = 10

_STATUS_ORDER = [status.value for status in TextStatus]


def _percent(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 2) if whole else 0.0


def _group(key: str | None, counts: dict[str, int], statuses, overall: int) -> dict[str, Any]:
    total = sum(counts.values())
    return {
        "key": key,
        "total": total,
        "counts": {status: counts.get(status, 0) for status in _STATUS_ORDER if status in statuses},
        "percentage": _percent(total, overall),
        "completion_rate": _percent(counts.get("completed", 0), total),
    }


def _grouped_counts(rows) -> dict[str | None, dict[str, int]]:
    grouped: dict[str | None, dict[str, int]] = defaultdict(dict)
    for key, status, count in rows:
        grouped[key][status] = count
    return grouped


def summarize(db: Session, group_by: str = "status", category: str | None = None) -> dict[str, Any]:
    """Count entries (or translations, for ``language``) per group and status."""

    if group_by not in GROUP_BY_OPTIONS:
        raise ValidationError(
            f"Invalid group_by: {group_by}. Use one of: {', '.join(GROUP_BY_OPTIONS)}"
        )

    entries = db.query(models.TextEntry.status, func.count(models.TextEntry.id))
    if category:
        entries = entries.filter(models.TextEntry.file_category == category)
    totals_by_status = dict(entries.group_by(models.TextEntry.status).all())
    total = sum(totals_by_status.values())

    groups: list[dict[str, Any]] = []
    if group_by == "status":
        for status in _STATUS_ORDER:
            count = totals_by_status.get(status, 0)
            if count:
                groups.append(_group(status, {status: count}, TEXT_STATUSES, total))
    elif group_by == "category":
        query = db.query(
            models.TextEntry.file_category,
            models.TextEntry.status,
            func.count(models.TextEntry.id),
        )
        if category:
            query = query.filter(models.TextEntry.file_category == category)
        grouped = _grouped_counts(
            query.group_by(models.TextEntry.file_category, models.TextEntry.status).all()
        )
        groups = [_group(key, counts, TEXT_STATUSES, total) for key, counts in grouped.items()]
    else:
        query = db.query(
            models.Translation.language_code,
            models.Translation.status,
            func.count(models.Translation.id),
        ).join(models.TextEntry, models.Translation.text_entry_id == models.TextEntry.id)
        if category:
            query = query.filter(models.TextEntry.file_category == category)
        grouped = _grouped_counts(
            query.group_by(models.Translation.language_code, models.Translation.status).all()
        )
        overall = sum(sum(counts.values()) for counts in grouped.values())
        groups = [
            _group(key, counts, TRANSLATION_STATUSES, overall) for key, counts in grouped.items()
        ]
    if group_by != "status":
        groups.sort(key=lambda g: (-g["total"], g["key"] or ""))

    return {
        "group_by": group_by,
        "total": total,
        "totals": {status: totals_by_status.get(status, 0) for status in _STATUS_ORDER},
        "groups": groups,
        "recent_activity": recent_activity(db, category=category),
    }


def recent_activity(
    db: Session,
    *,
    category: str | None = None,
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> list[dict[str, Any]]:
    query = (
        db.query(models.EditHistory, models.TextEntry.label, models.User.username)
        .join(models.TextEntry, models.EditHistory.text_entry_id == models.TextEntry.id)
        .outerjoin(models.User, models.EditHistory.edited_by == models.User.id)
    )
    if category:
        query = query.filter(models.TextEntry.file_category == category)
    rows = (
        query.order_by(models.EditHistory.created_at.desc(), models.EditHistory.sequence.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": record.id,
            "text_entry_id": record.text_entry_id,
            "label": label,
            "edit_type": record.edit_type,
            "language_code": record.language_code,
            "editor_name": username,
            "created_at": record.created_at,
        }
        for record, label, username in rows
    ]
