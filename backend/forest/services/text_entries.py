"""Text entry and translation mutations."""

# purpose: create, update and delete source strings and their translations, logging each change
# status: active
# depends_on: forest.history, forest.workflow, forest.rbac, forest.audit

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from .. import audit, history, models
from ..errors import ConflictError, NotFoundError, ValidationError
from ..rbac import Permission, has_permission
from ..workflow import INITIAL_STATUS, can_transition, normalize_status

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_LANGUAGE = os.getenv("DEFAULT_SOURCE_LANGUAGE", "ja")
MAX_PAGE_SIZE = 200

ENTRY_FIELDS = (
    "label",
    "file_category",
    "original_text",
    "language_code",
    "status",
    "max_chars",
    "max_lines",
)


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _entry_query(db: Session):
    return db.query(models.TextEntry).options(
        selectinload(models.TextEntry.translations),
        selectinload(models.TextEntry.tags),
    )


def get_text_entry(db: Session, entry_id: UUID) -> models.TextEntry:
    entry = _entry_query(db).filter(models.TextEntry.id == entry_id).first()
    if entry is None:
        raise NotFoundError("Text entry not found")
    return entry


def get_translation(db: Session, entry_id: UUID, language_code: str) -> models.Translation | None:
    return (
        db.query(models.Translation)
        .filter(
            models.Translation.text_entry_id == entry_id,
            models.Translation.language_code == language_code,
        )
        .first()
    )


def find_entry_by_label(db: Session, label: str) -> models.TextEntry | None:
    return db.query(models.TextEntry).filter(models.TextEntry.label == label).first()


def list_text_entries(
    db: Session,
    *,
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    status: str | None = None,
    category: str | None = None,
) -> tuple[list[models.TextEntry], int]:
    """Return one page of entries, most recently updated first, and the match count."""

    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    query = _entry_query(db)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.TextEntry.label.ilike(pattern),
                models.TextEntry.original_text.ilike(pattern),
            )
        )
    if status:
        resolved = normalize_status(status)
        if resolved is None:
            raise ValidationError(f"Unknown status: {status}")
        query = query.filter(models.TextEntry.status == resolved)
    if category:
        query = query.filter(models.TextEntry.file_category == category)
    total = query.count()
    entries = (
        query.order_by(models.TextEntry.updated_at.desc(), models.TextEntry.label)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return entries, total


def _ensure_label_free(db: Session, label: str, exclude_id: UUID | None = None) -> None:
    query = db.query(models.TextEntry.id).filter(models.TextEntry.label == label)
    if exclude_id is not None:
        query = query.filter(models.TextEntry.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Label already exists: {label}")


def _load_tags(db: Session, tag_ids: Iterable[UUID]) -> list[models.Tag]:
    wanted = list(dict.fromkeys(tag_ids))
    if not wanted:
        return []
    tags = db.query(models.Tag).filter(models.Tag.id.in_(wanted)).all()
    if len(tags) != len(wanted):
        raise NotFoundError("Tag not found")
    return tags


def create_text_entry(
    db: Session,
    data: dict[str, Any],
    actor_id: UUID | None,
) -> models.TextEntry:
    """Insert a new entry in ``pending`` (unless told otherwise) and log a ``create`` row."""

    label = (data.get("label") or "").strip()
    original_text = data.get("original_text")
    if not label or _blank(original_text):
        raise ValidationError("label and original_text are required")
    _ensure_label_free(db, label)

    status = INITIAL_STATUS
    if data.get("status"):
        status = normalize_status(data["status"])
        if status is None:
            raise ValidationError(f"Unknown status: {data['status']}")

    entry = models.TextEntry(
        label=label,
        file_category=data.get("file_category") or None,
        original_text=original_text,
        language_code=data.get("language_code") or DEFAULT_SOURCE_LANGUAGE,
        status=status,
        max_chars=data.get("max_chars"),
        max_lines=data.get("max_lines"),
        version=1,
        created_by=actor_id,
        updated_by=actor_id,
    )
    entry.tags = _load_tags(db, data.get("tag_ids") or [])
    db.add(entry)
    db.flush()
    history.record_edit(
        db,
        text_entry_id=entry.id,
        language_code=entry.language_code,
        old_text=None,
        new_text=entry.original_text,
        editor_id=actor_id,
        edit_type="create",
    )
    logger.info("created text entry %s (%s)", entry.id, entry.label)
    return entry


def update_text_entry(
    db: Session,
    entry_id: UUID,
    changes: dict[str, Any],
    actor_id: UUID | None,
    *,
    expected_version: int | None = None,
) -> models.TextEntry:
    """Apply ``changes`` to an entry and log an ``update`` row with old and new source text.

    ``changes`` holds only the fields the caller actually sent. A stale
    ``expected_version`` raises ``ConflictError`` before anything is written.
    """

    entry = get_text_entry(db, entry_id)
    if expected_version is not None and expected_version != entry.version:
        raise ConflictError(
            f"Text entry was modified (version {entry.version}, expected {expected_version})"
        )
    changes = dict(changes)
    unknown = set(changes) - set(ENTRY_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "label" in changes:
        label = (changes["label"] or "").strip()
        if not label:
            raise ValidationError("label is required")
        _ensure_label_free(db, label, exclude_id=entry.id)
        changes["label"] = label
    if "original_text" in changes and _blank(changes["original_text"]):
        raise ValidationError("original_text is required")
    if "status" in changes:
        target = normalize_status(changes["status"])
        if target is None:
            raise ValidationError(f"Unknown status: {changes['status']}")
        if not can_transition(entry.status, target):
            raise ValidationError(f"Cannot move status from {entry.status} to {target}")
        changes["status"] = target
    if "language_code" in changes:
        language = (changes["language_code"] or "").strip()
        if not language:
            raise ValidationError("language_code is required")
        if language != entry.language_code and get_translation(db, entry.id, language):
            raise ValidationError(f"A {language} translation already exists for this entry")
        changes["language_code"] = language

    previous_text = entry.original_text
    for field, value in changes.items():
        setattr(entry, field, value)
    entry.updated_by = actor_id
    entry.version = (entry.version or 0) + 1
    history.record_edit(
        db,
        text_entry_id=entry.id,
        language_code=entry.language_code,
        old_text=previous_text,
        new_text=entry.original_text,
        editor_id=actor_id,
        edit_type="update",
    )
    logger.info("updated text entry %s to version %s", entry.id, entry.version)
    return entry


def delete_text_entry(db: Session, entry_id: UUID, actor_id: UUID | None) -> None:
    """Remove an entry with its translations and ledger, leaving an audit tombstone."""

    entry = get_text_entry(db, entry_id)
    discarded = (
        db.query(models.EditHistory)
        .filter(models.EditHistory.text_entry_id == entry.id)
        .count()
    )
    audit.log_action(
        db,
        actor_id,
        "delete_text_entry",
        "text_entry",
        entry.id,
        {
            "label": entry.label,
            "language_code": entry.language_code,
            "original_text": entry.original_text,
            "translations": {t.language_code: t.translated_text for t in entry.translations},
            "history_rows": discarded,
        },
    )
    db.delete(entry)
    db.flush()
    logger.info("deleted text entry %s (%s), %s history rows discarded", entry_id, entry.label, discarded)


def upsert_translation(
    db: Session,
    entry_id: UUID,
    language_code: str,
    data: dict[str, Any],
    actor_id: UUID | None,
    actor_role: str | None = None,
) -> models.Translation:
    """Create or update the single translation of an entry for ``language_code``."""

    entry = get_text_entry(db, entry_id)
    language_code = (language_code or "").strip()
    if not language_code:
        raise ValidationError("language_code is required")
    if language_code == entry.language_code:
        raise ValidationError("Translation language must differ from the source language")

    translation = get_translation(db, entry.id, language_code)
    created = translation is None
    if created:
        translation = models.Translation(
            text_entry_id=entry.id,
            language_code=language_code,
            status=INITIAL_STATUS,
        )
        db.add(translation)

    if data.get("status") is not None:
        target = normalize_status(data["status"], translation=True)
        if target is None:
            raise ValidationError(f"Unknown translation status: {data['status']}")
        if not can_transition(None if created else translation.status, target, translation=True):
            raise ValidationError(f"Cannot move status from {translation.status} to {target}")
        translation.status = target
        if target == "completed" and has_permission(actor_role, Permission.REVIEW_TRANSLATIONS):
            translation.reviewer_id = actor_id

    previous_text = translation.translated_text
    if "translated_text" in data and data["translated_text"] != previous_text:
        translation.translated_text = data["translated_text"]
        translation.translator_id = actor_id

    entry.updated_by = actor_id
    entry.version = (entry.version or 0) + 1
    db.flush()
    history.record_edit(
        db,
        text_entry_id=entry.id,
        language_code=language_code,
        old_text=previous_text,
        new_text=translation.translated_text,
        editor_id=actor_id,
        edit_type="create" if created else "update",
        text_kind="translation",
    )
    logger.info(
        "%s %s translation for text entry %s",
        "created" if created else "updated",
        language_code,
        entry.id,
    )
    return translation


def set_entry_tags(
    db: Session,
    entry_id: UUID,
    tag_ids: Sequence[UUID],
    actor_id: UUID | None,
) -> models.TextEntry:
    entry = get_text_entry(db, entry_id)
    entry.tags = _load_tags(db, tag_ids)
    entry.updated_by = actor_id
    entry.version = (entry.version or 0) + 1
    db.flush()
    return entry
