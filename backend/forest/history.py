"""Append-only edit history for text entries and their translations."""

from __future__ import annotations

import logging
from typing import Literal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from . import models
from .errors import NotFoundError, ValidationError

# purpose: record every mutation of a text entry and replay earlier text on demand
# inputs: SQLAlchemy session, entry identifiers, old/new text, editor id
# outputs: EditHistory rows with a per-entry sequence; reverted TextEntry rows
# status: active

logger = logging.getLogger(__name__)

EditType = Literal["create", "update", "delete"]
EDIT_TYPES = ("create", "update", "delete")
TextKind = Literal["original", "translation"]
TEXT_KINDS = ("original", "translation")


def _next_sequence(db: Session, text_entry_id: UUID) -> int:
    latest = (
        db.query(func.max(models.EditHistory.sequence))
        .filter(models.EditHistory.text_entry_id == text_entry_id)
        .scalar()
    )
    return 1 if latest is None else latest + 1


def record_edit(
    db: Session,
    *,
    text_entry_id: UUID,
    language_code: str,
    old_text: str | None,
    new_text: str | None,
    editor_id: UUID | None,
    edit_type: EditType,
    text_kind: TextKind = "original",
) -> models.EditHistory:
    """Append one ledger row. Existing rows are never touched."""

    if edit_type not in EDIT_TYPES:
        raise ValidationError(f"Unknown edit type: {edit_type}")
    if text_kind not in TEXT_KINDS:
        raise ValidationError(f"Unknown text kind: {text_kind}")
    record = models.EditHistory(
        text_entry_id=text_entry_id,
        sequence=_next_sequence(db, text_entry_id),
        language_code=language_code,
        old_text=None if edit_type == "create" else old_text,
        new_text=None if edit_type == "delete" else new_text,
        edited_by=editor_id,
        edit_type=edit_type,
        text_kind=text_kind,
    )
    db.add(record)
    # the next append in this transaction must see this sequence number
    db.flush()
    return record


def list_history(
    db: Session,
    text_entry_id: UUID,
    *,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[models.EditHistory], int]:
    """Return one page of ledger rows, newest first, plus the total row count."""

    if db.get(models.TextEntry, text_entry_id) is None:
        raise NotFoundError("Text entry not found")
    query = db.query(models.EditHistory).filter(models.EditHistory.text_entry_id == text_entry_id)
    total = query.count()
    records = (
        query.options(joinedload(models.EditHistory.editor))
        .order_by(models.EditHistory.sequence.desc())
        .offset(max(offset, 0))
        .limit(max(limit, 0))
        .all()
    )
    return records, total


def get_history_record(db: Session, text_entry_id: UUID, history_id: UUID) -> models.EditHistory:
    # scoped to the entry so one entry's id can never reach another entry's ledger
    record = (
        db.query(models.EditHistory)
        .filter(
            models.EditHistory.id == history_id,
            models.EditHistory.text_entry_id == text_entry_id,
        )
        .first()
    )
    if record is None:
        raise NotFoundError("History entry not found")
    return record


def revert_to_history(
    db: Session,
    text_entry_id: UUID,
    history_id: UUID,
    actor_id: UUID | None,
) -> models.TextEntry:
    """Re-apply the text stored in ``history_id`` and log it as a new update.

    Records of the original text restore ``original_text`` even if the
    entry's source language changed since; translation records restore the
    translation for the language they were written in.
    """

    entry = db.get(models.TextEntry, text_entry_id)
    if entry is None:
        raise NotFoundError("Text entry not found")
    target = get_history_record(db, text_entry_id, history_id)
    if target.edit_type == "delete":
        raise ValidationError("Cannot revert to a delete record")
    if target.new_text is None:
        raise ValidationError("History entry has no text to restore")

    restored = target.new_text
    if target.text_kind == "original":
        language_code = entry.language_code
        previous = entry.original_text
        entry.original_text = restored
    else:
        language_code = target.language_code
        if language_code == entry.language_code:
            raise ValidationError("Translation language is now the source language of this entry")
        translation = (
            db.query(models.Translation)
            .filter(
                models.Translation.text_entry_id == entry.id,
                models.Translation.language_code == target.language_code,
            )
            .first()
        )
        if translation is None:
            translation = models.Translation(
                text_entry_id=entry.id,
                language_code=target.language_code,
            )
            db.add(translation)
        previous = translation.translated_text
        translation.translated_text = restored
        translation.translator_id = actor_id
    entry.updated_by = actor_id
    entry.version = (entry.version or 0) + 1

    record_edit(
        db,
        text_entry_id=entry.id,
        language_code=language_code,
        old_text=previous,
        new_text=restored,
        editor_id=actor_id,
        edit_type="update",
        text_kind=target.text_kind,
    )
    logger.info(
        "reverted text entry %s (%s) to history %s (sequence %s)",
        entry.id,
        language_code,
        target.id,
        target.sequence,
    )
    return entry
