"""Reference data writers consult while editing: characters, tags, forbidden words, proper nouns, styles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlossaryKind:
    model: type
    key: str
    label: str
    search_fields: tuple[str, ...]
    tracks_authors: bool = False


KINDS: dict[str, GlossaryKind] = {
    "characters": GlossaryKind(
        models.Character, "name", "Character", ("name", "description"), tracks_authors=True
    ),
    "tags": GlossaryKind(models.Tag, "name", "Tag", ("name", "display_text", "description")),
    "forbidden-words": GlossaryKind(
        models.ForbiddenWord, "word", "Forbidden word", ("word", "replacement", "reason")
    ),
    "proper-nouns": GlossaryKind(
        models.ProperNoun, "term", "Proper noun", ("term", "reading", "translation", "description")
    ),
    "styles": GlossaryKind(models.Style, "name", "Style", ("name", "font")),
}


def _kind(kind: str) -> GlossaryKind:
    try:
        return KINDS[kind]
    except KeyError as exc:
        raise ValidationError(f"Unknown glossary kind: {kind}") from exc


def list_items(db: Session, kind: str, search: str | None = None) -> list[Any]:
    spec = _kind(kind)
    query = db.query(spec.model)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(*(getattr(spec.model, name).ilike(pattern) for name in spec.search_fields))
        )
    return query.order_by(getattr(spec.model, spec.key)).all()


def get_item(db: Session, kind: str, item_id: UUID):
    spec = _kind(kind)
    item = db.get(spec.model, item_id)
    if item is None:
        raise NotFoundError(f"{spec.label} not found")
    return item


def _ensure_unique(db: Session, spec: GlossaryKind, value: str, exclude_id: UUID | None = None) -> None:
    column = getattr(spec.model, spec.key)
    query = db.query(spec.model.id).filter(column == value)
    if exclude_id is not None:
        query = query.filter(spec.model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{spec.label} already exists: {value}")


def _flush(db: Session, spec: GlossaryKind) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f"{spec.label} already exists") from exc


def create_item(db: Session, kind: str, data: dict[str, Any], actor_id: UUID | None = None):
    spec = _kind(kind)
    value = (data.get(spec.key) or "").strip()
    if not value:
        raise ValidationError(f"{spec.key} is required")
    _ensure_unique(db, spec, value)
    item = spec.model(**{**data, spec.key: value})
    if spec.tracks_authors:
        item.created_by = actor_id
        item.updated_by = actor_id
    db.add(item)
    _flush(db, spec)
    logger.info("created %s %s", spec.label.lower(), value)
    return item


def update_item(
    db: Session,
    kind: str,
    item_id: UUID,
    changes: dict[str, Any],
    actor_id: UUID | None = None,
):
    spec = _kind(kind)
    item = get_item(db, kind, item_id)
    if spec.key in changes:
        value = (changes[spec.key] or "").strip()
        if not value:
            raise ValidationError(f"{spec.key} is required")
        _ensure_unique(db, spec, value, exclude_id=item.id)
        changes = {**changes, spec.key: value}
    for name, value in changes.items():
        setattr(item, name, value)
    if spec.tracks_authors:
        item.updated_by = actor_id
    _flush(db, spec)
    return item


def delete_item(db: Session, kind: str, item_id: UUID) -> None:
    spec = _kind(kind)
    item = get_item(db, kind, item_id)
    db.delete(item)
    db.flush()
    logger.info("deleted %s %s", spec.label.lower(), getattr(item, spec.key))


def find_forbidden_words(db: Session, text: str) -> list[dict[str, Any]]:
    """Every forbidden word occurring in ``text``, with its offsets and suggested replacement."""

    if not text:
        return []
    haystack = text.lower()
    matches = []
    for word in db.query(models.ForbiddenWord).order_by(models.ForbiddenWord.word).all():
        needle = word.word.lower()
        if not needle:
            continue
        positions = []
        start = haystack.find(needle)
        while start != -1:
            positions.append(start)
            start = haystack.find(needle, start + len(needle))
        if positions:
            matches.append(
                {
                    "word": word.word,
                    "replacement": word.replacement,
                    "reason": word.reason,
                    "category": word.category,
                    "positions": positions,
                }
            )
    return matches
