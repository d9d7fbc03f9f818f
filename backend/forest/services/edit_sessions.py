"""Advisory "someone is editing this" presence for text entries.

Sessions never block a write; they only let the UI show who else has an
entry open. A session counts as active while its last heartbeat is
younger than ``EDIT_SESSION_TTL_MINUTES``.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from .. import models
from ..errors import NotFoundError

EDIT_SESSION_TTL_MINUTES = int(os.getenv("EDIT_SESSION_TTL_MINUTES", "5"))


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _cutoff(now: datetime | None = None) -> datetime:
    # sqlite hands back naive datetimes, so compare in naive UTC
    moment = (now or _now()) - timedelta(minutes=EDIT_SESSION_TTL_MINUTES)
    return moment.replace(tzinfo=None)


def touch_session(
    db: Session,
    text_entry_id: UUID,
    user_id: UUID,
    language_code: str | None = None,
) -> models.EditSession:
    if db.get(models.TextEntry, text_entry_id) is None:
        raise NotFoundError("Text entry not found")
    now = _now()
    session = (
        db.query(models.EditSession)
        .filter(
            models.EditSession.text_entry_id == text_entry_id,
            models.EditSession.user_id == user_id,
            models.EditSession.is_active.is_(True),
        )
        .order_by(models.EditSession.last_activity.desc())
        .first()
    )
    if session is None:
        session = models.EditSession(
            text_entry_id=text_entry_id,
            user_id=user_id,
            language_code=language_code,
            started_at=now,
        )
        db.add(session)
    elif language_code is not None:
        session.language_code = language_code
    session.last_activity = now
    session.is_active = True
    db.flush()
    return session


def end_session(db: Session, text_entry_id: UUID, user_id: UUID) -> int:
    """Close the caller's sessions on the entry; returns how many were open."""

    sessions = (
        db.query(models.EditSession)
        .filter(
            models.EditSession.text_entry_id == text_entry_id,
            models.EditSession.user_id == user_id,
            models.EditSession.is_active.is_(True),
        )
        .all()
    )
    for session in sessions:
        session.is_active = False
    db.flush()
    return len(sessions)


def list_active_sessions(
    db: Session,
    text_entry_id: UUID,
    *,
    exclude_user_id: UUID | None = None,
    now: datetime | None = None,
) -> list[models.EditSession]:
    query = (
        db.query(models.EditSession)
        .options(joinedload(models.EditSession.user))
        .filter(
            models.EditSession.text_entry_id == text_entry_id,
            models.EditSession.is_active.is_(True),
            models.EditSession.last_activity >= _cutoff(now),
        )
    )
    if exclude_user_id is not None:
        query = query.filter(models.EditSession.user_id != exclude_user_id)
    return query.order_by(models.EditSession.last_activity.desc()).all()
