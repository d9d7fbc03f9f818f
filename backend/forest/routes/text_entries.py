import math
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import ForestError
from ..rbac import require_resource, require_text_operation
from ..services import edit_sessions, text_entries
from .. import history, models, schemas
from .common import http_error

router = APIRouter(prefix="/api/text-entries", tags=["text-entries"])

DETAIL_HISTORY_LIMIT = 100


def _detail(db: Session, entry: models.TextEntry) -> schemas.TextEntryDetail:
    records, _ = history.list_history(db, entry.id, limit=DETAIL_HISTORY_LIMIT)
    sessions = edit_sessions.list_active_sessions(db, entry.id)
    return schemas.TextEntryDetail(
        **schemas.TextEntryOut.model_validate(entry).model_dump(),
        history=[schemas.HistoryOut.model_validate(r) for r in records],
        active_sessions=[schemas.EditSessionOut.model_validate(s) for s in sessions],
    )


@router.get("/", response_model=schemas.TextEntryPage)
async def list_text_entries(
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    status: str | None = None,
    category: str | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    try:
        entries, total = text_entries.list_text_entries(
            db, page=page, limit=limit, search=search, status=status, category=category
        )
    except ForestError as exc:
        raise http_error(db, exc) from exc
    page = max(page, 1)
    limit = min(max(limit, 1), text_entries.MAX_PAGE_SIZE)
    return schemas.TextEntryPage(
        items=[schemas.TextEntryOut.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.post("/", response_model=schemas.TextEntryOut)
async def create_text_entry(
    payload: schemas.TextEntryCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "create", "original")
    try:
        entry = text_entries.create_text_entry(db, payload.model_dump(), user.id)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/{entry_id}", response_model=schemas.TextEntryDetail)
async def get_text_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    try:
        entry = text_entries.get_text_entry(db, entry_id)
        return _detail(db, entry)
    except ForestError as exc:
        raise http_error(db, exc) from exc


@router.put("/{entry_id}", response_model=schemas.TextEntryOut)
async def update_text_entry(
    entry_id: UUID,
    payload: schemas.TextEntryUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "update", "original")
    changes = payload.model_dump(exclude_unset=True)
    expected_version = changes.pop("expected_version", None)
    try:
        entry = text_entries.update_text_entry(
            db, entry_id, changes, user.id, expected_version=expected_version
        )
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{entry_id}")
async def delete_text_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "delete", "original")
    try:
        text_entries.delete_text_entry(db, entry_id, user.id)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    return {"detail": "deleted"}


@router.put("/{entry_id}/translations/{language_code}", response_model=schemas.TranslationOut)
async def upsert_translation(
    entry_id: UUID,
    language_code: str,
    payload: schemas.TranslationUpsert,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    language_code = language_code.strip()
    exists = text_entries.get_translation(db, entry_id, language_code) is not None
    require_text_operation(user, "update" if exists else "create", "translation")
    try:
        translation = text_entries.upsert_translation(
            db,
            entry_id,
            language_code,
            payload.model_dump(exclude_unset=True),
            user.id,
            user.role,
        )
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(translation)
    return translation


@router.put("/{entry_id}/tags", response_model=schemas.TextEntryOut)
async def set_entry_tags(
    entry_id: UUID,
    payload: schemas.EntryTagsUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_resource(user, "text-editing")
    try:
        entry = text_entries.set_entry_tags(db, entry_id, payload.tag_ids, user.id)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/{entry_id}/sessions", response_model=list[schemas.EditSessionOut])
async def list_sessions(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    return edit_sessions.list_active_sessions(db, entry_id)


@router.post("/{entry_id}/sessions", response_model=schemas.EditSessionOut)
async def touch_session(
    entry_id: UUID,
    payload: schemas.EditSessionTouch,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    try:
        session = edit_sessions.touch_session(db, entry_id, user.id, payload.language_code)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(session)
    return session


@router.delete("/{entry_id}/sessions")
async def end_session(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    closed = edit_sessions.end_session(db, entry_id, user.id)
    db.commit()
    return {"closed": closed}
