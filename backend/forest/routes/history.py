import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import ForestError
from ..rbac import Permission, require_permission, require_text_operation
from .. import history, models, schemas
from .common import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/{entry_id}", response_model=schemas.HistoryPage)
async def list_history(
    entry_id: UUID,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_permission(user, Permission.VIEW_EDIT_HISTORY)
    limit = min(max(limit, 1), 200)
    offset = max(offset, 0)
    try:
        records, total = history.list_history(db, entry_id, limit=limit, offset=offset)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    return schemas.HistoryPage(
        items=[schemas.HistoryOut.model_validate(r) for r in records],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )


@router.post("/{entry_id}/revert", response_model=schemas.TextEntryOut)
async def revert_to_history(
    entry_id: UUID,
    payload: schemas.RevertRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    try:
        record = history.get_history_record(db, entry_id, payload.history_id)
        require_text_operation(user, "update", record.text_kind)
        entry = history.revert_to_history(db, entry_id, payload.history_id, user.id)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    db.refresh(entry)
    return entry
