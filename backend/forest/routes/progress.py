from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import ForestError
from ..rbac import require_text_operation
from ..services import progress
from .. import models, schemas
from .common import http_error

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("/", response_model=schemas.ProgressOut)
async def read_progress(
    group_by: str = "status",
    category: str | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    try:
        return progress.summarize(db, group_by=group_by, category=category)
    except ForestError as exc:
        raise http_error(db, exc) from exc
