from uuid import UUID
from datetime import datetime
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends
from ..database import get_db
from ..auth import get_current_user
from ..rbac import Permission, has_permission, require_permission
from .. import models, schemas, audit

router = APIRouter(prefix="/api/audit", tags=["audit"])


def _scope(current_user: models.User, user_id: UUID | None) -> UUID | None:
    # admins may read anyone's trail (or everyone's); others only their own
    if has_permission(current_user.role, Permission.ADMIN_ACCESS):
        return user_id
    if user_id is not None and user_id != current_user.id:
        require_permission(current_user, Permission.ADMIN_ACCESS)
    return current_user.id


@router.get("/", response_model=list[schemas.AuditLogOut])
async def list_logs(
    user_id: UUID | None = None,
    action: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return audit.list_logs(
        db,
        user_id=_scope(current_user, user_id),
        action=action,
        limit=min(max(limit, 1), 500),
        offset=max(offset, 0),
    )


@router.get("/report", response_model=list[schemas.AuditReportItem])
async def audit_report(
    start: datetime,
    end: datetime,
    user_id: UUID | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return audit.generate_report(db, start, end, _scope(current_user, user_id))
