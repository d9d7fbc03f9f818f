import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas, auth, audit
from ..rbac import (
    AccessContext,
    Permission,
    check_access,
    can_modify_user_role,
    has_permission,
    permissions_of,
    require_permission,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _get_user(db: Session, user_id: UUID) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _require_self_or_manager(current_user: models.User, target: models.User) -> None:
    context = AccessContext(role=current_user.role, user_id=current_user.id, resource_owner_id=target.id)
    if not check_access(context, Permission.MANAGE_USERS, allow_owner_access=True):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


@router.get("/", response_model=list[schemas.UserOut])
async def list_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    require_permission(current_user, Permission.MANAGE_USERS)
    return db.query(models.User).order_by(models.User.created_at.desc()).all()


@router.get("/me", response_model=schemas.UserOut)
async def read_profile(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.get("/permissions", response_model=schemas.PermissionsOut)
async def read_permissions(current_user: models.User = Depends(auth.get_current_user)):
    return schemas.PermissionsOut(
        role=current_user.role,
        permissions=sorted(p.value for p in permissions_of(current_user.role)),
    )


@router.get("/{user_id}", response_model=schemas.UserOut)
async def read_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    target = _get_user(db, user_id)
    _require_self_or_manager(current_user, target)
    return target


@router.put("/{user_id}", response_model=schemas.UserOut)
async def update_user(
    user_id: UUID,
    update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    target = _get_user(db, user_id)
    _require_self_or_manager(current_user, target)
    changes = update.model_dump(exclude_unset=True)
    if target.id != current_user.id and not can_modify_user_role(current_user.role, target.role):
        raise HTTPException(status_code=403, detail="Cannot modify a user of equal or higher role")

    role = changes.pop("role", None)
    if role is not None and role.value != target.role and target.id == current_user.id:
        raise HTTPException(status_code=403, detail="Cannot change your own role")
    if "is_active" in changes and not has_permission(current_user.role, Permission.MANAGE_USERS):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    clashes = []
    if changes.get("username"):
        clashes.append(models.User.username == changes["username"])
    if changes.get("email"):
        clashes.append(models.User.email == changes["email"])
    if clashes:
        duplicate = (
            db.query(models.User.id)
            .filter(or_(*clashes), models.User.id != target.id)
            .first()
        )
        if duplicate:
            raise HTTPException(status_code=409, detail="Username or email already in use")

    password = changes.pop("password", None)
    if password:
        target.hashed_password = auth.get_password_hash(password)
    for key, value in changes.items():
        if value is not None:
            setattr(target, key, value)
    if role is not None and role.value != target.role:
        previous = target.role
        target.role = role.value
        audit.log_action(
            db, current_user.id, "change_user_role", "user", target.id,
            {"from": previous, "to": role.value},
        )
        logger.info("user %s role changed %s -> %s by %s", target.username, previous, role.value, current_user.username)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username or email already in use") from exc
    db.refresh(target)
    return target


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    require_permission(current_user, Permission.MANAGE_USERS)
    target = _get_user(db, user_id)
    if target.id == current_user.id:
        raise HTTPException(status_code=403, detail="Cannot delete your own account")
    if not can_modify_user_role(current_user.role, target.role):
        raise HTTPException(status_code=403, detail="Cannot delete a user of equal or higher role")
    audit.log_action(
        db, current_user.id, "delete_user", "user", target.id,
        {"username": target.username, "role": target.role},
    )
    username = target.username
    db.delete(target)
    db.commit()
    logger.info("user %s deleted by %s", username, current_user.username)
    return {"detail": "deleted"}
