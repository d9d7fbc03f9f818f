from fastapi import APIRouter, Depends, HTTPException, Request
import logging
import os
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ..database import get_db
from .. import models, schemas, audit
from ..auth import get_password_hash, authenticate_user, create_access_token
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
testing = os.getenv("TESTING") == "1"

def rate_limit(limit: str):
    if testing:
        def wrapper(func):
            return func
        return wrapper
    return limiter.limit(limit)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=schemas.Token)
@rate_limit("5/minute")
async def register(request: Request, user: schemas.UserCreate, db: Session = Depends(get_db)):
    existing = (
        db.query(models.User)
        .filter(or_(models.User.email == user.email, models.User.username == user.username))
        .first()
    )
    if existing:
        detail = "Email already registered" if existing.email == user.email else "Username already taken"
        raise HTTPException(status_code=409, detail=detail)
    db_user = models.User(
        username=user.username,
        email=user.email,
        hashed_password=get_password_hash(user.password),
        role=user.role.value,
    )
    db.add(db_user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username or email already registered") from exc
    audit.log_action(db, db_user.id, "register", "user", db_user.id, {"role": db_user.role})
    db.commit()
    db.refresh(db_user)
    logger.info("registered user %s as %s", db_user.username, db_user.role)
    token = create_access_token({"sub": db_user.email})
    return schemas.Token(access_token=token, user=schemas.UserOut.model_validate(db_user))


@router.post("/login", response_model=schemas.Token)
@rate_limit("10/minute")
async def login(request: Request, user: schemas.LoginRequest, db: Session = Depends(get_db)):
    db_user = authenticate_user(db, user.email, user.password)
    if not db_user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not db_user.is_active:
        raise HTTPException(status_code=401, detail="Account is disabled")
    token = create_access_token({"sub": db_user.email})
    audit.log_action(db, db_user.id, "login", "user", db_user.id)
    db.commit()
    return schemas.Token(access_token=token, user=schemas.UserOut.model_validate(db_user))
