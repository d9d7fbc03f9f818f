import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["DATABASE_URL"] = "sqlite:///./test_forest.db"
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from forest.main import app
from forest.database import Base, get_db, enable_sqlite_foreign_keys
from forest.auth import create_access_token, get_password_hash
from forest import models

SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# one hash shared by every fixture user; real accounts go through /register
_FIXTURE_PASSWORD = "password123"
_FIXTURE_HASH = get_password_hash(_FIXTURE_PASSWORD)


def create_user(role: str = "translator", *, username: str | None = None) -> models.User:
    """
    purpose: insert a user of the given role straight into the test database
    inputs: role name, optional username
    outputs: detached User with id, username, email and role loaded
    status: active
    """

    suffix = uuid.uuid4().hex[:10]
    session = TestingSessionLocal()
    try:
        user = models.User(
            username=username or f"{role}-{suffix}",
            email=f"{role}-{suffix}@example.com",
            hashed_password=_FIXTURE_HASH,
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user
    finally:
        session.close()


def headers_for(user: models.User) -> dict[str, str]:
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


def auth_headers(role: str = "translator") -> tuple[dict[str, str], models.User]:
    """
    purpose: convenience wrapper returning bearer headers for a fresh user of ``role``
    depends_on: create_user
    outputs: tuple(headers dict, User)
    status: active
    """

    user = create_user(role)
    return headers_for(user), user


def unique_label(prefix: str = "entry") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
