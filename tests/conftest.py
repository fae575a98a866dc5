"""
Shared fixtures.

Settings are read at import time, so the environment is prepared before any
application module is imported.  Every test gets a fresh in-memory SQLite
database; the app's ``get_db`` dependency is pointed at it.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: F401, E402
from auth import service as auth_service  # noqa: E402
from core.clock import utc_today  # noqa: E402
from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402
from models import Role, User  # noqa: E402
from visits import service as visits  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a user with the given role directly in the store."""
    counter = {"n": 0}

    def _make(role: Role = Role.guest, email: str = None, name: str = None) -> User:
        counter["n"] += 1
        email = email or f"{role.value}{counter['n']}@example.com"
        user = auth_service.register(db, name or f"{role.value.title()} {counter['n']}", email, PASSWORD)
        if role != Role.guest:
            user.role = role
            db.commit()
            db.refresh(user)
        return user

    return _make


@pytest.fixture
def headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {auth_service.issue_token(user)}"}

    return _headers


@pytest.fixture
def cast(make_user):
    """One user per role: the usual actors of a visit."""
    return {
        "guest": make_user(Role.guest),
        "host": make_user(Role.host),
        "security": make_user(Role.security),
        "admin": make_user(Role.admin),
    }


@pytest.fixture
def pending_security_visit(db, cast):
    """A request the host has already forwarded to security."""
    visit = visits.create_visit(
        db, cast["guest"].id, cast["host"].email, "Quarterly review", utc_today()
    )
    return visits.host_decide(db, visit.id, cast["host"].id, visits.Decision.approve)


@pytest.fixture
def issued_pass(db, cast, pending_security_visit):
    _, issued = visits.security_decide(
        db, pending_security_visit.id, cast["security"].id, visits.Decision.approve
    )
    return issued.entry_pass
