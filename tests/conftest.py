"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Every test
gets a fresh owner id, so tests never see each other's cycles even though the
database is shared for the whole session.
"""
import os
import uuid
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_momentum.db")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db
from app.main import app
from app.services.cycle_lifecycle import GoalInput, initialize_cycle

SQLITE_URL = "sqlite:///./test_momentum.db"
ADMIN_TOKEN = os.environ["ADMIN_TOKEN"]

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CYCLE_START = date(2026, 1, 5)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def owner_id() -> str:
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def headers(owner_id) -> dict:
    return {"X-User-Id": owner_id}


@pytest.fixture()
def make_cycle(db):
    """Initialize a cycle through the service and return the CycleInitResult."""
    def _make(owner: str, start: date = CYCLE_START, goals=None, **kwargs):
        return initialize_cycle(
            db=db,
            owner_id=owner,
            name=kwargs.pop("name", "Q1 execution"),
            start_date=start,
            goals=goals or [GoalInput(title="Ship v1", priority=1)],
            **kwargs,
        )
    return _make


@pytest.fixture()
def session_factory():
    """A second, independent session source for concurrent-writer tests."""
    return TestingSessionLocal


@pytest.fixture()
def admin_headers() -> dict:
    return {"X-User-Id": "admin-operator", "X-Admin-Token": ADMIN_TOKEN}
