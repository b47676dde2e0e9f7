# backend/tests/conftest.py
import os
import sys
import types
import pathlib
import tempfile

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# -------------------------------------------------------------------------------------------------
# Path & environment setup (must happen BEFORE importing the app)
# -------------------------------------------------------------------------------------------------

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_FILE = str(pathlib.Path(tempfile.gettempdir()) / "interview_ledger_test.sqlite")

os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_FILE}"
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET", "test-secret")
# Celery/Redis (never reached: .delay is stubbed below)
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("TEST_PLAINTEXT_PASSWORDS", "1")
os.environ["GROQ_API_KEY"] = ""
os.environ.setdefault("EXTRACTION_MAX_CHARS", "10000")


# -------------------------------------------------------------------------------------------------
# Import app & modules AFTER env vars
# -------------------------------------------------------------------------------------------------
from main import app
from api import deps
from api.auth import register_user
from db import models as m
from models.user import UserCreate
from services.content_resolver import ResolvedContent
from core.exceptions import FetchError
from tasks import extraction_tasks

# -------------------------------------------------------------------------------------------------
# Test DB engine + session factory
# -------------------------------------------------------------------------------------------------
engine = create_engine(
    f"sqlite:///{TEST_DB_FILE}",
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Drop + recreate DB before each test function to ensure isolation"""
    m.Base.metadata.drop_all(bind=engine)
    m.Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function")
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def session_factory():
    return TestingSessionLocal


def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


app.dependency_overrides[deps.get_db] = _override_get_db


# -------------------------------------------------------------------------------------------------
# Stub Celery dispatch (no broker, no worker)
# -------------------------------------------------------------------------------------------------
@pytest.fixture(scope="function", autouse=True)
def dispatched(monkeypatch):
    """Records every .delay() call as (task name, args) instead of talking to the broker."""
    calls = []

    def _stub(task_name):
        def _fake_delay(*args):
            calls.append((task_name, args))
            return types.SimpleNamespace(id=f"fake-{task_name}-{len(calls)}")
        return _fake_delay

    monkeypatch.setattr(extraction_tasks.extract_interview, "delay", _stub("tasks.extract_interview"))
    monkeypatch.setattr(extraction_tasks.extract_manual_questions, "delay", _stub("tasks.extract_manual_questions"))
    yield calls


# -------------------------------------------------------------------------------------------------
# Fake content resolver
# -------------------------------------------------------------------------------------------------
class FakeResolver:
    def __init__(self):
        self.result = ResolvedContent(title="Fetched title", content="Fetched interview content")
        self.error = None
        self.calls = []

    def fetch(self, url, source, user_agent=None):
        self.calls.append((url, source, user_agent))
        if self.error is not None:
            raise self.error
        return self.result

    def fail_with(self, message):
        self.error = FetchError(message)


@pytest.fixture(scope="function")
def fake_resolver():
    resolver = FakeResolver()
    app.dependency_overrides[deps.get_content_resolver] = lambda: resolver
    try:
        yield resolver
    finally:
        app.dependency_overrides.pop(deps.get_content_resolver, None)


# -------------------------------------------------------------------------------------------------
# TestClient
# -------------------------------------------------------------------------------------------------
@pytest.fixture(scope="session")
def client():
    return TestClient(app)


# -------------------------------------------------------------------------------------------------
# Users
# -------------------------------------------------------------------------------------------------
def make_user(db, email="owner@example.com"):
    u = register_user(db, UserCreate(email=email, password="secret123"))
    return types.SimpleNamespace(id=u.id, email=u.email)


@pytest.fixture(scope="function")
def owner(db):
    """A registered user (with unknown company) that every route sees as authenticated."""
    u = make_user(db)
    orig = app.dependency_overrides.get(deps.get_current_user)
    app.dependency_overrides[deps.get_current_user] = lambda: u
    try:
        yield u
    finally:
        if orig is None:
            app.dependency_overrides.pop(deps.get_current_user, None)
        else:
            app.dependency_overrides[deps.get_current_user] = orig
