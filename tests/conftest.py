# tests/conftest.py
"""
Shared fixtures. Every test gets its own SQLite file so the BEGIN IMMEDIATE
locking path is exercised the same way it is in production-like runs.

Environment is set BEFORE any agendando import: settings are cached on first use.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="agendando-"), "import.db")
os.environ["CALENDAR_ENCRYPTION_KEY"] = "MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTIzNDU2Nzg5MDE="
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["MP_WEBHOOK_SECRET"] = ""
os.environ["BACKEND_URL"] = "https://api.agendando.test"
os.environ["FRONTEND_URL"] = "https://agendando.test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from agendando.api.middleware.rate_limit_middleware import reset_rate_limits
from agendando.config.database import build_engine, get_db
from agendando.main import app
from agendando.models import Base


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    # expire_on_commit=False: reading attributes after a commit must not open
    # a new (write-locking) transaction behind the test's back
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
