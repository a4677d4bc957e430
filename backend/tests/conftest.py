"""Add backend to path so tests can use direct imports (from models import ...) when run from project root."""
import os
import sys
import uuid

import jwt
import pytest

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

# db.session builds its engine at import time; keep tests off Postgres.
os.environ.setdefault("DATABASE_URL", "sqlite://")

TEST_JWT_SECRET = "test-secret-for-hs256-tokens-only"


@pytest.fixture
def db_session():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from db.session import Base
    from db import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def add_deals(db_session):
    """Insert raw deal documents in id order; undated documents read back in that order."""
    from datetime import datetime, timedelta

    from db.models import DealDocument

    def _add(documents):
        base = datetime(2026, 1, 1)
        for i, doc in enumerate(documents):
            db_session.add(
                DealDocument(
                    id=f"deal-{i:04d}",
                    document=doc,
                    created_at=base - timedelta(minutes=i),
                )
            )
        db_session.commit()

    return _add


@pytest.fixture
def client(db_session, monkeypatch):
    from fastapi.testclient import TestClient

    from db.session import get_db
    from main import app

    monkeypatch.setenv("AUTH_JWT_SECRET", TEST_JWT_SECRET)

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_token():
    def _make(user_type=None, sub=None, **extra):
        payload = {"sub": sub or f"user_{uuid.uuid4().hex[:8]}"}
        if user_type is not None:
            payload["user_type"] = user_type
        payload.update(extra)
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def auth_header(make_token):
    def _header(user_type=None, **kwargs):
        return {"Authorization": f"Bearer {make_token(user_type, **kwargs)}"}

    return _header
