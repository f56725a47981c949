# FILE: tests/conftest.py
"""
Pytest configuration for the Klarnow test suite.

Configures:
- in-memory SQLite session shared across threads (StaticPool)
- FastAPI TestClient wired to that session
- login helpers for client and admin sessions
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.db import Base, get_db, init_db


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def mock_db(session_factory):
    """Create in-memory database for testing."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(session_ttl_hours=1, poll_interval_sec=0.01)


@pytest.fixture
def app(settings, session_factory):
    from main import create_app

    app = create_app(settings, session_factory=session_factory)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    """Test client without lifespan, so startup does not touch ./data."""
    return TestClient(app)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client_headers(client):
    response = client.post("/auth/login", json={"email": "Client@Example.com"})
    assert response.status_code == 200
    return bearer(response.json()["session_token"])


@pytest.fixture
def admin_headers(client):
    response = client.post("/auth/admin/setup", json={"email": "admin@klarnow.test", "password": "correct-horse"})
    assert response.status_code == 201
    response = client.post("/auth/admin/login", json={"email": "admin@klarnow.test", "password": "correct-horse"})
    assert response.status_code == 200
    return bearer(response.json()["session_token"])
