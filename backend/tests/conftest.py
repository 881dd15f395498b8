"""Pytest fixtures for the document lifecycle backend.

Provides reusable test fixtures for:
- In-memory SQLite database session (tables created/dropped per test)
- Actors with different roles, departments and grants
- Test clients with JWT tokens for API tests

Usage:
    def test_get_document(client, author, auth_headers):
        response = client.get(f"/api/v1/documents/{doc_id}", headers=auth_headers(author))
        assert response.status_code == 200
"""

import os
import sys
from pathlib import Path
from typing import Callable, Dict, Generator

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base
import models  # noqa: F401  (registers all tables on Base.metadata)
from auth.jwt import create_access_token
from database import create_db_engine, get_db as database_get_db
from domain.lifecycle import Actor, ActorPermission, ActorRole
from factories import DEPARTMENT, OTHER_DEPARTMENT, make_actor


# Single shared in-memory database for the whole test session
test_engine = create_db_engine("sqlite://", poolclass=StaticPool)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def author() -> Actor:
    """Plain user in QC; creates the documents in API tests."""
    return make_actor(ActorRole.USER, DEPARTMENT)


@pytest.fixture
def colleague() -> Actor:
    """Another plain user in QC."""
    return make_actor(ActorRole.USER, DEPARTMENT)


@pytest.fixture
def qc_manager() -> Actor:
    return make_actor(ActorRole.MANAGER, DEPARTMENT)


@pytest.fixture
def hr_manager() -> Actor:
    return make_actor(ActorRole.MANAGER, OTHER_DEPARTMENT)


@pytest.fixture
def outsider() -> Actor:
    """Plain user in another department."""
    return make_actor(ActorRole.USER, OTHER_DEPARTMENT)


@pytest.fixture
def admin() -> Actor:
    return make_actor(ActorRole.ADMIN, "IT")


@pytest.fixture
def guest() -> Actor:
    return make_actor(ActorRole.GUEST, DEPARTMENT)


@pytest.fixture
def document_controller() -> Actor:
    """Non-admin holding the manage_documents grant."""
    return make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.MANAGE_DOCUMENTS])


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


# =============================================================================
# API clients
# =============================================================================

def token_for(actor: Actor) -> str:
    return create_access_token(
        actor_id=actor.id,
        role=actor.role.value,
        department=actor.department,
        permissions=[permission.value for permission in actor.permissions],
    )


@pytest.fixture
def auth_headers() -> Callable[[Actor], Dict[str, str]]:
    """Build Authorization headers for an actor."""
    def build(actor: Actor) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token_for(actor)}"}
    return build


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client bound to the per-test database session.

    Requests carry no credentials; pass headers=auth_headers(actor).
    """
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database_get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def create_document(client: TestClient, auth_headers) -> Callable[..., dict]:
    """POST /documents as actor and return the response body."""
    def create(actor: Actor, **payload) -> dict:
        body = {"title": "Calibration procedure", "type": "PR"}
        body.update(payload)
        response = client.post("/api/v1/documents", json=body, headers=auth_headers(actor))
        assert response.status_code == 201, response.text
        return response.json()
    return create


@pytest.fixture
def change_status(client: TestClient, auth_headers) -> Callable[..., object]:
    """PUT /documents/{id}/status as actor and return the raw response."""
    def change(actor: Actor, document_id: str, to_status: str, comment: str = None, decision: str = None):
        body = {"to_status": to_status}
        if comment is not None:
            body["comment"] = comment
        if decision is not None:
            body["decision"] = decision
        return client.put(
            f"/api/v1/documents/{document_id}/status",
            json=body,
            headers=auth_headers(actor),
        )
    return change
