"""API test fixtures - authenticated TestClient over in-memory services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from auth.session import SessionReader
from auth.types import Session


def _session(user_id: str, is_admin: bool = False) -> Session:
    from utils.clock import now_utc

    now = now_utc()
    return Session(
        token=f"{user_id}-token",
        user_id=user_id,
        is_admin=is_admin,
        created_at=now,
        expires_at=now + timedelta(hours=24),
    )


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_reader(owner_id, other_owner_id):
    """Resolves '<user>-token' to that user's session; 'admin-token' to an admin."""
    sessions = {
        f"{owner_id}-token": _session(owner_id),
        f"{other_owner_id}-token": _session(other_owner_id),
        "admin-token": _session("admin", is_admin=True),
    }
    mock = Mock(spec=SessionReader)
    mock.validate_session.side_effect = lambda token: sessions[token]
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services, mock_session_reader):
    """FastAPI app with auth middleware, error handlers and every router."""
    return create_app(services, mock_session_reader)


@pytest.fixture
def client(app, owner_id):
    """Client authenticated as the primary test owner."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", f"{owner_id}-token")
    return c


@pytest.fixture
def other_client(app, other_owner_id):
    """Client authenticated as the secondary test owner."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", f"{other_owner_id}-token")
    return c


@pytest.fixture
def admin_client(app):
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["Authorization"] = "Bearer admin-token"
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)
