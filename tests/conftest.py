"""Shared test fixtures for the Fambook API tests"""

import os
import tempfile
import uuid

import pytest

# Set test environment before importing the app
MEDIA_ROOT = tempfile.mkdtemp(prefix="fambook-media-")

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_MEDIA_PATH"] = MEDIA_ROOT
os.environ["BASE_URL"] = "http://testserver"
os.environ["DEBUG_ERRORS"] = "true"
os.environ["ALLOW_BULK_WIPE"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from fambook.database import Base, engine  # noqa: E402
from fambook.main import app  # noqa: E402
from tests.factories import make_token  # noqa: E402


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
def client():
    # Unhandled errors come back as 500 envelopes instead of re-raising
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def media_root():
    return MEDIA_ROOT


# =============================================================================
# Identities
# =============================================================================

@pytest.fixture
def auth_headers():
    """Factory: auth_headers("Alice") -> Authorization header for a new principal."""

    def _make(full_name: str, sub: str | None = None) -> dict:
        token = make_token(sub or f"ext-{uuid.uuid4().hex[:8]}", full_name)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def alice(auth_headers):
    return auth_headers("Alice Admin", sub="ext-alice")


@pytest.fixture
def bob(auth_headers):
    return auth_headers("Bob Member", sub="ext-bob")


@pytest.fixture
def carol(auth_headers):
    return auth_headers("Carol Member", sub="ext-carol")


@pytest.fixture
def outsider(auth_headers):
    return auth_headers("Oscar Outsider", sub="ext-oscar")
