"""
Shared Test Fixtures for LinkPost

Fixtures cover isolated settings (no real keys or .env values), an in-memory
post store, session cookie tokens, mocked HTTP responses, and a FastAPI
TestClient wired to the in-memory store.
"""

from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from linkpost.config import get_settings
from linkpost.core.session import now_ms
from linkpost.core.session_codec import encrypt_to_cookie_value
from linkpost.dependencies import get_post_store
from linkpost.services.post_repository import InMemoryRepository
from linkpost.services.post_store import PostStore

TEST_SECRET = "test-session-secret"

_ISOLATED_ENV = [
    "SESSION_SECRET",
    "LINKEDIN_CLIENT_ID",
    "LINKEDIN_CLIENT_SECRET",
    "LINKEDIN_REDIRECT_URI",
    "FRONTEND_URL",
    "POST_STORAGE",
    "GEMINI_API_KEY",
    "GOOGLE_AI_API_KEY",
    "ANTHROPIC_API_KEY",
    "CLAUDE_API_KEY",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "DEFAULT_LLM_PROVIDER",
]


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings(monkeypatch, tmp_path):
    """
    Point settings at safe test values and reset the cached Settings.

    Usage:
        def test_something(test_settings):
            assert test_settings.session_secret == TEST_SECRET
    """
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)  # keep a developer's .env out of the tests
    monkeypatch.setenv("SESSION_SECRET", TEST_SECRET)
    monkeypatch.setenv("LINKEDIN_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("LINKEDIN_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("FRONTEND_URL", "http://localhost:5173")
    monkeypatch.setenv("POST_STORAGE", "memory")
    monkeypatch.setenv("GEMINI_API_KEY", "server-gemini-key")
    get_settings.cache_clear()
    get_post_store.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
    get_post_store.cache_clear()


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def store(repository):
    return PostStore(repository)


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def make_session_token(test_settings):
    """Factory for encrypted cookie values (authenticated by default)."""

    def _make(payload: Optional[dict[str, Any]] = None, **overrides: Any) -> str:
        data = payload or {
            "accessToken": "li-access-token",
            "expiresAt": now_ms() + 3_600_000,
            "profile": {
                "id": "abc123",
                "name": "Test Member",
                "email": "member@example.com",
                "picture": "https://example.com/p.jpg",
            },
        }
        data.update(overrides)
        return encrypt_to_cookie_value(data)

    return _make


# =============================================================================
# HTTP Fixtures
# =============================================================================

def mock_response(status_code: int = 200, json_data: Any = None, headers: Optional[dict] = None):
    """Build a stand-in for httpx.Response with the bits the services read."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {}
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data if json_data is not None else {}
    resp.text = str(json_data)
    return resp


@pytest.fixture
def client(test_settings, store):
    """TestClient over a fresh app whose post store is the in-memory fixture."""
    from linkpost.main import create_app

    app = create_app()
    app.dependency_overrides[get_post_store] = lambda: store
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_response():
    return mock_response
