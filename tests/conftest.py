"""
Shared pytest fixtures for test suite.

This module provides the Flask app built through ``create_app`` on a
temporary SQLite database, fake text and image providers, and a registered
user with a bearer token.
"""

import os
import tempfile

import pytest
from unittest.mock import patch, MagicMock

# app.py builds a module-level app at import; keep it off the real data dir
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(), "import.db"))

from app import create_app  # noqa: E402
from tests.mocking_helpers import FakeImageProvider, FakeTextProvider, register_user  # noqa: E402
from tests.test_constants import (  # noqa: E402
    GENERATED_STORY,
    PNG_DATA_URI,
    PUBLIC_IP,
)


@pytest.fixture
def text_provider():
    return FakeTextProvider()


@pytest.fixture
def image_provider():
    return FakeImageProvider()


@pytest.fixture
def db_path(tmp_path):
    """Temporary SQLite database file."""
    return str(tmp_path / "bedtime.db")


@pytest.fixture
def app(db_path, text_provider, image_provider):
    """Flask app on a temporary database with fake providers."""
    flask_app = create_app({
        "TESTING": True,
        "DATABASE_PATH": db_path,
        "RATELIMIT_ENABLED": False,
        "REVEAL_INTERVAL_SECONDS": 0.0,
        "DRAFT_STORE": "memory",
        "SECRET_KEY": "test-secret",
    })
    flask_app.extensions["text_provider"] = text_provider
    flask_app.extensions["image_provider"] = image_provider
    return flask_app


@pytest.fixture
def client(app):
    """Test client without a session."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def registered_user(app):
    return register_user(app)


@pytest.fixture
def auth_headers(registered_user):
    """Bearer headers for the registered test user."""
    return {"Authorization": f"Bearer {registered_user['token']}"}


@pytest.fixture
def sample_story_payload():
    """Valid body for POST /api/stories."""
    return {
        "title": "The Fox Who Counted Stars",
        "content": GENERATED_STORY,
        "images": [PNG_DATA_URI, PNG_DATA_URI],
        "metadata": {"age": "4-6", "characters": "a fox", "setting": "a river", "moral": "friendship"},
    }


@pytest.fixture
def generation_payload():
    """Valid body for POST /api/generate-story."""
    return {
        "age": "4-6",
        "characters": "a small fox and a wise owl",
        "setting": "a river at night",
        "moral": "friends make every search easier",
        "length": "short",
    }


@pytest.fixture
def mock_genai():
    """Patch the google.generativeai module used by GeminiProvider."""
    with patch("src.bedtime.providers.gemini.genai") as genai:
        model = MagicMock()
        model.generate_content.return_value = MagicMock(text="  A generated story.  ", candidates=[])
        genai.GenerativeModel.return_value = model
        yield genai


@pytest.fixture(autouse=True)
def resolve_host():
    """Resolve every host to a public address; no DNS lookups in tests."""
    with patch("src.bedtime.utils.url_safety._resolve_host", return_value=[PUBLIC_IP]) as resolver:
        yield resolver
