"""
Shared fixtures for FeedbackHub tests.
"""

import pytest
from fastapi.testclient import TestClient

from feedbackhub.config import get_settings
from tests.doubles import SleepRecorder


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_client(monkeypatch):
    """Build a TestClient for the app under the given environment."""
    clients = []

    def _make(database_url="", api_key=""):
        monkeypatch.setenv("DATABASE_URL", database_url)
        monkeypatch.setenv("OPENAI_API_KEY", api_key)
        monkeypatch.setenv("API_KEY", api_key)
        get_settings.cache_clear()

        from feedbackhub.main import app

        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    get_settings.cache_clear()


@pytest.fixture
def client(make_client):
    """App client with AI disabled and in-memory storage."""
    return make_client()
