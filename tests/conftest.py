"""Shared test constants, fixtures, and factory functions."""

from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from poker_jira.config import Settings
from poker_jira.instance_store import MemoryJiraInstanceStore
from poker_jira.jira_models import JiraSearchResult
from poker_jira.main import app

# -- Constants --

USER_ID = "b6e0e3e4-3a43-4c35-9d3b-6d6b0c1c0a11"
OTHER_USER_ID = "7f1c2b9e-0c55-4d0f-8a43-2f0f0f7d9e22"

JIRA_HOST = "https://acme.atlassian.net"
JIRA_EMAIL = "poker-bot@acme.example"
JIRA_TOKEN = "test-jira-token"  # nosec: test token

API_KEY = "test-api-key"  # nosec: test key

INSTANCE_BODY: dict[str, str] = {
    "host": JIRA_HOST,
    "client_mail": JIRA_EMAIL,
    "access_token": JIRA_TOKEN,
}

STORY_PAYLOAD: dict[str, Any] = {
    "id": "10001",
    "key": "POKER-12",
    "fields": {
        "summary": "As a facilitator I can import stories",
        "description": "Import stories from Jira by JQL",
        "priority": {"id": "3", "name": "Medium", "iconUrl": "https://acme/medium.svg"},
        "issuetype": {"id": "10002", "name": "Story", "subtask": False},
    },
}

SEARCH_RESPONSE: dict[str, Any] = {
    "startAt": 0,
    "maxResults": 50,
    "total": 1,
    "issues": [STORY_PAYLOAD],
}


# -- Factories --


def make_settings(**overrides: Any) -> Settings:
    """Create a Settings instance with test defaults. Override any field."""
    defaults: dict[str, Any] = {"state_backend": "memory"}
    return Settings(**(defaults | overrides))


def make_fake_jira_client(result: dict[str, Any] | None = None) -> AsyncMock:
    """A stand-in JiraClient whose search returns *result* (SEARCH_RESPONSE by default)."""
    fake = AsyncMock()
    fake.stories_jql_search.return_value = JiraSearchResult.model_validate(
        result if result is not None else SEARCH_RESPONSE
    )
    return fake


# -- Fixtures --


@pytest.fixture
def store() -> MemoryJiraInstanceStore:
    return MemoryJiraInstanceStore()


@pytest.fixture
def fake_jira_client() -> AsyncMock:
    return make_fake_jira_client()


@pytest.fixture
def jira_factory(fake_jira_client: AsyncMock) -> MagicMock:
    """Factory stand-in recording the credentials each client is built with."""
    return MagicMock(return_value=fake_jira_client)


@pytest.fixture
async def client(
    store: MemoryJiraInstanceStore, jira_factory: MagicMock
) -> AsyncIterator[AsyncClient]:
    """AsyncClient wired to the FastAPI app with test state."""
    app.state.settings = make_settings()
    app.state.instance_store = store
    app.state.jira_client_factory = jira_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
