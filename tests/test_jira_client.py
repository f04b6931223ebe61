"""Tests for Jira models and client."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from poker_jira.jira_client import (
    SEARCH_PATH,
    STORY_FIELDS,
    JiraClient,
    jira_client_factory,
)
from poker_jira.jira_models import JiraSearchResult, JiraStory
from tests.conftest import JIRA_EMAIL, JIRA_HOST, JIRA_TOKEN, SEARCH_RESPONSE, STORY_PAYLOAD

# -- Factories --


def make_jira_client() -> JiraClient:
    """Create a JiraClient with test credentials."""
    return JiraClient(JIRA_HOST + "/", JIRA_EMAIL, JIRA_TOKEN)


def _ok_response(payload: dict) -> AsyncMock:
    resp = AsyncMock(spec=httpx.Response)
    resp.json = lambda: payload
    resp.raise_for_status = lambda: None
    return resp


# -- Model Tests --


class TestJiraModels:
    def test_story_parses_search_fields(self) -> None:
        story = JiraStory.model_validate(STORY_PAYLOAD)
        assert story.key == "POKER-12"
        assert story.fields.priority is not None
        assert story.fields.priority.icon_url == "https://acme/medium.svg"
        assert story.fields.issuetype is not None
        assert story.fields.issuetype.name == "Story"

    def test_story_accepts_adf_description(self) -> None:
        adf = {"type": "doc", "version": 1, "content": []}
        payload = {**STORY_PAYLOAD, "fields": {**STORY_PAYLOAD["fields"], "description": adf}}
        story = JiraStory.model_validate(payload)
        assert story.fields.description == adf

    def test_story_without_optional_fields(self) -> None:
        story = JiraStory.model_validate({"id": "1", "key": "POKER-1", "fields": {}})
        assert story.fields.priority is None
        assert story.fields.summary == ""

    def test_search_result_page_meta(self) -> None:
        result = JiraSearchResult.model_validate(SEARCH_RESPONSE)
        assert result.page_meta() == {"startAt": 0, "maxResults": 50, "total": 1}

    def test_story_dumps_with_jira_field_names(self) -> None:
        story = JiraStory.model_validate(STORY_PAYLOAD)
        dumped = story.model_dump(by_alias=True)
        assert dumped["fields"]["priority"]["iconUrl"] == "https://acme/medium.svg"


# -- Client Tests --


class TestJiraClientSetup:
    async def test_basic_auth_header_and_base_url(self) -> None:
        client = make_jira_client()
        expected = base64.b64encode(f"{JIRA_EMAIL}:{JIRA_TOKEN}".encode()).decode()
        assert client._client.headers["Authorization"] == f"Basic {expected}"
        assert str(client._client.base_url).rstrip("/") == JIRA_HOST
        await client.close()

    async def test_context_manager_closes(self) -> None:
        async with make_jira_client() as client:
            inner = client._client
        assert inner.is_closed

    async def test_factory_applies_timeout(self) -> None:
        client = jira_client_factory(5.0)(JIRA_HOST, JIRA_EMAIL, JIRA_TOKEN)
        assert isinstance(client, JiraClient)
        assert client._client.timeout.read == 5.0
        await client.close()


class TestJiraClientSearch:
    async def test_search_posts_query(self) -> None:
        client = make_jira_client()

        with patch.object(
            client._client, "post", return_value=_ok_response(SEARCH_RESPONSE)
        ) as mock_post:
            result = await client.stories_jql_search("project = POKER", STORY_FIELDS, 5, 20)

        assert [s.key for s in result.issues] == ["POKER-12"]
        assert result.total == 1
        mock_post.assert_called_once_with(
            SEARCH_PATH,
            json={
                "jql": "project = POKER",
                "fields": STORY_FIELDS,
                "startAt": 5,
                "maxResults": 20,
            },
        )
        await client.close()

    async def test_search_omits_zero_max_results(self) -> None:
        client = make_jira_client()

        with patch.object(
            client._client, "post", return_value=_ok_response(SEARCH_RESPONSE)
        ) as mock_post:
            await client.stories_jql_search("project = POKER", STORY_FIELDS)

        body = mock_post.call_args.kwargs["json"]
        assert "maxResults" not in body
        assert body["startAt"] == 0
        await client.close()

    async def test_search_http_error_propagates(self) -> None:
        client = make_jira_client()
        request = httpx.Request("POST", f"{JIRA_HOST}{SEARCH_PATH}")
        error_resp = httpx.Response(400, request=request, json={"errorMessages": ["bad jql"]})

        with patch.object(client._client, "post", return_value=error_resp):
            with pytest.raises(httpx.HTTPStatusError):
                await client.stories_jql_search("project = ", STORY_FIELDS)
        await client.close()
