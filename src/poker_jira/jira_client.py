"""Jira REST API client for JQL story searches against a stored instance."""

from __future__ import annotations

import base64
from types import TracebackType
from typing import Protocol

import httpx
import structlog

from poker_jira.jira_models import JiraSearchResult

log = structlog.get_logger()

# Legacy offset-paginated search (startAt/maxResults).
# /search/jql only pages by nextPageToken.
SEARCH_PATH = "/rest/api/3/search"

# Fields requested for every story search.
STORY_FIELDS = ["key", "summary", "priority", "issuetype", "description"]


class JiraClientProtocol(Protocol):
    """Interface for the Jira API operations handlers rely on."""

    async def stories_jql_search(
        self, jql: str, fields: list[str], start_at: int, max_results: int
    ) -> JiraSearchResult: ...

    async def close(self) -> None: ...


class JiraClientFactory(Protocol):
    """Builds a client for one Jira instance's credentials."""

    def __call__(self, host: str, client_mail: str, access_token: str) -> JiraClientProtocol: ...


class JiraClient:
    """Jira REST API v3 client using basic auth (service account email + API token)."""

    def __init__(
        self, host: str, client_mail: str, access_token: str, timeout: float = 30.0
    ) -> None:
        auth_bytes = base64.b64encode(f"{client_mail}:{access_token}".encode()).decode()
        self._client = httpx.AsyncClient(
            base_url=host.rstrip("/"),
            headers={
                "Authorization": f"Basic {auth_bytes}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
        )

    async def __aenter__(self) -> JiraClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def stories_jql_search(
        self, jql: str, fields: list[str], start_at: int = 0, max_results: int = 0
    ) -> JiraSearchResult:
        """Run a JQL search and return one page of matching issues.

        ``max_results`` of 0 leaves the page size to the Jira server.
        """
        body: dict[str, object] = {"jql": jql, "fields": fields, "startAt": start_at}
        if max_results:
            body["maxResults"] = max_results

        resp = await self._client.post(SEARCH_PATH, json=body)
        resp.raise_for_status()

        result = JiraSearchResult.model_validate(resp.json())
        await log.ainfo(
            "jira_search_complete",
            start_at=result.start_at,
            count=len(result.issues),
            total=result.total,
        )
        return result


def jira_client_factory(timeout: float) -> JiraClientFactory:
    """Return a factory creating JiraClients with the configured timeout."""

    def _create(host: str, client_mail: str, access_token: str) -> JiraClient:
        return JiraClient(host, client_mail, access_token, timeout=timeout)

    return _create
