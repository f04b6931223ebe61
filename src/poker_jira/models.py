"""Pydantic models for Jira instance records, request bodies, and the response envelope."""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class JiraInstance(BaseModel):
    """A stored Jira deployment the user's planning sessions can import stories from."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Instance ID")
    user_id: str = Field(description="ID of the owning user")
    host: str = Field(description="Jira base URL, e.g. https://acme.atlassian.net")
    client_mail: str = Field(description="Service account email used for basic auth")
    access_token: str = Field(description="Jira API token for the service account")
    created_date: datetime = Field(default_factory=utcnow)
    updated_date: datetime = Field(default_factory=utcnow)


class JiraInstanceRequest(BaseModel):
    """Body for creating or updating a Jira instance."""

    model_config = ConfigDict(strict=True, extra="ignore")

    host: str = Field(min_length=1)
    client_mail: str = Field(min_length=1)
    access_token: str = Field(min_length=1)


class StoryJQLSearchRequest(BaseModel):
    """Body for a JQL story search against a stored instance."""

    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    jql: str = Field(min_length=1, description="JQL query forwarded to Jira unchanged")
    start_at: int = Field(default=0, ge=0, alias="startAt")
    max_results: int = Field(
        default=0, ge=0, alias="maxResults", description="0 lets Jira pick its page size"
    )


class StandardJsonResponse(BaseModel):
    """Envelope written for every API response."""

    success: bool
    error: str = ""
    data: Any = None
    meta: Any = None
