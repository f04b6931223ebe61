"""Pydantic models for Jira REST API search responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JiraPriority(BaseModel):
    """Jira issue priority."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, description="Priority ID")
    name: str = Field(description="Priority display name, e.g. 'High'")
    icon_url: str | None = Field(default=None, alias="iconUrl")


class JiraIssueType(BaseModel):
    """Jira issue type (Story, Bug, Task, ...)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, description="Issue type ID")
    name: str = Field(description="Issue type display name")
    subtask: bool = False
    icon_url: str | None = Field(default=None, alias="iconUrl")


class JiraStoryFields(BaseModel):
    """The subset of issue fields a story search requests."""

    model_config = ConfigDict(extra="ignore")

    summary: str = Field(default="", description="Issue title/summary")
    description: str | dict[str, Any] | None = Field(
        default=None, description="Issue description (ADF dict or plain text string)"
    )
    priority: JiraPriority | None = None
    issuetype: JiraIssueType | None = None


class JiraStory(BaseModel):
    """A Jira issue returned by a story search."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Jira issue ID")
    key: str = Field(description="Issue key, e.g. 'PROJ-123'")
    fields: JiraStoryFields = Field(default_factory=JiraStoryFields)


class JiraSearchResult(BaseModel):
    """Response from the Jira search endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start_at: int = Field(default=0, alias="startAt")
    max_results: int = Field(default=0, alias="maxResults")
    total: int = Field(default=0, description="Total matching issues")
    issues: list[JiraStory] = Field(default_factory=list, description="Matching issues")

    def page_meta(self) -> dict[str, int]:
        """Pagination details in the camelCase shape clients send back."""
        return {"startAt": self.start_at, "maxResults": self.max_results, "total": self.total}
