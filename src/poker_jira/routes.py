"""HTTP handlers for a user's Jira instances and JQL story search."""

from __future__ import annotations

import time
from typing import TypeVar

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.requests import ClientDisconnect

from poker_jira.auth import require_api_key
from poker_jira.errors import EINVALID, AppError, errorf
from poker_jira.instance_store import JiraInstanceStore
from poker_jira.jira_client import (
    STORY_FIELDS,
    JiraClientFactory,
    JiraClientProtocol,
)
from poker_jira.metrics import jira_instance_requests_total, jira_search_duration
from poker_jira.models import JiraInstanceRequest, StoryJQLSearchRequest
from poker_jira.responses import failure, success
from poker_jira.telemetry import get_tracer

log = structlog.get_logger()
_tracer = get_tracer(__name__)

router = APIRouter(tags=["jira"], dependencies=[Depends(require_api_key)])

_BodyT = TypeVar("_BodyT", bound=BaseModel)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


async def _parse_body(request: Request, model: type[_BodyT]) -> _BodyT:
    """Read and validate a JSON body; any failure is an EINVALID AppError."""
    try:
        body = await request.body()
    except ClientDisconnect as exc:
        raise errorf(EINVALID, "unable to read request body") from exc
    try:
        return model.model_validate_json(body)
    except ValidationError as exc:
        raise errorf(EINVALID, _format_validation_error(exc)) from exc


def _store(request: Request) -> JiraInstanceStore:
    return request.app.state.instance_store  # type: ignore[no-any-return]


def _record(operation: str, outcome: str) -> None:
    jira_instance_requests_total.add(1, {"operation": operation, "outcome": outcome})


async def _invalid(operation: str, err: AppError, **context: str) -> JSONResponse:
    _record(operation, "invalid")
    await log.ainfo("jira_request_invalid", operation=operation, reason=err.message, **context)
    return failure(400, err)


async def _internal(operation: str, err: Exception, **context: str) -> JSONResponse:
    _record(operation, "error")
    await log.aexception("jira_request_failed", operation=operation, **context)
    return failure(500, err)


@router.get("/{user_id}/jira-instances")
async def get_user_jira_instances(request: Request, user_id: str) -> JSONResponse:
    """List the Jira instances associated to a user."""
    try:
        instances = await _store(request).find_instances_by_user_id(user_id)
    except Exception as exc:
        return await _internal("list", exc, user_id=user_id)

    _record("list", "success")
    return success(200, instances)


@router.post("/{user_id}/jira-instances")
async def create_jira_instance(request: Request, user_id: str) -> JSONResponse:
    """Create a Jira instance associated to a user; returns the stored instance."""
    try:
        req = await _parse_body(request, JiraInstanceRequest)
    except AppError as err:
        return await _invalid("create", err, user_id=user_id)

    try:
        instance = await _store(request).create_instance(
            user_id, req.host, req.client_mail, req.access_token
        )
    except Exception as exc:
        return await _internal("create", exc, user_id=user_id)

    _record("create", "success")
    await log.ainfo("jira_instance_created", user_id=user_id, instance_id=instance.id)
    return success(200, instance)


@router.put("/{user_id}/jira-instances/{instance_id}")
async def update_jira_instance(request: Request, user_id: str, instance_id: str) -> JSONResponse:
    """Replace a Jira instance's host and credentials; returns the updated instance."""
    try:
        req = await _parse_body(request, JiraInstanceRequest)
    except AppError as err:
        return await _invalid("update", err, user_id=user_id, instance_id=instance_id)

    try:
        instance = await _store(request).update_instance(
            instance_id, req.host, req.client_mail, req.access_token
        )
    except Exception as exc:
        return await _internal("update", exc, user_id=user_id, instance_id=instance_id)

    _record("update", "success")
    await log.ainfo("jira_instance_updated", user_id=user_id, instance_id=instance_id)
    return success(200, instance)


@router.delete("/{user_id}/jira-instances/{instance_id}")
async def delete_jira_instance(request: Request, user_id: str, instance_id: str) -> JSONResponse:
    """Delete a Jira instance."""
    try:
        await _store(request).delete_instance(instance_id)
    except Exception as exc:
        return await _internal("delete", exc, user_id=user_id, instance_id=instance_id)

    _record("delete", "success")
    await log.ainfo("jira_instance_deleted", user_id=user_id, instance_id=instance_id)
    return success(200)


@router.post("/{user_id}/jira-instances/{instance_id}/jql-story-search")
async def jira_story_jql_search(
    request: Request, user_id: str, instance_id: str
) -> JSONResponse:
    """Query the instance's Jira API for stories matching a JQL expression.

    The JQL is forwarded unchanged; the requested fields are always
    ``STORY_FIELDS``. Matching issues are returned as ``data`` and the
    pagination window as ``meta``.
    """
    try:
        req = await _parse_body(request, StoryJQLSearchRequest)
    except AppError as err:
        return await _invalid("search", err, user_id=user_id, instance_id=instance_id)

    try:
        instance = await _store(request).get_instance_by_id(instance_id)
    except Exception as exc:
        return await _internal("search", exc, user_id=user_id, instance_id=instance_id)

    factory: JiraClientFactory = request.app.state.jira_client_factory
    start = time.monotonic()
    outcome = "error"
    with _tracer.start_as_current_span(
        "jira.story_search", attributes={"instance_id": instance_id}
    ):
        client: JiraClientProtocol | None = None
        try:
            client = factory(instance.host, instance.client_mail, instance.access_token)
            result = await client.stories_jql_search(
                req.jql, STORY_FIELDS, req.start_at, req.max_results
            )
            outcome = "success"
        except Exception as exc:
            return await _internal("search", exc, user_id=user_id, instance_id=instance_id)
        finally:
            if client is not None:
                await client.close()
            jira_search_duration.record(time.monotonic() - start, {"outcome": outcome})

    _record("search", "success")
    return success(200, result.issues, result.page_meta())
