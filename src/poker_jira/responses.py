"""Standard JSON envelope writers shared by all handlers."""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from poker_jira.errors import error_message
from poker_jira.models import StandardJsonResponse


def success(status: int, data: Any = None, meta: Any = None) -> JSONResponse:
    """Write ``{success: true, data, meta}`` with the given status."""
    envelope = StandardJsonResponse(success=True, data=data, meta=meta)
    return JSONResponse(status_code=status, content=jsonable_encoder(envelope, by_alias=True))


def failure(status: int, err: BaseException) -> JSONResponse:
    """Write ``{success: false, error}``; non-application errors get a generic message."""
    envelope = StandardJsonResponse(success=False, error=error_message(err))
    return JSONResponse(status_code=status, content=jsonable_encoder(envelope))
