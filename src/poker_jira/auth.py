"""Optional shared API key guard for the Jira instance routes."""

import hmac

from fastapi import Header, Request

from poker_jira.errors import EUNAUTHORIZED, AppError


def _validate_api_key(received: str | None, expected: str) -> None:
    if received is None or not hmac.compare_digest(received, expected):
        raise AppError(EUNAUTHORIZED, "Invalid or missing API key")


async def require_api_key(
    request: Request, x_api_key: str | None = Header(default=None)
) -> None:
    """Reject the request unless X-API-Key matches the configured API_KEY (if any)."""
    expected = request.app.state.settings.api_key
    if expected:
        _validate_api_key(x_api_key, expected)
