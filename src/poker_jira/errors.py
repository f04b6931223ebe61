"""Application error codes and client-safe error messages.

Only ``AppError`` messages are shown to API clients. Any other exception is
reported as a generic internal error so that Jira hosts, credentials or
backend details never end up in a response body.
"""

from __future__ import annotations

EINVALID = "EINVALID"
EUNAUTHORIZED = "EUNAUTHORIZED"
ENOTFOUND = "ENOTFOUND"
EINTERNAL = "EINTERNAL"

INTERNAL_ERROR_MESSAGE = "Internal error."


class AppError(Exception):
    """An error carrying a machine-readable code and a client-safe message."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"poker-jira error: code={self.code} message={self.message}"


class InstanceNotFoundError(AppError):
    """Raised by instance stores when an instance id is unknown."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(ENOTFOUND, f"jira instance {instance_id} not found")
        self.instance_id = instance_id


def errorf(code: str, fmt: str, *args: object) -> AppError:
    """Build an AppError with a %-formatted message."""
    return AppError(code, fmt % args if args else fmt)


def error_code(err: BaseException) -> str:
    if isinstance(err, AppError):
        return err.code
    return EINTERNAL


def error_message(err: BaseException) -> str:
    if isinstance(err, AppError):
        return err.message
    return INTERNAL_ERROR_MESSAGE
