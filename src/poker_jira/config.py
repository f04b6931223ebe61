"""Application configuration via environment variables."""

from typing import Literal

from cryptography.fernet import Fernet
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = {"env_prefix": ""}

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8080, description="Server bind port")
    log_level: str = Field(default="info", description="Log level")

    # Auth (optional, routes are open without it)
    api_key: str | None = Field(
        default=None, description="Shared API key expected in the X-API-Key header"
    )

    # State backend
    state_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Instance store backend: 'memory' or 'redis'"
    )
    redis_url: str | None = Field(
        default=None, description="Redis URL (required when STATE_BACKEND=redis)"
    )
    token_encryption_key: str | None = Field(
        default=None,
        description="Fernet key used to encrypt stored Jira access tokens at rest",
    )

    # Jira
    jira_timeout: float = Field(default=30.0, description="Jira API request timeout seconds")

    @field_validator("token_encryption_key")
    @classmethod
    def _validate_encryption_key(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            Fernet(v.encode())
        except ValueError as exc:
            raise ValueError(f"TOKEN_ENCRYPTION_KEY is not a valid Fernet key: {exc}") from exc
        return v

    @field_validator("jira_timeout")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("JIRA_TIMEOUT must be positive")
        return v

    @model_validator(mode="after")
    def _check_backend(self) -> "Settings":
        if self.state_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when STATE_BACKEND=redis")
        return self
