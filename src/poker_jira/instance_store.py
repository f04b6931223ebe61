"""Storage for Jira instances: Protocol plus Memory and Redis implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import structlog
from cryptography.fernet import Fernet

from poker_jira.errors import InstanceNotFoundError
from poker_jira.models import JiraInstance, utcnow

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from poker_jira.config import Settings

log = structlog.get_logger()

_INSTANCE_PREFIX = "jira_instance:"
_USER_INDEX_PREFIX = "jira_instances:user:"


@runtime_checkable
class JiraInstanceStore(Protocol):
    """Protocol for Jira instance persistence."""

    async def find_instances_by_user_id(self, user_id: str) -> list[JiraInstance]: ...

    async def create_instance(
        self, user_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance: ...

    async def update_instance(
        self, instance_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance: ...

    async def delete_instance(self, instance_id: str) -> None: ...

    async def get_instance_by_id(self, instance_id: str) -> JiraInstance: ...

    async def aclose(self) -> None: ...


class MemoryJiraInstanceStore:
    """In-memory instance store for local runs and testing."""

    def __init__(self) -> None:
        self._data: dict[str, JiraInstance] = {}

    async def find_instances_by_user_id(self, user_id: str) -> list[JiraInstance]:
        found = [i for i in self._data.values() if i.user_id == user_id]
        return sorted(found, key=lambda i: i.created_date)

    async def create_instance(
        self, user_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance:
        instance = JiraInstance(
            user_id=user_id, host=host, client_mail=client_mail, access_token=access_token
        )
        self._data[instance.id] = instance
        return instance

    async def update_instance(
        self, instance_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance:
        current = await self.get_instance_by_id(instance_id)
        updated = current.model_copy(
            update={
                "host": host,
                "client_mail": client_mail,
                "access_token": access_token,
                "updated_date": utcnow(),
            }
        )
        self._data[instance_id] = updated
        return updated

    async def delete_instance(self, instance_id: str) -> None:
        if self._data.pop(instance_id, None) is None:
            raise InstanceNotFoundError(instance_id)

    async def get_instance_by_id(self, instance_id: str) -> JiraInstance:
        instance = self._data.get(instance_id)
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    async def aclose(self) -> None:
        self._data.clear()


class RedisJiraInstanceStore:
    """Redis-backed instance store.

    Each instance is a JSON string under ``jira_instance:<id>``; a set under
    ``jira_instances:user:<user_id>`` indexes a user's instances. With a cipher,
    the access token is Fernet-encrypted before it is written.
    """

    def __init__(self, client: Redis, cipher: Fernet | None = None) -> None:
        self._client: Redis = client
        self._cipher = cipher

    def _key(self, instance_id: str) -> str:
        return f"{_INSTANCE_PREFIX}{instance_id}"

    def _user_key(self, user_id: str) -> str:
        return f"{_USER_INDEX_PREFIX}{user_id}"

    def _dump(self, instance: JiraInstance) -> str:
        if self._cipher is None:
            return instance.model_dump_json()
        token = self._cipher.encrypt(instance.access_token.encode()).decode()
        return instance.model_copy(update={"access_token": token}).model_dump_json()

    def _load(self, raw: bytes | str) -> JiraInstance:
        data = raw.decode() if isinstance(raw, bytes) else str(raw)
        instance = JiraInstance.model_validate_json(data)
        if self._cipher is None:
            return instance
        token = self._cipher.decrypt(instance.access_token.encode()).decode()
        return instance.model_copy(update={"access_token": token})

    async def find_instances_by_user_id(self, user_id: str) -> list[JiraInstance]:
        ids = await self._client.smembers(self._user_key(user_id))  # type: ignore[misc]
        if not ids:
            return []
        keys = [self._key(i.decode() if isinstance(i, bytes) else str(i)) for i in ids]
        values = await self._client.mget(keys)
        found = [self._load(v) for v in values if v is not None]
        return sorted(found, key=lambda i: i.created_date)

    async def create_instance(
        self, user_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance:
        instance = JiraInstance(
            user_id=user_id, host=host, client_mail=client_mail, access_token=access_token
        )
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(self._key(instance.id), self._dump(instance))
            pipe.sadd(self._user_key(user_id), instance.id)
            await pipe.execute()
        log.debug("jira_instance_stored", instance_id=instance.id, user_id=user_id)
        return instance

    async def update_instance(
        self, instance_id: str, host: str, client_mail: str, access_token: str
    ) -> JiraInstance:
        current = await self.get_instance_by_id(instance_id)
        updated = current.model_copy(
            update={
                "host": host,
                "client_mail": client_mail,
                "access_token": access_token,
                "updated_date": utcnow(),
            }
        )
        # XX: a delete landing after the read must not recreate the record.
        stored = await self._client.set(
            self._key(instance_id), self._dump(updated), xx=True
        )
        if not stored:
            raise InstanceNotFoundError(instance_id)
        return updated

    async def delete_instance(self, instance_id: str) -> None:
        current = await self.get_instance_by_id(instance_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._key(instance_id))
            pipe.srem(self._user_key(current.user_id), instance_id)
            await pipe.execute()

    async def get_instance_by_id(self, instance_id: str) -> JiraInstance:
        raw = await self._client.get(self._key(instance_id))
        if raw is None:
            raise InstanceNotFoundError(instance_id)
        return self._load(raw)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_instance_store(settings: Settings) -> JiraInstanceStore:
    """Factory: create the JiraInstanceStore configured by STATE_BACKEND."""
    if settings.state_backend == "redis":
        import redis.asyncio as aioredis

        if not settings.redis_url:
            msg = "REDIS_URL is required when STATE_BACKEND=redis"
            raise ValueError(msg)
        cipher = (
            Fernet(settings.token_encryption_key.encode())
            if settings.token_encryption_key
            else None
        )
        return RedisJiraInstanceStore(aioredis.from_url(settings.redis_url), cipher)
    return MemoryJiraInstanceStore()
