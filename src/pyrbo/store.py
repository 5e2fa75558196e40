"""Key-value store adapters.

A backed object needs exactly two store operations: read a key and replace
a key.  Values are opaque serialized documents; TTLs, replication and
connection handling are the store's business.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from pyrbo.exceptions import RboStoreError

_logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Structural store interface used by :class:`~pyrbo.backed.RedisBackedObject`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`RedisStore`) concrete.
    """

    async def get(self, key: str) -> str | bytes | None:
        ...

    async def set(self, key: str, value: str) -> Any:
        ...


class RedisStore:
    """Store backed by a ``redis.asyncio`` client."""

    def __init__(self, client: aioredis.Redis, *, owns_client: bool = False) -> None:
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisStore:
        """Create a store with its own client; call :meth:`close` when done."""
        kwargs.setdefault("decode_responses", True)
        return cls(aioredis.Redis.from_url(url, **kwargs), owns_client=True)

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def get(self, key: str) -> str | bytes | None:
        _logger.debug("GET %s", key)
        try:
            value: str | bytes | None = await self._client.get(key)
        except RedisError as exc:
            raise RboStoreError(f"GET {key} failed: {exc}", key=key, operation="get") from exc
        return value

    async def set(self, key: str, value: str) -> Any:
        _logger.debug("SET %s (%d chars)", key, len(value))
        try:
            return await self._client.set(key, value)
        except RedisError as exc:
            raise RboStoreError(f"SET {key} failed: {exc}", key=key, operation="set") from exc

    async def close(self) -> None:
        """Close the client if this store created it."""
        if self._owns_client:
            await self._client.aclose()


class MemoryStore:
    """In-process store holding documents in a dict.

    Useful for tests and for running without a server.  Every successful
    ``set`` is appended to :attr:`writes` in order.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        self.writes.append((key, value))
        return True

    def peek(self, key: str) -> str | None:
        """Synchronous read for inspection."""
        return self._data.get(key)

    def writes_for(self, key: str) -> list[str]:
        return [value for written_key, value in self.writes if written_key == key]
