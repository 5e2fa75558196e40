from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pyrbo.exceptions import RboStoreError
from pyrbo.store import MemoryStore, RedisStore


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    fail: bool = False
    closed: bool = False

    async def get(self, key: str) -> str | None:
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.data[key] = value
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_redis_store_roundtrip() -> None:
    client = FakeRedisClient()
    store = RedisStore(client)  # type: ignore[arg-type]

    assert await store.get("k") is None
    assert await store.set("k", '{"a":1}') is True
    assert await store.get("k") == '{"a":1}'


@pytest.mark.asyncio
async def test_redis_errors_are_wrapped() -> None:
    store = RedisStore(FakeRedisClient(fail=True))  # type: ignore[arg-type]

    with pytest.raises(RboStoreError) as get_info:
        await store.get("k")
    with pytest.raises(RboStoreError) as set_info:
        await store.set("k", "{}")

    assert get_info.value.operation == "get"
    assert set_info.value.operation == "set"
    assert set_info.value.key == "k"
    assert isinstance(set_info.value.__cause__, RedisConnectionError)


@pytest.mark.asyncio
async def test_close_only_closes_owned_client() -> None:
    borrowed = FakeRedisClient()
    owned = FakeRedisClient()

    await RedisStore(borrowed).close()  # type: ignore[arg-type]
    await RedisStore(owned, owns_client=True).close()  # type: ignore[arg-type]

    assert borrowed.closed is False
    assert owned.closed is True


def test_from_url_builds_decoding_client() -> None:
    store = RedisStore.from_url("redis://localhost:6379/5")
    kwargs: dict[str, Any] = store.client.connection_pool.connection_kwargs

    assert kwargs["decode_responses"] is True
    assert kwargs["db"] == 5


@pytest.mark.asyncio
async def test_memory_store_records_writes() -> None:
    store = MemoryStore({"a": "1"})

    await store.set("b", "2")
    await store.set("a", "3")

    assert await store.get("a") == "3"
    assert store.peek("missing") is None
    assert store.writes_for("a") == ["3"]
    assert store.writes == [("b", "2"), ("a", "3")]
