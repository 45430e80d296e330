import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from gymsched.services.cache_service import CacheService, invalidate_trainer_schedules


class Item(BaseModel):
    id: int
    name: str


def make_redis(cached=None, keys=()):
    redis = MagicMock()
    redis.get = AsyncMock(return_value=cached)
    redis.set = AsyncMock()
    redis.delete = AsyncMock(return_value=len(keys))

    async def scan_iter(match=None):
        for key in keys:
            yield key

    redis.scan_iter = MagicMock(side_effect=scan_iter)
    return redis


@pytest.mark.asyncio
async def test_without_redis_goes_to_the_database():
    fetch = AsyncMock(return_value=[Item(id=1, name="a")])
    result = await CacheService.get_or_set(None, "k", fetch, Item, is_list=True)
    assert result == [Item(id=1, name="a")]
    fetch.assert_awaited_once()


@pytest.mark.asyncio
async def test_cache_miss_stores_the_result():
    redis = make_redis()
    fetch = AsyncMock(return_value=[Item(id=1, name="a")])

    result = await CacheService.get_or_set(redis, "k", fetch, Item, expiry_seconds=60, is_list=True)

    assert result == [Item(id=1, name="a")]
    redis.set.assert_awaited_once()
    args, kwargs = redis.set.call_args
    assert args[0] == "k"
    assert json.loads(args[1]) == [{"id": 1, "name": "a"}]
    assert kwargs["ex"] == 60


@pytest.mark.asyncio
async def test_cache_hit_skips_the_database():
    redis = make_redis(cached=json.dumps({"id": 2, "name": "b"}))
    fetch = AsyncMock()

    result = await CacheService.get_or_set(redis, "k", fetch, Item)

    assert result == Item(id=2, name="b")
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_corrupt_entry_is_discarded():
    redis = make_redis(cached="{no es json")
    fetch = AsyncMock(return_value=Item(id=3, name="c"))

    result = await CacheService.get_or_set(redis, "k", fetch, Item)

    assert result == Item(id=3, name="c")
    redis.delete.assert_awaited_with("k")


@pytest.mark.asyncio
async def test_invalidate_trainer_schedules():
    keys: List[str] = ["schedules:trainer:5:all", "schedules:trainer:5:2030-01-10"]
    redis = make_redis(keys=keys)

    await invalidate_trainer_schedules(redis, 5, None)

    redis.scan_iter.assert_called_once_with(match="schedules:trainer:5:*")
    redis.delete.assert_awaited_once_with(*keys)
    assert await CacheService.delete_pattern(None, "x:*") == 0
