"""
Order Service — 注文リードキャッシュ

商品 ID → 注文一覧 の短命キャッシュ (cache-aside)。

get の結果は 3 通りあり、区別しなければならない:
  - None           : キャッシュに無い (ストアへ読みに行く)
  - []             : 「注文 0 件」がキャッシュされている
  - [Order, ...]   : 注文一覧がキャッシュされている

キャッシュはストアの派生コピーにすぎず、エントリの失効はストアに影響しない。
"""

import time
from typing import Callable, Protocol

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from .errors import CacheFailure
from .models import Order, order_list_adapter

KEY_PREFIX = "orders:product:"


def order_cache_key(product_id: str) -> str:
    return f"{KEY_PREFIX}{product_id}"


class OrderReadCache(Protocol):
    async def get(self, key: str) -> list[Order] | None: ...

    async def set(self, key: str, orders: list[Order], ttl: int) -> None: ...


class RedisOrderCache:
    """注文一覧を JSON 文字列として Redis に保存する"""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def get(self, key: str) -> list[Order] | None:
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            raise CacheFailure(f"redis get {key} failed: {e}") from e
        except UnicodeDecodeError as e:
            # decode_responses=True のプールは UTF-8 でない値をここで弾く
            raise CacheFailure(f"undecodable cache entry {key}: {e}") from e
        if raw is None:
            return None
        try:
            return order_list_adapter.validate_json(raw)
        except ValidationError as e:
            raise CacheFailure(f"corrupt cache entry {key}: {e}") from e

    async def set(self, key: str, orders: list[Order], ttl: int) -> None:
        payload = order_list_adapter.dump_json(orders, by_alias=True)
        try:
            await self.redis.set(key, payload, ex=ttl)
        except RedisError as e:
            raise CacheFailure(f"redis set {key} failed: {e}") from e


class InMemoryOrderCache:
    """
    プロセス内キャッシュ (ORDER_CACHE_BACKEND=memory)。

    ローカル実行とテスト用。プロセス間では共有されない。
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, tuple[Order, ...]]] = {}

    async def get(self, key: str) -> list[Order] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, orders = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return list(orders)

    async def set(self, key: str, orders: list[Order], ttl: int) -> None:
        now = self._clock()
        self._prune(now)
        self._entries[key] = (now + ttl, tuple(orders))

    def _prune(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
