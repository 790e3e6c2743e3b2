"""
Order Service — イベント発行

Redis Pub/Sub で order.created を発行する。

注意: Pub/Sub は fire-and-forget。購読者がいない間のメッセージは失われる。
発行は 1 回だけ試み、再送はしない。
"""

import json
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .errors import NotificationFailure
from .events import ORDER_CREATED, OrderCreated


class EventPublisher(Protocol):
    async def publish(self, product_id: str, quantity: int) -> None: ...


class RedisEventPublisher:
    def __init__(self, redis: aioredis.Redis, channel: str = ORDER_CREATED):
        self.redis = redis
        self.channel = channel

    async def publish(self, product_id: str, quantity: int) -> None:
        event = OrderCreated(product_id=product_id, quantity=quantity)
        try:
            await self.redis.publish(self.channel, json.dumps(event.to_message()))
        except RedisError as e:
            raise NotificationFailure(
                f"failed to publish {ORDER_CREATED} for product {product_id}: {e}"
            ) from e
