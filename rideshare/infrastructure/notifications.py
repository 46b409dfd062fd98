"""
Redis-backed notification sink.

Each notification is pushed onto a capped per-user list
(``notifications:{user_id}``, newest first) that backs the notification
feed, and published on a shared channel for live subscribers.

Delivery is fire-and-forget from the lifecycle's point of view: a Redis
failure is logged and the already-committed transition stands.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from rideshare.config import settings
from rideshare.domain.entities import Notification

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def publish(self, notification: Notification) -> None: ...


class RedisNotificationSink:
    def __init__(
        self,
        client: aioredis.Redis,
        history_size: int = settings.notification_history_size,
        channel: str = settings.notification_channel,
    ):
        self.redis = client
        self.history_size = history_size
        self.channel = channel

    @staticmethod
    def key(user_id: str) -> str:
        return f"notifications:{user_id}"

    async def publish(self, notification: Notification) -> None:
        payload = notification.to_dict()
        payload["timestamp"] = datetime.now(timezone.utc).isoformat()
        body = json.dumps(payload)
        key = self.key(notification.target_user_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.lpush(key, body)
                pipe.ltrim(key, 0, self.history_size - 1)
                pipe.publish(self.channel, body)
                await pipe.execute()
        except RedisError:
            logger.exception(
                "Failed to deliver %s notification for ride %s",
                notification.type.value,
                notification.ride_id,
            )

    async def recent(self, user_id: str, limit: int = 20) -> list[dict]:
        """Most recent notifications for *user_id*, newest first."""
        raw = await self.redis.lrange(self.key(user_id), 0, limit - 1)
        return [json.loads(item) for item in raw]
