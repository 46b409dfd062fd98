"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.infrastructure.database import async_session_factory
from rideshare.infrastructure.notifications import RedisNotificationSink
from rideshare.infrastructure.redis_client import get_redis
from rideshare.services.transitions import TransitionService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_notification_sink(
    client: aioredis.Redis = Depends(get_redis),
) -> RedisNotificationSink:
    return RedisNotificationSink(client)


async def get_transition_service(
    db: AsyncSession = Depends(get_db),
    sink: RedisNotificationSink = Depends(get_notification_sink),
) -> TransitionService:
    return TransitionService(db, sink)
