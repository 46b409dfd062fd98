"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  Notifications go to a recording sink
instead of Redis.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from rideshare.api.auth import create_access_token
from rideshare.domain.entities import Location, Notification, Principal, Ride
from rideshare.domain.enums import RideStatus, Role
from rideshare.infrastructure.database import Base

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

RIDER = Principal("U1", Role.RIDER)
DRIVER = Principal("D1", Role.DRIVER)
OTHER_DRIVER = Principal("D2", Role.DRIVER)
ADMIN = Principal("A1", Role.ADMIN)
STRANGER = Principal("U9", Role.RIDER)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class RecordingSink:
    """In-memory stand-in for ``RedisNotificationSink``."""

    def __init__(self):
        self.published: list[Notification] = []

    async def publish(self, notification: Notification) -> None:
        self.published.append(notification)

    async def recent(self, user_id: str, limit: int = 20) -> list[dict]:
        mine = [n.to_dict() for n in reversed(self.published) if n.target_user_id == user_id]
        return mine[:limit]


def make_ride(
    status: RideStatus = RideStatus.PENDING,
    *,
    driver_id: str | None = None,
    timestamps: dict | None = None,
    rider_rated: bool = False,
) -> Ride:
    if timestamps is None:
        timestamps = {RideStatus.PENDING.value: T0}
    return Ride(
        id="R1",
        rider_id=RIDER.id,
        driver_id=driver_id,
        status=status,
        timestamps=timestamps,
        rider_rated=rider_rated,
        pickup=Location(12.9716, 77.5946),
        dropoff=Location(12.9352, 77.6245),
    )


def auth_headers(principal: Principal) -> dict[str, str]:
    token = create_access_token(principal.id, principal.role)
    return {"Authorization": f"Bearer {token}"}


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def client(session_factory, sink) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite and the recording sink."""
    from rideshare.api.app import create_app
    from rideshare.api.dependencies import get_db, get_notification_sink
    from rideshare.api.middleware import limiter

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_sink():
        return sink

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_notification_sink] = _test_sink

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
