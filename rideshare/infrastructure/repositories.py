"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``RideRepository`` hands out plain
:class:`~rideshare.domain.entities.Ride` snapshots; the only way to change
a stored status is :meth:`RideRepository.compare_and_swap_status`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RatingModel, RideModel
from rideshare.config import settings
from rideshare.domain.distance import trip_distance_km
from rideshare.domain.entities import Location, Ride
from rideshare.domain.enums import RatingType, RideStatus
from rideshare.domain.pricing import PricingEngine


def _dump_timestamps(timestamps: dict[str, datetime]) -> dict[str, str]:
    return {key: value.isoformat() for key, value in timestamps.items()}


def _load_timestamps(raw: Optional[dict]) -> dict[str, datetime]:
    return {key: datetime.fromisoformat(value) for key, value in (raw or {}).items()}


def to_entity(model: RideModel) -> Ride:
    return Ride(
        id=model.id,
        rider_id=model.rider_id,
        driver_id=model.driver_id,
        status=RideStatus(model.status),
        timestamps=_load_timestamps(model.timestamps),
        rider_rated=bool(model.rider_rated),
        pickup=Location(model.pickup_lat, model.pickup_lng),
        dropoff=Location(model.dropoff_lat, model.dropoff_lng),
        seats_requested=model.seats_requested,
        distance_km=model.distance_km,
        price=model.price,
        currency=model.currency,
        cancel_reason=model.cancel_reason,
        created_at=model.created_at,
    )


class RideRepository:
    def __init__(self, session: AsyncSession, pricing: PricingEngine | None = None):
        self.session = session
        self.pricing = pricing or PricingEngine(settings.base_fare, settings.rate_per_km)

    async def create_ride(
        self,
        *,
        rider_id: str,
        pickup: Location,
        dropoff: Location,
        seats_requested: int = 1,
        idempotency_key: str | None = None,
        requested_at: datetime,
    ) -> Ride:
        """Insert a new PENDING ride with its quoted fare.

        Raises ``IntegrityError`` when *rider_id* already used *idempotency_key*.
        """
        distance_km = trip_distance_km(pickup, dropoff)
        ride = RideModel(
            rider_id=rider_id,
            pickup_lat=pickup.latitude,
            pickup_lng=pickup.longitude,
            dropoff_lat=dropoff.latitude,
            dropoff_lng=dropoff.longitude,
            distance_km=distance_km,
            seats_requested=seats_requested,
            price=self.pricing.quote(distance_km, seats_requested),
            currency=settings.currency,
            idempotency_key=idempotency_key,
            status=RideStatus.PENDING,
            timestamps=_dump_timestamps({RideStatus.PENDING.value: requested_at}),
            rider_rated=False,
            created_at=requested_at,
        )
        self.session.add(ride)
        await self.session.flush()
        return to_entity(ride)

    async def get_by_id(self, ride_id: str) -> Optional[Ride]:
        model = await self.session.get(RideModel, ride_id, populate_existing=True)
        return to_entity(model) if model else None

    async def get_by_idempotency_key(
        self, key: str, *, rider_id: str
    ) -> Optional[Ride]:
        result = await self.session.execute(
            select(RideModel).where(
                RideModel.idempotency_key == key,
                RideModel.rider_id == rider_id,
            )
        )
        model = result.scalar_one_or_none()
        return to_entity(model) if model else None

    async def list_rides(
        self,
        *,
        status: RideStatus | None = None,
        participant_id: str | None = None,
        limit: int = 100,
    ) -> list[Ride]:
        query = select(RideModel).order_by(RideModel.created_at.desc()).limit(limit)
        if status is not None:
            query = query.where(RideModel.status == status)
        if participant_id is not None:
            query = query.where(
                (RideModel.rider_id == participant_id)
                | (RideModel.driver_id == participant_id)
            )
        result = await self.session.execute(query)
        return [to_entity(m) for m in result.scalars().all()]

    async def compare_and_swap_status(
        self,
        ride_id: str,
        expected: RideStatus,
        new_status: RideStatus,
        timestamps: dict[str, datetime],
        **extra,
    ) -> bool:
        """UPDATE ... WHERE status = *expected*.  False means another writer won."""
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.status == expected)
            .values(
                status=new_status,
                timestamps=_dump_timestamps(timestamps),
                **extra,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_rider_rated(self, ride_id: str) -> None:
        await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id)
            .values(rider_rated=True)
            .execution_options(synchronize_session=False)
        )


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_author(
        self, ride_id: str, from_user_id: str
    ) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel).where(
                RatingModel.ride_id == ride_id,
                RatingModel.from_user_id == from_user_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        ride_id: str,
        from_user_id: str,
        to_user_id: str,
        value: float,
        rating_type: RatingType,
        comment: str | None = None,
    ) -> RatingModel:
        rating = RatingModel(
            ride_id=ride_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            value=value,
            comment=comment,
            type=rating_type,
        )
        self.session.add(rating)
        await self.session.flush()
        return rating
