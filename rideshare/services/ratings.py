"""Post-ride ratings, kept apart from the ride status."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.domain.entities import Principal, RatingNotAllowed, RideNotFound
from rideshare.domain.enums import RatingType
from rideshare.domain.ratings import resolve_rating
from rideshare.infrastructure.models import RatingModel
from rideshare.infrastructure.repositories import RatingRepository, RideRepository

logger = logging.getLogger(__name__)


async def rate_ride(
    session: AsyncSession,
    ride_id: str,
    principal: Principal,
    value: float,
    comment: Optional[str] = None,
) -> RatingModel:
    rides = RideRepository(session)
    ratings = RatingRepository(session)

    ride = await rides.get_by_id(ride_id)
    if ride is None:
        raise RideNotFound(ride_id)
    to_user_id, rating_type = resolve_rating(ride, principal)

    if await ratings.get_by_author(ride_id, principal.id):
        raise RatingNotAllowed("You have already rated this ride")

    try:
        rating = await ratings.create(
            ride_id=ride_id,
            from_user_id=principal.id,
            to_user_id=to_user_id,
            value=value,
            rating_type=rating_type,
            comment=comment,
        )
    except IntegrityError:
        # A concurrent request by the same author got there first.
        await session.rollback()
        raise RatingNotAllowed("You have already rated this ride")
    if rating_type is RatingType.RIDER_TO_DRIVER:
        await rides.mark_rider_rated(ride_id)
    await session.commit()
    logger.info("Ride %s rated %.1f by %s", ride_id, value, principal.id)
    return rating
