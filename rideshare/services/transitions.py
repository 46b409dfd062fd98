"""
Applies lifecycle decisions to stored rides.

Concurrency safety
------------------
The decision itself (:func:`attempt_transition`) is pure.  Writing it back
uses optimistic concurrency: the UPDATE only matches while the stored
status still equals the status the decision was computed against.  A lost
race re-reads the ride and decides again, at most
``settings.transition_retries`` extra times, before surfacing
:class:`TransitionConflict`.

The notification is published only after the commit succeeds, so a
refused or conflicting request never emits anything.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.config import settings
from rideshare.domain.entities import (
    Principal,
    Ride,
    RideNotFound,
    TransitionConflict,
    TransitionResult,
)
from rideshare.domain.enums import RideStatus
from rideshare.domain.lifecycle import attempt_transition
from rideshare.infrastructure.notifications import NotificationSink
from rideshare.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)


class TransitionService:
    def __init__(
        self,
        session: AsyncSession,
        sink: NotificationSink,
        retries: int = settings.transition_retries,
    ):
        self.session = session
        self.rides = RideRepository(session)
        self.sink = sink
        self.retries = retries

    async def load(self, ride_id: str) -> Ride:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise RideNotFound(ride_id)
        return ride

    async def apply(
        self,
        ride: Ride,
        requested: RideStatus,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        """Decide against the *ride* snapshot and write it conditionally.

        Raises :class:`TransitionConflict` if the stored status no longer
        matches ``ride.status``.  Does not commit.
        """
        result = attempt_transition(ride, requested, principal, reason=reason)
        swapped = await self.rides.compare_and_swap_status(
            ride.id,
            result.previous_status,
            result.new_status,
            result.timestamps,
            **result.changes,
        )
        if not swapped:
            raise TransitionConflict(ride.id, result.previous_status)
        return result

    async def transition(
        self,
        ride_id: str,
        requested: RideStatus,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        attempts = 0
        while True:
            ride = await self.load(ride_id)
            try:
                result = await self.apply(ride, requested, principal, reason)
                break
            except TransitionConflict:
                await self.session.rollback()
                if attempts >= self.retries:
                    logger.info(
                        "Giving up on ride %s -> %s after %d conflicts",
                        ride_id,
                        requested.value,
                        attempts + 1,
                    )
                    raise
                attempts += 1
                logger.debug("Conflict on ride %s, re-reading", ride_id)

        await self.session.commit()
        logger.info(
            "Ride %s %s -> %s by %s",
            ride_id,
            result.previous_status.value,
            result.new_status.value,
            principal.id,
        )
        await self.sink.publish(result.notification)
        return result
