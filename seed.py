"""
Seed script -- populates the database with sample rides for reviewers.

Run after migrations:
    python seed.py

Creates 8 rides around Bengaluru and walks them through the lifecycle so
that every status (and the status tracker for each) can be inspected:
  - 2 PENDING, 2 ACCEPTED, 1 IN_PROGRESS, 2 COMPLETED, 1 CANCELLED

Prints a bearer token for each sample user.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from rideshare.api.auth import create_access_token
from rideshare.domain.entities import Location, Principal
from rideshare.domain.enums import RideStatus, Role
from rideshare.domain.lifecycle import attempt_transition
from rideshare.domain.pricing import format_fare
from rideshare.infrastructure.database import async_session_factory, engine
from rideshare.infrastructure.repositories import RideRepository

RIDERS = [Principal(f"rider-{n}", Role.RIDER) for n in range(1, 6)]
DRIVERS = [Principal(f"driver-{n}", Role.DRIVER) for n in range(1, 4)]
ADMIN = Principal("admin-1", Role.ADMIN)

# (rider, pickup, dropoff, [(status, actor), ...])
RIDES = [
    (RIDERS[0], (12.9716, 77.5946), (12.9352, 77.6245), []),
    (RIDERS[1], (12.9784, 77.6408), (13.0358, 77.5970), []),
    (RIDERS[2], (12.9698, 77.7500), (12.9279, 77.6271), [
        (RideStatus.ACCEPTED, DRIVERS[0]),
    ]),
    (RIDERS[3], (13.0067, 77.5713), (12.9141, 77.6101), [
        (RideStatus.ACCEPTED, DRIVERS[1]),
    ]),
    (RIDERS[4], (12.9121, 77.6446), (12.9719, 77.6412), [
        (RideStatus.ACCEPTED, DRIVERS[2]),
        (RideStatus.IN_PROGRESS, DRIVERS[2]),
    ]),
    (RIDERS[0], (12.9352, 77.6245), (12.9716, 77.5946), [
        (RideStatus.ACCEPTED, DRIVERS[0]),
        (RideStatus.IN_PROGRESS, DRIVERS[0]),
        (RideStatus.COMPLETED, DRIVERS[0]),
    ]),
    (RIDERS[1], (13.0358, 77.5970), (12.9784, 77.6408), [
        (RideStatus.ACCEPTED, DRIVERS[1]),
        (RideStatus.IN_PROGRESS, DRIVERS[1]),
        (RideStatus.COMPLETED, DRIVERS[1]),
    ]),
    (RIDERS[2], (12.9279, 77.6271), (12.9698, 77.7500), [
        (RideStatus.ACCEPTED, DRIVERS[2]),
        (RideStatus.CANCELLED, RIDERS[2]),
    ]),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM rides"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        repo = RideRepository(session)
        clock = datetime.now(timezone.utc) - timedelta(hours=6)

        for rider, pickup, dropoff, steps in RIDES:
            ride = await repo.create_ride(
                rider_id=rider.id,
                pickup=Location(*pickup),
                dropoff=Location(*dropoff),
                requested_at=clock,
            )
            for status, actor in steps:
                clock += timedelta(minutes=7)
                decision = attempt_transition(ride, status, actor, at=clock)
                swapped = await repo.compare_and_swap_status(
                    ride.id,
                    decision.previous_status,
                    decision.new_status,
                    decision.timestamps,
                    **decision.changes,
                )
                if not swapped:
                    await session.rollback()
                    raise SystemExit(
                        f"Ride {ride.id} changed while seeding "
                        f"({decision.previous_status.value} -> {decision.new_status.value}); aborting."
                    )
                ride = await repo.get_by_id(ride.id)
            clock += timedelta(minutes=11)
            print(
                f"  {ride.id}  {ride.status.value:<11}  "
                f"{format_fare(ride.price, ride.currency):>10}  rider={ride.rider_id}"
            )

        await session.commit()
        print(f"  Created {len(RIDES)} rides")

    print("\nSample tokens:")
    for principal in [*RIDERS, *DRIVERS, ADMIN]:
        token = create_access_token(principal.id, principal.role)
        print(f"  {principal.id:<9} {token}")
    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
