"""
SQLAlchemy ORM models.

Tables
------
* ``rides``    -- ride requests and their lifecycle state
* ``ratings``  -- post-ride ratings, one per (ride, author)

Riders and drivers are referenced by the opaque principal id carried in
their access token; user records live with the identity provider.

Indexes
-------
* **B-Tree** on ``status``, ``rider_id``, ``driver_id``, ``idempotency_key``
  for the list and idempotency look-ups.
* **Unique** ``(rider_id, idempotency_key)``: a key only deduplicates the
  requests of the rider who sent it.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base
from rideshare.domain.enums import RatingType, RideStatus


def _uuid() -> str:
    return str(uuid.uuid4())


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_uuid)
    rider_id = Column(String(64), nullable=False)
    driver_id = Column(String(64), nullable=True)

    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    dropoff_lat = Column(Float, nullable=False)
    dropoff_lng = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=True)
    seats_requested = Column(Integer, default=1, nullable=False)
    price = Column(Float, nullable=True)
    currency = Column(String(3), default="INR", nullable=False)

    # Only written through RideRepository.compare_and_swap_status
    status = Column(Enum(RideStatus), default=RideStatus.PENDING, nullable=False)
    # status value -> ISO-8601 instant the status was entered
    timestamps = Column(JSON, nullable=False, default=dict)
    rider_rated = Column(Boolean, default=False, nullable=False)
    cancel_reason = Column(String(255), nullable=True)
    # unique per rider, see uq_rides_rider_idempotency
    idempotency_key = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_rider", "rider_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_idempotency", "idempotency_key"),
        UniqueConstraint(
            "rider_id", "idempotency_key", name="uq_rides_rider_idempotency"
        ),
    )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(String(36), primary_key=True, default=_uuid)
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=False)
    from_user_id = Column(String(64), nullable=False)
    to_user_id = Column(String(64), nullable=False)
    value = Column(Float, nullable=False)
    comment = Column(Text, nullable=True)
    type = Column(Enum(RatingType), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ride_id", "from_user_id", name="uq_ratings_ride_author"),
        Index("idx_ratings_ride", "ride_id"),
        Index("idx_ratings_to_user", "to_user_id"),
    )
