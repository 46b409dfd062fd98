"""
Fare calculation  (Strategy Pattern)
====================================

Formula
-------
Fare = (Base_Fare + Distance x Rate_Per_KM) x Seat_Factor

* **Seat_Factor**: the first seat is charged in full, every extra seat in
  the same booking at a 20 % discount.

The fare is quoted once, when the ride is requested, and stored on the ride.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .distance import haversine_km
from .entities import Location

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> float: ...


class StandardPricing(PricingStrategy):
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> float:
        return round(base_fare + distance_km * rate_per_km, 2)


class MultiSeatPricing(PricingStrategy):
    """One full-price seat plus discounted extra seats."""

    EXTRA_SEAT_DISCOUNT = 0.20

    def __init__(self, seats: int):
        self.seats = max(1, seats)

    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> float:
        single = base_fare + distance_km * rate_per_km
        extra = (self.seats - 1) * single * (1 - self.EXTRA_SEAT_DISCOUNT)
        return round(single + extra, 2)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the ride repository and the seed script."""

    def __init__(self, base_fare: float = 50.0, rate_per_km: float = 15.0):
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km

    def quote(self, distance_km: float, seats: int = 1) -> float:
        strategy = StandardPricing() if seats <= 1 else MultiSeatPricing(seats)
        return strategy.calculate(distance_km, self.base_fare, self.rate_per_km)

    def calculate_price(
        self, pickup: Location, dropoff: Location, seats: int = 1
    ) -> float:
        return self.quote(haversine_km(pickup, dropoff), seats)


def format_fare(amount: float | None, currency: str) -> str:
    """``₹127.50`` style display string; empty when there is no fare."""
    if amount is None:
        return ""
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{currency.upper()} {amount:,.2f}"
    return f"{symbol}{amount:,.2f}"
