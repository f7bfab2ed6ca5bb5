"""
Tariff Pricing Engine  (Strategy Pattern)
=========================================

Formula
-------
subtotal = base + distance x per_km + waiting_cost + passenger_cost
total    = subtotal + sum(subtotal x pct / 100  for each applied surcharge)

* **waiting_cost**   = max(0, waiting - free_minutes) x waiting_per_minute
* **passenger_cost** = percentage mode when ``extra_passenger_percent > 0``
  (share of base + distance + waiting, per extra passenger), otherwise a
  flat fee per passenger above ``included_passengers``.
* **Surcharges** (night, weekend, holiday, peak) are evaluated
  independently and each is taken against the *same* subtotal; they never
  compound on each other.

Amounts are not rounded here; rounding is a presentation concern.
Instants are local wall-clock datetimes.

Complexity: O(P) per fare, P = configured peak windows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .availability import minute_of_day, parse_hhmm
from .entities import PeakWindow, Tariff
from .enums import SurchargeKind

NIGHT_START_HOUR = 20
NIGHT_END_HOUR = 6
WEEKEND_DAYS = {5, 6}  # Saturday, Sunday


# ── Results ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AppliedSurcharge:
    label: str
    percent: float
    amount: float


@dataclass(frozen=True)
class FareBreakdown:
    currency: str
    base: float
    distance_cost: float
    waiting_cost: float
    passenger_cost: float
    subtotal: float
    surcharge_amount: float
    surcharges: tuple[AppliedSurcharge, ...]
    total: float

    @property
    def surcharge_labels(self) -> list[str]:
        return [s.label for s in self.surcharges]


# ── Extra-passenger strategies ────────────────────────────────────────


class PassengerPricing(ABC):
    @abstractmethod
    def calculate(self, extra_passengers: int, running_cost: float) -> float: ...


class FlatFeePassengerPricing(PassengerPricing):
    def __init__(self, fee: float):
        self.fee = fee

    def calculate(self, extra_passengers: int, running_cost: float) -> float:
        return extra_passengers * self.fee


class PercentPassengerPricing(PassengerPricing):
    def __init__(self, percent: float):
        self.percent = percent

    def calculate(self, extra_passengers: int, running_cost: float) -> float:
        return running_cost * (self.percent / 100) * extra_passengers


def passenger_strategy(tariff: Tariff) -> PassengerPricing:
    """Percentage mode wins whenever it is non-zero."""
    if tariff.extra_passenger_percent > 0:
        return PercentPassengerPricing(tariff.extra_passenger_percent)
    return FlatFeePassengerPricing(tariff.extra_passenger_fee)


# ── Surcharge rules ───────────────────────────────────────────────────


class SurchargeRule(ABC):
    kind: SurchargeKind

    @abstractmethod
    def percent_for(self, instant: datetime, tariff: Tariff) -> Optional[float]:
        """Return the surcharge percentage if the rule applies, else None."""


class NightSurcharge(SurchargeRule):
    kind = SurchargeKind.NIGHT

    def percent_for(self, instant: datetime, tariff: Tariff) -> Optional[float]:
        if instant.hour >= NIGHT_START_HOUR or instant.hour < NIGHT_END_HOUR:
            return tariff.night_surcharge_percent
        return None


class WeekendSurcharge(SurchargeRule):
    kind = SurchargeKind.WEEKEND

    def percent_for(self, instant: datetime, tariff: Tariff) -> Optional[float]:
        if instant.weekday() in WEEKEND_DAYS:
            return tariff.weekend_surcharge_percent
        return None


class HolidaySurcharge(SurchargeRule):
    kind = SurchargeKind.HOLIDAY

    def percent_for(self, instant: datetime, tariff: Tariff) -> Optional[float]:
        if instant.date() in tariff.holidays:
            return tariff.holiday_surcharge_percent
        return None


class PeakSurcharge(SurchargeRule):
    kind = SurchargeKind.PEAK

    def percent_for(self, instant: datetime, tariff: Tariff) -> Optional[float]:
        window = peak_window_at(instant, tariff.peak_hours)
        return window.surcharge_percent if window else None


def peak_window_at(
    instant: datetime, windows: tuple[PeakWindow, ...]
) -> Optional[PeakWindow]:
    """First configured window whose inclusive bounds contain *instant*."""
    now = minute_of_day(instant)
    for window in windows:
        start, end = parse_hhmm(window.start), parse_hhmm(window.end)
        if start is None or end is None:
            continue
        if start <= now <= end:
            return window
    return None


SURCHARGE_RULES: tuple[SurchargeRule, ...] = (
    NightSurcharge(),
    WeekendSurcharge(),
    HolidaySurcharge(),
    PeakSurcharge(),
)


# ── Core computation ──────────────────────────────────────────────────


def compute_fare(
    distance_km: float,
    instant: datetime,
    passengers: int,
    waiting_minutes: float,
    tariff: Tariff,
) -> FareBreakdown:
    """Price a trip.  *distance_km* already includes any return-trip leg."""
    base = tariff.base_fare
    distance_cost = distance_km * tariff.per_km
    waiting_cost = (
        max(0.0, waiting_minutes - tariff.waiting_free_minutes)
        * tariff.waiting_per_minute
    )

    extra = max(0, passengers - tariff.included_passengers)
    passenger_cost = passenger_strategy(tariff).calculate(
        extra, base + distance_cost + waiting_cost
    )

    subtotal = base + distance_cost + waiting_cost + passenger_cost

    applied: list[AppliedSurcharge] = []
    for rule in SURCHARGE_RULES:
        percent = rule.percent_for(instant, tariff)
        if not percent:
            continue
        applied.append(
            AppliedSurcharge(
                label=rule.kind.value,
                percent=percent,
                amount=subtotal * percent / 100,
            )
        )

    surcharge_amount = sum(s.amount for s in applied)

    return FareBreakdown(
        currency=tariff.currency,
        base=base,
        distance_cost=distance_cost,
        waiting_cost=waiting_cost,
        passenger_cost=passenger_cost,
        subtotal=subtotal,
        surcharge_amount=surcharge_amount,
        surcharges=tuple(applied),
        total=subtotal + surcharge_amount,
    )


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the booking service and the quote endpoint."""

    def __init__(self, tariff: Tariff):
        self.tariff = tariff

    def priced_distance(self, distance_km: float, wait_and_return: bool) -> float:
        if wait_and_return:
            return distance_km * self.tariff.return_trip_multiplier
        return distance_km

    def quote(
        self,
        distance_km: float,
        instant: datetime,
        passengers: int,
        waiting_minutes: float = 0.0,
        wait_and_return: bool = False,
    ) -> FareBreakdown:
        return compute_fare(
            self.priced_distance(distance_km, wait_and_return),
            instant,
            passengers,
            waiting_minutes,
            self.tariff,
        )
