"""Domain records for inventory and pricing.

Rows are mapped into frozen dataclasses by the repositories; everything in
the pricing pipeline works on these records and on ``Decimal`` money.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterator

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# RateRestriction.days_of_week uses short names; ISO weekday numbers (Mon=1)
_DAY_NAMES = {"mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6, "sun": 7}


def money(value: Decimal | int | float | str) -> Decimal:
    """Round half-up to two decimal places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night in [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def sunday_based_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


class ModifierType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class Modifier:
    """A price adjustment: percentage, fixed amount, or absolute price."""

    type: ModifierType
    value: Decimal

    @classmethod
    def of(cls, modifier_type: str | ModifierType, value: Decimal | int | float | str) -> Modifier:
        return cls(ModifierType(modifier_type), to_decimal(value))

    def apply(self, price: Decimal) -> Decimal:
        if self.type is ModifierType.PERCENTAGE:
            return price * (1 + self.value / HUNDRED)
        if self.type is ModifierType.FIXED:
            return price + self.value
        if self.type is ModifierType.ABSOLUTE:
            return self.value
        raise ValueError(f"unknown modifier type: {self.type!r}")


NO_CHANGE = Modifier(ModifierType.PERCENTAGE, ZERO)


@dataclass(frozen=True)
class RoomType:
    id: int
    name: str
    base_price: Decimal
    base_occupancy: int
    max_occupancy: int
    extra_adult_price: Decimal = ZERO
    extra_child_price: Decimal = ZERO
    is_active: bool = True

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "base_price": str(self.base_price),
            "base_occupancy": self.base_occupancy,
            "max_occupancy": self.max_occupancy,
        }


@dataclass(frozen=True)
class InventoryDay:
    room_type_id: int
    date: date
    total_rooms: int
    available_rooms: int
    booked_rooms: int = 0
    price_override: Decimal | None = None
    stop_sell: bool = False
    min_stay: int = 1

    @property
    def occupancy_percent(self) -> Decimal:
        """Share of capacity committed through the ledger, in percent."""
        if self.total_rooms <= 0:
            return ZERO
        return money(Decimal(self.booked_rooms) / Decimal(self.total_rooms) * HUNDRED)

    def to_dict(self) -> dict:
        return {
            "room_type_id": self.room_type_id,
            "date": self.date.isoformat(),
            "total_rooms": self.total_rooms,
            "available_rooms": self.available_rooms,
            "booked_rooms": self.booked_rooms,
            "price_override": None if self.price_override is None else str(self.price_override),
            "stop_sell": self.stop_sell,
            "min_stay": self.min_stay,
        }


@dataclass(frozen=True)
class RatePlan:
    id: int
    name: str
    modifier: Modifier = NO_CHANGE
    room_type_id: int | None = None
    code: str | None = None
    min_stay: int = 0
    max_stay: int = 0
    is_default: bool = False
    is_refundable: bool = True
    guest_segment: str | None = None
    valid_from: date | None = None
    valid_until: date | None = None
    is_active: bool = True

    def applies_to_room_type(self, room_type_id: int) -> bool:
        return self.room_type_id is None or self.room_type_id == room_type_id

    def is_valid_on(self, day: date) -> bool:
        if self.valid_from is not None and day < self.valid_from:
            return False
        if self.valid_until is not None and day > self.valid_until:
            return False
        return True

    def allows_stay_length(self, nights: int) -> bool:
        if nights < self.min_stay:
            return False
        if self.max_stay > 0 and nights > self.max_stay:
            return False
        return True


@dataclass(frozen=True)
class SeasonalRate:
    id: int
    start_date: date
    end_date: date
    modifier: Modifier
    name: str = ""
    room_type_id: int | None = None
    rate_plan_id: int | None = None
    days_of_week: tuple[int, ...] = ()  # ISO 1=Mon..7=Sun
    priority: int = 0
    is_active: bool = True

    def applies_to(self, room_type_id: int, rate_plan_id: int | None, night: date) -> bool:
        if not self.is_active:
            return False
        if not (self.start_date <= night <= self.end_date):
            return False
        if self.room_type_id is not None and self.room_type_id != room_type_id:
            return False
        if self.rate_plan_id is not None and self.rate_plan_id != rate_plan_id:
            return False
        if self.days_of_week and night.isoweekday() not in self.days_of_week:
            return False
        return True


@dataclass(frozen=True)
class OccupancyRule:
    id: int
    threshold_percent: Decimal
    modifier: Modifier
    room_type_id: int | None = None
    priority: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class DowRule:
    id: int
    day_of_week: int  # 0=Sun..6=Sat
    modifier: Modifier
    room_type_id: int | None = None
    is_active: bool = True


@dataclass(frozen=True)
class EventOverride:
    id: int
    name: str
    start_date: date
    end_date: date
    modifier: Modifier
    room_type_id: int | None = None
    priority: int = 0
    is_active: bool = True

    def covers(self, night: date) -> bool:
        return self.start_date <= night <= self.end_date


class RestrictionType(str, Enum):
    MIN_STAY = "min_stay"
    MAX_STAY = "max_stay"
    CTA = "cta"
    CTD = "ctd"
    STOP_SELL = "stop_sell"


def parse_day_names(raw: str | None) -> frozenset[int]:
    """'mon, fri' -> {1, 5}. Unknown names are ignored; empty means every day."""
    if not raw:
        return frozenset()
    names = (part.strip().lower() for part in raw.split(","))
    return frozenset(_DAY_NAMES[n] for n in names if n in _DAY_NAMES)


@dataclass(frozen=True)
class RateRestriction:
    id: int
    room_type_id: int
    restriction_type: RestrictionType
    date_from: date
    date_to: date
    value: int | None = None
    rate_plan_id: int | None = None
    channel: str | None = None
    days_of_week: frozenset[int] = field(default_factory=frozenset)  # ISO weekdays
    is_active: bool = True

    def applies_on(self, day: date, rate_plan_id: int | None, channel: str | None) -> bool:
        if not self.is_active:
            return False
        if not (self.date_from <= day <= self.date_to):
            return False
        if self.rate_plan_id is not None and self.rate_plan_id != rate_plan_id:
            return False
        if self.channel and self.channel != channel:
            return False
        if self.days_of_week and day.isoweekday() not in self.days_of_week:
            return False
        return True
