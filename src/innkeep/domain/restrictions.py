"""Restriction engine - booking-rule checks for a stay.

Evaluates min/max stay, closed-to-arrival, closed-to-departure and stop-sell
restrictions for a room type, rate plan and sales channel. Any single
violation denies the whole request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable

from innkeep.domain.models import (
    RateRestriction,
    RestrictionType,
    iter_nights,
    nights_between,
)
from innkeep.domain.results import Failure
from innkeep.infra.cache import TTLCache, config_tag


class RestrictionViolation(str, Enum):
    INVALID_DATE_RANGE = "invalid_date_range"
    STOP_SELL = "stop_sell"
    MIN_STAY_VIOLATION = "min_stay_violation"
    MAX_STAY_VIOLATION = "max_stay_violation"
    CLOSED_TO_ARRIVAL = "closed_to_arrival"
    CLOSED_TO_DEPARTURE = "closed_to_departure"


@dataclass(frozen=True)
class Allowed:
    room_type_id: int
    nights: int


def _violation(
    reason: RestrictionViolation,
    restriction: RateRestriction,
    day: date,
    **extra,
) -> Failure[RestrictionViolation]:
    return Failure(reason, {"restriction_id": restriction.id, "date": day, **extra})


def evaluate_restrictions(
    restrictions: list[RateRestriction],
    *,
    room_type_id: int,
    rate_plan_id: int | None,
    channel: str | None,
    check_in: date,
    check_out: date,
) -> Allowed | Failure[RestrictionViolation]:
    """Check a stay against already-loaded restrictions.

    Stay-wide rules (stop-sell, min/max stay) are matched night by night;
    CTA is matched on the check-in date and CTD on the check-out date.
    The first violation, in date order, is returned.
    """
    if check_out <= check_in:
        return Failure(
            RestrictionViolation.INVALID_DATE_RANGE,
            {"check_in": check_in, "check_out": check_out},
        )

    nights = nights_between(check_in, check_out)
    relevant = [r for r in restrictions if r.room_type_id == room_type_id]

    for night in iter_nights(check_in, check_out):
        for r in relevant:
            if not r.applies_on(night, rate_plan_id, channel):
                continue
            kind = r.restriction_type
            if kind is RestrictionType.STOP_SELL:
                return _violation(RestrictionViolation.STOP_SELL, r, night)
            if kind is RestrictionType.MIN_STAY and r.value is not None and nights < r.value:
                return _violation(
                    RestrictionViolation.MIN_STAY_VIOLATION, r, night, min_stay=r.value, nights=nights
                )
            if kind is RestrictionType.MAX_STAY and r.value is not None and nights > r.value:
                return _violation(
                    RestrictionViolation.MAX_STAY_VIOLATION, r, night, max_stay=r.value, nights=nights
                )
            if kind is RestrictionType.CTA and night == check_in:
                return _violation(RestrictionViolation.CLOSED_TO_ARRIVAL, r, night)

    for r in relevant:
        if r.restriction_type is RestrictionType.CTD and r.applies_on(check_out, rate_plan_id, channel):
            return _violation(RestrictionViolation.CLOSED_TO_DEPARTURE, r, check_out)

    return Allowed(room_type_id=room_type_id, nights=nights)


class RestrictionEngine:
    def __init__(
        self,
        cache: TTLCache,
        *,
        load: Callable[[int, date, date], list[RateRestriction]],
        ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._load = load
        self._ttl = ttl

    def is_allowed(
        self,
        room_type_id: int,
        rate_plan_id: int | None,
        channel: str | None,
        check_in: date,
        check_out: date,
    ) -> Allowed | Failure[RestrictionViolation]:
        if check_out <= check_in:
            return Failure(
                RestrictionViolation.INVALID_DATE_RANGE,
                {"check_in": check_in, "check_out": check_out},
            )
        # check_out is included so CTD restrictions on the departure date load
        restrictions = self._cache.get_or_set(
            f"restrictions:{room_type_id}:{check_in.isoformat()}:{check_out.isoformat()}",
            lambda: self._load(room_type_id, check_in, check_out),
            self._ttl,
            tags=(config_tag("restrictions"),),
        )
        return evaluate_restrictions(
            restrictions,
            room_type_id=room_type_id,
            rate_plan_id=rate_plan_id,
            channel=channel,
            check_in=check_in,
            check_out=check_out,
        )
