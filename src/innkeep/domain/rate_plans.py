"""Rate plan resolution.

An explicit plan is validated against the room type; otherwise the best
default is chosen among active plans for the room type and global plans.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Callable

from innkeep.domain.models import RatePlan
from innkeep.domain.results import Failure
from innkeep.infra.cache import TTLCache, config_tag


class RatePlanFailure(str, Enum):
    NOT_FOUND = "rate_plan_not_found"
    INACTIVE = "rate_plan_inactive"
    NOT_APPLICABLE = "rate_plan_not_applicable"


def _preference(plan: RatePlan, room_type_id: int) -> tuple:
    # default first, then room-type specific over global, then name
    return (
        0 if plan.is_default else 1,
        0 if plan.room_type_id == room_type_id else 1,
        plan.name,
        plan.id,
    )


def choose_rate_plan(
    plans: list[RatePlan],
    *,
    room_type_id: int,
    guest_segment: str | None = None,
    on: date | None = None,
) -> RatePlan | None:
    """Pick the automatic plan for a room type from candidate plans.

    When a guest segment is given, plans for that segment are preferred;
    segment-agnostic plans are used only when none match.
    """
    candidates = [
        p
        for p in plans
        if p.is_active
        and p.applies_to_room_type(room_type_id)
        and (on is None or p.is_valid_on(on))
    ]
    if guest_segment is not None:
        segment_plans = [p for p in candidates if p.guest_segment == guest_segment]
        if segment_plans:
            candidates = segment_plans
        else:
            candidates = [p for p in candidates if p.guest_segment is None]
    if not candidates:
        return None
    return min(candidates, key=lambda p: _preference(p, room_type_id))


class RatePlanResolver:
    def __init__(
        self,
        cache: TTLCache,
        *,
        load_plan: Callable[[int], RatePlan | None],
        load_active: Callable[[int], list[RatePlan]],
        ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._load_plan = load_plan
        self._load_active = load_active
        self._ttl = ttl

    def resolve(
        self,
        room_type_id: int,
        rate_plan_id: int | None = None,
        guest_segment: str | None = None,
        on: date | None = None,
    ) -> RatePlan | Failure[RatePlanFailure]:
        """Resolve the plan to price with.

        Args:
            room_type_id: Room type being priced.
            rate_plan_id: Explicit plan, or None for automatic selection.
            guest_segment: Optional segment used to narrow automatic selection.
            on: Optional date (usually check-in) the plan must be valid on.
        """
        tags = (config_tag("rate_plans"),)

        if rate_plan_id is not None:
            plan = self._cache.get_or_set(
                f"rate_plan:{rate_plan_id}",
                lambda: self._load_plan(rate_plan_id),
                self._ttl,
                tags=tags,
            )
            if plan is None:
                return Failure(RatePlanFailure.NOT_FOUND, {"rate_plan_id": rate_plan_id})
            if not plan.is_active or (on is not None and not plan.is_valid_on(on)):
                return Failure(RatePlanFailure.INACTIVE, {"rate_plan_id": rate_plan_id})
            if not plan.applies_to_room_type(room_type_id):
                return Failure(
                    RatePlanFailure.NOT_APPLICABLE,
                    {"rate_plan_id": rate_plan_id, "room_type_id": room_type_id},
                )
            return plan

        plans = self._cache.get_or_set(
            f"rate_plans:active:{room_type_id}",
            lambda: self._load_active(room_type_id),
            self._ttl,
            tags=tags,
        )
        plan = choose_rate_plan(plans, room_type_id=room_type_id, guest_segment=guest_segment, on=on)
        if plan is None:
            return Failure(RatePlanFailure.NOT_FOUND, {"room_type_id": room_type_id})
        return plan
