"""Dynamic pricing - occupancy, day-of-week and event modifiers.

Produces one additive adjustment per night, split into a percentage sum and
a fixed-amount sum because the pricing pipeline applies them in that order:

- Occupancy: only the satisfied rule with the highest threshold applies.
- Day of week: every matching rule applies (summed).
- Events: every event covering the night applies (summed).

Occupancy comes from the inventory ledger (booked_rooms / total_rooms for
the night); the same rows the ledger locks on reservation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from innkeep.domain.models import (
    ZERO,
    DowRule,
    EventOverride,
    Modifier,
    ModifierType,
    OccupancyRule,
    money,
    sunday_based_weekday,
    to_decimal,
)
from innkeep.infra.cache import TTLCache, config_tag


@dataclass(frozen=True)
class DynamicModifiers:
    percentage: Decimal = ZERO
    fixed: Decimal = ZERO

    def apply(self, price: Decimal) -> Decimal:
        """Percentage sum first, then the fixed sum."""
        if self.percentage:
            price = Modifier(ModifierType.PERCENTAGE, self.percentage).apply(price)
        if self.fixed:
            price = price + self.fixed
        return price


def select_occupancy_rule(
    rules: Iterable[OccupancyRule],
    *,
    room_type_id: int,
    occupancy_percent: Decimal,
) -> OccupancyRule | None:
    """Most specific satisfied rule: highest threshold, then priority, then id."""
    satisfied = [
        r
        for r in rules
        if r.is_active
        and (r.room_type_id is None or r.room_type_id == room_type_id)
        and occupancy_percent >= r.threshold_percent
    ]
    if not satisfied:
        return None
    return min(satisfied, key=lambda r: (-r.threshold_percent, -r.priority, r.id))


def combine_modifiers(
    *,
    room_type_id: int,
    night: date,
    occupancy_percent: Decimal,
    occupancy_rules: Iterable[OccupancyRule],
    dow_rules: Iterable[DowRule],
    events: Iterable[EventOverride],
) -> DynamicModifiers:
    applicable: list[Modifier] = []

    rule = select_occupancy_rule(
        occupancy_rules, room_type_id=room_type_id, occupancy_percent=occupancy_percent
    )
    if rule is not None:
        applicable.append(rule.modifier)

    weekday = sunday_based_weekday(night)
    applicable.extend(
        d.modifier
        for d in dow_rules
        if d.is_active
        and d.day_of_week == weekday
        and (d.room_type_id is None or d.room_type_id == room_type_id)
    )
    applicable.extend(
        e.modifier
        for e in events
        if e.is_active
        and e.covers(night)
        and (e.room_type_id is None or e.room_type_id == room_type_id)
    )

    percentage = ZERO
    fixed = ZERO
    for m in applicable:
        if m.type is ModifierType.PERCENTAGE:
            percentage += m.value
        else:
            # No absolute slot in an additive sum; treated as an amount
            fixed += m.value
    return DynamicModifiers(percentage=money(percentage), fixed=money(fixed))


class DynamicModifierCalculator:
    def __init__(
        self,
        cache: TTLCache,
        *,
        occupancy_source: Callable[[int, date], Decimal],
        load_occupancy_rules: Callable[[int], list[OccupancyRule]],
        load_dow_rules: Callable[[int], list[DowRule]],
        load_events: Callable[[int, date, date], list[EventOverride]],
        ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._occupancy_source = occupancy_source
        self._load_occupancy_rules = load_occupancy_rules
        self._load_dow_rules = load_dow_rules
        self._load_events = load_events
        self._ttl = ttl

    def modifiers_for(
        self,
        room_type_id: int,
        night: date,
        occupancy_percent: Decimal | None = None,
    ) -> DynamicModifiers:
        """Combined dynamic modifiers for a room type on a night.

        Callers that already hold the night's inventory row pass its
        occupancy; otherwise it is read from the ledger.
        """
        if occupancy_percent is None:
            occupancy_percent = self._occupancy_source(room_type_id, night)

        occupancy_rules = self._cached(
            f"occupancy_rules:{room_type_id}",
            lambda: self._load_occupancy_rules(room_type_id),
            "occupancy_rules",
        )
        dow_rules = self._cached(
            f"dow_rules:{room_type_id}",
            lambda: self._load_dow_rules(room_type_id),
            "dow_rules",
        )
        events = self._cached(
            f"events:{room_type_id}:{night.isoformat()}",
            lambda: self._load_events(room_type_id, night, night),
            "events",
        )
        return combine_modifiers(
            room_type_id=room_type_id,
            night=night,
            occupancy_percent=to_decimal(occupancy_percent),
            occupancy_rules=occupancy_rules,
            dow_rules=dow_rules,
            events=events,
        )

    def _cached(self, key: str, loader, kind: str):
        return self._cache.get_or_set(key, loader, self._ttl, tags=(config_tag(kind),))
