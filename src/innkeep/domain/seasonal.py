"""Seasonal rate resolution - one winning seasonal rate per night."""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable

from innkeep.domain.models import SeasonalRate
from innkeep.infra.cache import TTLCache, config_tag


def select_seasonal_rate(
    rates: Iterable[SeasonalRate],
    *,
    room_type_id: int,
    rate_plan_id: int | None,
    night: date,
) -> SeasonalRate | None:
    """Highest-priority applicable rate for the night; ties go to the lowest id.

    Seasonal rates never stack: at most one is returned.
    """
    matching = [r for r in rates if r.applies_to(room_type_id, rate_plan_id, night)]
    if not matching:
        return None
    return min(matching, key=lambda r: (-r.priority, r.id))


class SeasonalRateResolver:
    def __init__(
        self,
        cache: TTLCache,
        *,
        load: Callable[[int, date, date], list[SeasonalRate]],
        ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._load = load
        self._ttl = ttl

    def for_range(self, room_type_id: int, start: date, end: date) -> list[SeasonalRate]:
        """Preload rates overlapping [start, end] so a stay costs one lookup."""
        return self._cache.get_or_set(
            f"seasonal:{room_type_id}:{start.isoformat()}:{end.isoformat()}",
            lambda: self._load(room_type_id, start, end),
            self._ttl,
            tags=(config_tag("seasonal_rates"),),
        )

    def applicable_on(
        self,
        room_type_id: int,
        rate_plan_id: int | None,
        night: date,
        preloaded: list[SeasonalRate] | None = None,
    ) -> SeasonalRate | None:
        rates = preloaded if preloaded is not None else self.for_range(room_type_id, night, night)
        return select_seasonal_rate(
            rates, room_type_id=room_type_id, rate_plan_id=rate_plan_id, night=night
        )
