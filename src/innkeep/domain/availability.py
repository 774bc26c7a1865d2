"""Availability search - sellable, priced room types for a stay.

A room type is offered only when every night is sellable, the restriction
engine allows the stay and pricing succeeds. Results are cached for a short
TTL and dropped whenever the ledger mutates one of the nights.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable

from innkeep.domain.catalog import RoomTypeCatalog
from innkeep.domain.inventory import InventoryLedger
from innkeep.domain.models import InventoryDay, RoomType, iter_nights, nights_between
from innkeep.domain.pricing import PricingEngine, Quote
from innkeep.domain.restrictions import RestrictionEngine
from innkeep.domain.results import Failure
from innkeep.infra.cache import TTLCache, night_tag
from innkeep.infra.settings import PricingSettings
from innkeep.observability.logging import get_logger, log_fields

logger = get_logger(__name__)

AVAILABILITY_TAG = "availability"


@dataclass(frozen=True)
class AvailabilityOption:
    room_type: RoomType
    available_rooms: int
    quote: Quote

    @property
    def total(self) -> Decimal:
        return self.quote.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_type": self.room_type.to_public_dict(),
            "available_rooms": self.available_rooms,
            "quote": self.quote.to_dict(),
        }


def sellable_rooms(days: list[InventoryDay], check_in: date, check_out: date) -> int | None:
    """Minimum available rooms across the stay, or None if any night is unsellable."""
    nights = nights_between(check_in, check_out)
    by_date = {d.date: d for d in days}
    lowest: int | None = None
    for night in iter_nights(check_in, check_out):
        day = by_date.get(night)
        if day is None or day.stop_sell or day.available_rooms <= 0 or day.min_stay > nights:
            return None
        if lowest is None or day.available_rooms < lowest:
            lowest = day.available_rooms
    return lowest


class AvailabilitySearch:
    def __init__(
        self,
        *,
        catalog: RoomTypeCatalog,
        ledger: InventoryLedger,
        restrictions: RestrictionEngine,
        pricing: PricingEngine,
        cache: TTLCache,
        settings: Callable[[], PricingSettings],
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._restrictions = restrictions
        self._pricing = pricing
        self._cache = cache
        self._settings = settings

    def search(
        self,
        check_in: date,
        check_out: date,
        guests: int,
        room_type_id: int | None = None,
        channel: str | None = None,
    ) -> list[AvailabilityOption]:
        """Options sorted by quoted total, cheapest first.

        Invalid input yields an empty list rather than a failure.
        """
        if check_out <= check_in or guests < 1:
            return []

        key = (
            f"availability:{check_in.isoformat()}:{check_out.isoformat()}:"
            f"{guests}:{room_type_id}:{channel}"
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        tags = (AVAILABILITY_TAG, *(night_tag(n) for n in iter_nights(check_in, check_out)))
        generation = self._cache.generation(*tags)
        options = self._search(check_in, check_out, guests, room_type_id, channel)
        # A reservation or config change during _search leaves options uncached
        self._cache.set(
            key,
            options,
            self._settings().search_cache_ttl,
            tags=tags,
            generation=generation,
        )

        logger.info(
            "availability search",
            extra={
                "extra_fields": log_fields(
                    check_in=check_in,
                    check_out=check_out,
                    guests=guests,
                    room_type_id=room_type_id,
                    channel=channel,
                    options=len(options),
                )
            },
        )
        return options

    def _candidates(self, room_type_id: int | None) -> list[RoomType]:
        if room_type_id is None:
            return list(self._catalog.active())
        room_type = self._catalog.get(room_type_id)
        if room_type is None or not room_type.is_active:
            return []
        return [room_type]

    def _search(
        self,
        check_in: date,
        check_out: date,
        guests: int,
        room_type_id: int | None,
        channel: str | None,
    ) -> list[AvailabilityOption]:
        options: list[AvailabilityOption] = []
        for room_type in self._candidates(room_type_id):
            if room_type.max_occupancy < guests:
                continue

            days = self._ledger.get_for_range(room_type.id, check_in, check_out)
            available = sellable_rooms(days, check_in, check_out)
            if available is None:
                continue

            quote = self._pricing.calculate_stay(room_type.id, check_in, check_out, adults=guests)
            if isinstance(quote, Failure):
                continue

            allowed = self._restrictions.is_allowed(
                room_type.id, quote.rate_plan_id, channel, check_in, check_out
            )
            if isinstance(allowed, Failure):
                continue

            options.append(AvailabilityOption(room_type, available, quote))

        options.sort(key=lambda o: (o.total, o.room_type.id))
        return options
