"""Shared test helpers: record factories and an engine wired to in-memory data.

These are NOT fixtures - they are regular functions.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from innkeep.domain.availability import AvailabilitySearch
from innkeep.domain.catalog import RoomTypeCatalog
from innkeep.domain.dynamic_pricing import DynamicModifierCalculator
from innkeep.domain.models import InventoryDay, Modifier, RatePlan, RoomType, iter_nights
from innkeep.domain.pricing import PricingEngine
from innkeep.domain.rate_plans import RatePlanResolver
from innkeep.domain.restrictions import RestrictionEngine
from innkeep.domain.seasonal import SeasonalRateResolver
from innkeep.engine import Engine
from innkeep.infra.settings import PricingSettings


def room_type(id: int = 1, **kw) -> RoomType:
    defaults = dict(
        name=f"Room {id}",
        base_price=Decimal("100.00"),
        base_occupancy=2,
        max_occupancy=4,
    )
    defaults.update(kw)
    return RoomType(id=id, **defaults)


def rate_plan(id: int = 1, modifier: tuple[str, str] | None = None, **kw) -> RatePlan:
    defaults = dict(name=f"Plan {id}", is_default=True)
    defaults.update(kw)
    if modifier is not None:
        defaults["modifier"] = Modifier.of(*modifier)
    return RatePlan(id=id, **defaults)


def inventory_days(
    room_type_id: int,
    start: date,
    end: date,
    *,
    total: int = 10,
    available: int | list[int] | None = None,
    **kw,
) -> list[InventoryDay]:
    """One row per night in [start, end); available may be given per night."""
    days = []
    for i, night in enumerate(iter_nights(start, end)):
        if isinstance(available, list):
            avail = available[i]
        elif available is None:
            avail = total
        else:
            avail = available
        days.append(
            InventoryDay(
                room_type_id=room_type_id,
                date=night,
                total_rooms=total,
                available_rooms=avail,
                booked_rooms=total - avail,
                **kw,
            )
        )
    return days


class FakeLedger:
    """Read side of the ledger over a list of rows."""

    def __init__(self, days: list[InventoryDay] | None = None) -> None:
        self.days = list(days or [])
        self.calls = 0

    def get_for_range(self, room_type_id: int, start: date, end: date) -> list[InventoryDay]:
        self.calls += 1
        return [
            d for d in self.days
            if d.room_type_id == room_type_id and start <= d.date < end
        ]

    def occupancy_percent(self, room_type_id: int, night: date) -> Decimal:
        rows = self.get_for_range(room_type_id, night, night + timedelta(days=1))
        return rows[0].occupancy_percent if rows else Decimal("0")


def build_test_engine(
    cache,
    *,
    room_types=(),
    plans=(),
    seasonal_rates=(),
    occupancy_rules=(),
    dow_rules=(),
    events=(),
    restrictions=(),
    days=(),
    settings: PricingSettings | None = None,
    discount_policy=None,
    nightly_adjuster=None,
) -> Engine:
    """Engine with every loader replaced by in-memory lists."""
    settings = settings or PricingSettings()
    by_id = {rt.id: rt for rt in room_types}
    plans_by_id = {p.id: p for p in plans}
    ledger = FakeLedger(list(days))

    catalog = RoomTypeCatalog(
        cache,
        load_room_type=by_id.get,
        load_active=lambda: [rt for rt in room_types if rt.is_active],
    )
    rate_plan_resolver = RatePlanResolver(
        cache,
        load_plan=plans_by_id.get,
        load_active=lambda rt: [
            p for p in plans if p.is_active and p.room_type_id in (None, rt)
        ],
    )
    seasonal = SeasonalRateResolver(cache, load=lambda rt, s, e: list(seasonal_rates))
    dynamic = DynamicModifierCalculator(
        cache,
        occupancy_source=ledger.occupancy_percent,
        load_occupancy_rules=lambda rt: list(occupancy_rules),
        load_dow_rules=lambda rt: list(dow_rules),
        load_events=lambda rt, s, e: list(events),
    )
    restriction_engine = RestrictionEngine(
        cache, load=lambda rt, s, e: [r for r in restrictions if r.room_type_id == rt]
    )
    pricing = PricingEngine(
        catalog=catalog,
        rate_plans=rate_plan_resolver,
        seasonal=seasonal,
        dynamic=dynamic,
        inventory=ledger.get_for_range,
        settings=lambda: settings,
        discount_policy=discount_policy,
        nightly_adjuster=nightly_adjuster,
    )
    availability = AvailabilitySearch(
        catalog=catalog,
        ledger=ledger,
        restrictions=restriction_engine,
        pricing=pricing,
        cache=cache,
        settings=lambda: settings,
    )
    return Engine(
        cache=cache,
        catalog=catalog,
        ledger=ledger,
        restrictions=restriction_engine,
        rate_plans=rate_plan_resolver,
        seasonal=seasonal,
        dynamic=dynamic,
        pricing=pricing,
        availability=availability,
        settings=lambda: settings,
    )


def mock_connection(cursor: MagicMock | None = None) -> tuple[MagicMock, MagicMock]:
    """Connection whose cursor() context manager yields cursor."""
    cur = cursor or MagicMock()
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur
    return conn, cur
