"""Engine wiring - builds every component around one shared cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable

from psycopg2.extensions import connection as PgConnection

from innkeep.domain.availability import AVAILABILITY_TAG, AvailabilitySearch
from innkeep.domain.catalog import RoomTypeCatalog
from innkeep.domain.dynamic_pricing import DynamicModifierCalculator
from innkeep.domain.inventory import InventoryLedger
from innkeep.domain.pricing import DiscountPolicy, NightlyRateAdjuster, PricingEngine
from innkeep.domain.rate_plans import RatePlanResolver
from innkeep.domain.restrictions import RestrictionEngine
from innkeep.domain.seasonal import SeasonalRateResolver
from innkeep.infra.cache import TTLCache, config_tag
from innkeep.infra.db import get_conn, with_transaction
from innkeep.infra.repositories.dynamic_pricing_repository import (
    fetch_dow_rules,
    fetch_event_overrides,
    fetch_occupancy_rules,
)
from innkeep.infra.repositories.rate_plans_repository import (
    fetch_active_rate_plans,
    fetch_rate_plan,
    fetch_seasonal_rates,
)
from innkeep.infra.repositories.restrictions_repository import fetch_restrictions
from innkeep.infra.repositories.room_types_repository import (
    fetch_active_room_types,
    fetch_room_type,
)
from innkeep.infra.settings import PricingSettings, build_settings, get_pricing_settings
from innkeep.observability.logging import get_logger

logger = get_logger(__name__)

CONFIG_KINDS = (
    "room_types",
    "rate_plans",
    "seasonal_rates",
    "occupancy_rules",
    "dow_rules",
    "events",
    "restrictions",
    "settings",
)


@dataclass
class Engine:
    cache: TTLCache
    catalog: RoomTypeCatalog
    ledger: InventoryLedger
    restrictions: RestrictionEngine
    rate_plans: RatePlanResolver
    seasonal: SeasonalRateResolver
    dynamic: DynamicModifierCalculator
    pricing: PricingEngine
    availability: AvailabilitySearch
    settings: Callable[[], PricingSettings]

    def invalidate_configuration(self, kind: str | None = None) -> int:
        """Drop cached configuration after an admin write.

        Search results are priced from configuration, so they go too.
        Passing no kind drops every configuration kind.
        """
        if kind is not None and kind not in CONFIG_KINDS:
            raise ValueError(f"unknown configuration kind: {kind}")
        kinds = CONFIG_KINDS if kind is None else (kind,)
        dropped = self.cache.invalidate_tags(*(config_tag(k) for k in kinds), AVAILABILITY_TAG)
        logger.info(
            "configuration cache invalidated",
            extra={"extra_fields": {"kind": kind or "all", "dropped": dropped}},
        )
        return dropped


def build_engine(
    cache: TTLCache | None = None,
    *,
    connect: Callable[[], PgConnection] = get_conn,
    load_settings: Callable[[], PricingSettings] | None = None,
    discount_policy: DiscountPolicy | None = None,
    nightly_adjuster: NightlyRateAdjuster | None = None,
    config_ttl: float | None = None,
) -> Engine:
    """Build the engine with database-backed loaders.

    Every loader (ledger, configuration, settings) opens its connections
    through connect. Config TTL comes from INNKEEP_CONFIG_CACHE_TTL when not
    given, so the wiring itself never touches the database.
    """
    if cache is None:
        cache = TTLCache()
    if config_ttl is None:
        config_ttl = build_settings({}, os.environ).config_cache_ttl
    if load_settings is None:

        def load_settings() -> PricingSettings:
            return get_pricing_settings(connect)

    def read(fn):
        return with_transaction(fn, connect=connect)

    def settings() -> PricingSettings:
        return cache.get_or_set(
            "settings:pricing",
            load_settings,
            config_ttl,
            tags=(config_tag("settings"),),
        )

    catalog = RoomTypeCatalog(
        cache,
        load_room_type=lambda rt: read(lambda cur: fetch_room_type(cur, rt)),
        load_active=lambda: read(fetch_active_room_types),
        ttl=config_ttl,
    )
    ledger = InventoryLedger(cache, connect=connect)
    restrictions = RestrictionEngine(
        cache,
        load=lambda rt, start, end: read(
            lambda cur: fetch_restrictions(cur, room_type_id=rt, start=start, end=end)
        ),
        ttl=config_ttl,
    )
    rate_plans = RatePlanResolver(
        cache,
        load_plan=lambda plan_id: read(lambda cur: fetch_rate_plan(cur, plan_id)),
        load_active=lambda rt: read(lambda cur: fetch_active_rate_plans(cur, room_type_id=rt)),
        ttl=config_ttl,
    )
    seasonal = SeasonalRateResolver(
        cache,
        load=lambda rt, start, end: read(
            lambda cur: fetch_seasonal_rates(cur, room_type_id=rt, start=start, end=end)
        ),
        ttl=config_ttl,
    )
    dynamic = DynamicModifierCalculator(
        cache,
        occupancy_source=ledger.occupancy_percent,
        load_occupancy_rules=lambda rt: read(lambda cur: fetch_occupancy_rules(cur, room_type_id=rt)),
        load_dow_rules=lambda rt: read(lambda cur: fetch_dow_rules(cur, room_type_id=rt)),
        load_events=lambda rt, start, end: read(
            lambda cur: fetch_event_overrides(cur, room_type_id=rt, start=start, end=end)
        ),
        ttl=config_ttl,
    )
    pricing = PricingEngine(
        catalog=catalog,
        rate_plans=rate_plans,
        seasonal=seasonal,
        dynamic=dynamic,
        inventory=ledger.get_for_range,
        settings=settings,
        discount_policy=discount_policy,
        nightly_adjuster=nightly_adjuster,
    )
    availability = AvailabilitySearch(
        catalog=catalog,
        ledger=ledger,
        restrictions=restrictions,
        pricing=pricing,
        cache=cache,
        settings=settings,
    )
    return Engine(
        cache=cache,
        catalog=catalog,
        ledger=ledger,
        restrictions=restrictions,
        rate_plans=rate_plans,
        seasonal=seasonal,
        dynamic=dynamic,
        pricing=pricing,
        availability=availability,
        settings=settings,
    )
