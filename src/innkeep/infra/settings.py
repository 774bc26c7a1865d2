"""Pricing settings store.

Provides functions to load the engine's key/value settings (tax rate,
service fee rate, currency, exchange rate, cache TTLs).

Priority:
1. Database (settings table, JSONB option_value)
2. Environment variable fallbacks
3. Built-in defaults
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from .db import get_conn, with_transaction


@dataclass(frozen=True)
class PricingSettings:
    """Settings consumed by pricing and search.

    Rates are percentages: tax_rate=10 means 10%.
    """

    tax_rate: Decimal = Decimal("0")
    service_fee_rate: Decimal = Decimal("0")
    extra_adult_charge: Decimal = Decimal("0")
    extra_child_charge: Decimal = Decimal("0")
    currency: str = "USD"
    exchange_rate: Decimal = Decimal("1")
    search_cache_ttl: int = 300
    config_cache_ttl: int = 60


# setting key -> (PricingSettings field, env fallback)
_KEYS: dict[str, tuple[str, str | None]] = {
    "pricing.tax_rate": ("tax_rate", "INNKEEP_TAX_RATE"),
    "pricing.service_fee_rate": ("service_fee_rate", "INNKEEP_SERVICE_FEE_RATE"),
    "pricing.extra_adult_charge": ("extra_adult_charge", None),
    "pricing.extra_child_charge": ("extra_child_charge", None),
    "currency.default": ("currency", "INNKEEP_CURRENCY"),
    "currency.exchange_rate": ("exchange_rate", "INNKEEP_EXCHANGE_RATE"),
    "cache.search_ttl": ("search_cache_ttl", "INNKEEP_SEARCH_CACHE_TTL"),
    "cache.config_ttl": ("config_cache_ttl", "INNKEEP_CONFIG_CACHE_TTL"),
}


def get_pricing_settings(connect: Callable[[], PgConnection] = get_conn) -> PricingSettings:
    """Load settings in a short transaction of their own."""
    raw = with_transaction(fetch_settings, connect=connect)
    return build_settings(raw, os.environ)


def fetch_settings(cur: PgCursor) -> dict[str, Any]:
    """Read the relevant settings rows as {"group.key": value}."""
    cur.execute(
        """
        SELECT option_group, option_key, option_value
        FROM settings
        WHERE option_group IN ('pricing', 'currency', 'cache')
        """
    )
    raw: dict[str, Any] = {}
    for group, key, value in cur.fetchall():
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                pass
        raw[f"{group}.{key}"] = value
    return raw


def build_settings(raw: dict[str, Any], env: Any) -> PricingSettings:
    """Merge database values with environment fallbacks and defaults."""
    defaults = PricingSettings()
    values: dict[str, Any] = {}
    for key, (attr, env_name) in _KEYS.items():
        value = raw.get(key)
        if value is None and env_name:
            value = env.get(env_name)
        if value is None or value == "":
            continue
        values[attr] = _coerce(attr, value, getattr(defaults, attr))
    return PricingSettings(**{**defaults.__dict__, **values})


def _coerce(attr: str, value: Any, default: Any) -> Any:
    if isinstance(default, Decimal):
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"setting {attr} is not numeric: {value!r}") from e
    if isinstance(default, int):
        return int(value)
    return str(value)
