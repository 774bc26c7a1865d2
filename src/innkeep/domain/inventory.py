"""Inventory ledger - per-(room type, night) availability.

Implements safe inventory reservation with a zero overbooking guarantee.
A multi-night reservation is a single transaction:

1. Lock every night's row (SELECT ... FOR UPDATE, date order)
2. Check each night: exists, not stop-sell, enough rooms, min-stay met
3. Decrement all nights with one guarded UPDATE
4. Verify the affected row count equals the number of nights

Any failed check or count mismatch rolls the whole batch back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from innkeep.domain.models import InventoryDay, iter_nights, nights_between
from innkeep.domain.results import Failure, succeeded
from innkeep.infra.cache import TTLCache, inventory_tag, night_tag
from innkeep.infra.db import get_conn, with_transaction
from innkeep.infra.repositories.inventory_repository import (
    BULK_FIELDS,
    bulk_update_days,
    count_sellable_rooms,
    decrement_available,
    fetch_days,
    increment_available,
    insert_missing_day,
    lock_days,
    min_available,
)
from innkeep.observability.logging import get_logger, log_fields

logger = get_logger(__name__)


class LedgerFailure(str, Enum):
    INVALID_DATE_RANGE = "invalid_date_range"
    INVALID_QUANTITY = "invalid_quantity"
    NO_INVENTORY_RECORD = "no_inventory_record"
    STOP_SELL_ACTIVE = "stop_sell_active"
    INSUFFICIENT_ROOMS = "insufficient_rooms"
    MIN_STAY_VIOLATION = "min_stay_violation"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class Reservation:
    room_type_id: int
    check_in: date
    check_out: date
    quantity: int
    nights: int


@dataclass(frozen=True)
class Release:
    room_type_id: int
    check_in: date
    check_out: date
    quantity: int
    nights: int


def _validate(check_in: date, check_out: date, quantity: int) -> Failure[LedgerFailure] | None:
    if check_out <= check_in:
        return Failure(
            LedgerFailure.INVALID_DATE_RANGE,
            {"check_in": check_in, "check_out": check_out},
        )
    if quantity < 1:
        return Failure(LedgerFailure.INVALID_QUANTITY, {"quantity": quantity})
    return None


def check_nights(
    days: list[InventoryDay],
    *,
    check_in: date,
    check_out: date,
    quantity: int,
) -> Failure[LedgerFailure] | None:
    """Check every night of the stay against its (locked) row.

    Nights are checked in date order; the first failing night is reported.
    """
    nights = nights_between(check_in, check_out)
    by_date = {d.date: d for d in days}
    for night in iter_nights(check_in, check_out):
        day = by_date.get(night)
        if day is None:
            return Failure(LedgerFailure.NO_INVENTORY_RECORD, {"date": night})
        if day.stop_sell:
            return Failure(LedgerFailure.STOP_SELL_ACTIVE, {"date": night})
        if day.available_rooms < quantity:
            return Failure(
                LedgerFailure.INSUFFICIENT_ROOMS,
                {"date": night, "available": day.available_rooms, "requested": quantity},
            )
        if day.min_stay > nights:
            return Failure(
                LedgerFailure.MIN_STAY_VIOLATION,
                {"date": night, "min_stay": day.min_stay, "nights": nights},
            )
    return None


class InventoryLedger:
    """The only mutable, concurrency-sensitive component of the engine."""

    def __init__(
        self,
        cache: TTLCache,
        *,
        connect: Callable[[], PgConnection] = get_conn,
    ) -> None:
        self._cache = cache
        self._connect = connect

    # ── writes ────────────────────────────────────────────

    def reserve(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        quantity: int = 1,
    ) -> Reservation | Failure[LedgerFailure]:
        """Take quantity rooms on every night of [check_in, check_out), or none."""
        invalid = _validate(check_in, check_out, quantity)
        if invalid is not None:
            return invalid

        nights = nights_between(check_in, check_out)
        context = log_fields(
            room_type_id=room_type_id,
            check_in=check_in,
            check_out=check_out,
            quantity=quantity,
        )

        def _do(cur: PgCursor) -> Reservation | Failure[LedgerFailure]:
            days = lock_days(cur, room_type_id=room_type_id, start=check_in, end=check_out)
            failure = check_nights(days, check_in=check_in, check_out=check_out, quantity=quantity)
            if failure is not None:
                return failure

            updated = decrement_available(
                cur,
                room_type_id=room_type_id,
                start=check_in,
                end=check_out,
                quantity=quantity,
            )
            if updated != nights:
                # Guard rejected a night after the checks passed
                return Failure(
                    LedgerFailure.INSUFFICIENT_ROOMS,
                    {"updated_nights": updated, "nights": nights},
                )
            return Reservation(room_type_id, check_in, check_out, quantity, nights)

        result = self._run(_do, "reserve", context)

        if isinstance(result, Failure):
            logger.warning(
                "inventory reservation refused",
                extra={"extra_fields": {**context, "reason": result.reason_code}},
            )
        else:
            self._invalidate(room_type_id, check_in, check_out)
            logger.info("inventory reserved", extra={"extra_fields": context})
        return result

    def release(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        quantity: int = 1,
    ) -> Release | Failure[LedgerFailure]:
        """Give quantity rooms back on every night of [check_in, check_out).

        Never raises available_rooms above total_rooms.
        """
        invalid = _validate(check_in, check_out, quantity)
        if invalid is not None:
            return invalid

        nights = nights_between(check_in, check_out)
        context = log_fields(
            room_type_id=room_type_id,
            check_in=check_in,
            check_out=check_out,
            quantity=quantity,
        )

        def _do(cur: PgCursor) -> Release | Failure[LedgerFailure]:
            updated = increment_available(
                cur,
                room_type_id=room_type_id,
                start=check_in,
                end=check_out,
                quantity=quantity,
            )
            if updated != nights:
                return Failure(
                    LedgerFailure.NO_INVENTORY_RECORD,
                    {"updated_nights": updated, "nights": nights},
                )
            return Release(room_type_id, check_in, check_out, quantity, nights)

        result = self._run(_do, "release", context)

        if isinstance(result, Failure):
            logger.warning(
                "inventory release refused",
                extra={"extra_fields": {**context, "reason": result.reason_code}},
            )
        else:
            self._invalidate(room_type_id, check_in, check_out)
            logger.info("inventory released", extra={"extra_fields": context})
        return result

    def bulk_update(
        self,
        room_type_id: int,
        start: date,
        end: date,
        fields: dict[str, Any],
    ) -> int:
        """Administrative overwrite of inventory fields over [start, end].

        Raises:
            ValueError: On an empty update, unknown fields, out-of-range
                values or end < start.
        """
        if end < start:
            raise ValueError("end must be on or after start")
        if not fields:
            raise ValueError("no fields to update")
        unknown = set(fields) - set(BULK_FIELDS)
        if unknown:
            raise ValueError(f"unknown inventory fields: {sorted(unknown)}")
        if "total_rooms" in fields and (fields["total_rooms"] is None or fields["total_rooms"] < 0):
            raise ValueError("total_rooms must be >= 0")
        if "min_stay" in fields and (fields["min_stay"] is None or fields["min_stay"] < 1):
            raise ValueError("min_stay must be >= 1")
        if fields.get("price_override") is not None and fields["price_override"] < 0:
            raise ValueError("price_override must be >= 0")

        updated = with_transaction(
            lambda cur: bulk_update_days(
                cur, room_type_id=room_type_id, start=start, end=end, fields=fields
            ),
            connect=self._connect,
        )
        self._invalidate(room_type_id, start, end, inclusive=True)
        logger.info(
            "inventory bulk update",
            extra={
                "extra_fields": log_fields(
                    room_type_id=room_type_id,
                    start=start,
                    end=end,
                    fields=",".join(sorted(fields)),
                    updated=updated,
                )
            },
        )
        return updated

    def initialize(
        self,
        room_type_id: int,
        start: date,
        end: date,
        total_rooms: int | None = None,
    ) -> int:
        """Seed rows for [start, end] that do not exist yet.

        When total_rooms is None the capacity is the number of physical
        rooms of this type that are not out of order.

        Returns:
            Number of rows created.
        """
        if end < start:
            raise ValueError("end must be on or after start")

        def _do(cur: PgCursor) -> int:
            capacity = total_rooms
            if capacity is None:
                capacity = count_sellable_rooms(cur, room_type_id=room_type_id)
            created = 0
            for night in iter_nights(start, end + timedelta(days=1)):
                if insert_missing_day(cur, room_type_id=room_type_id, night=night, total_rooms=capacity):
                    created += 1
            return created

        created = with_transaction(_do, connect=self._connect)
        self._invalidate(room_type_id, start, end, inclusive=True)
        logger.info(
            "inventory initialized",
            extra={
                "extra_fields": log_fields(
                    room_type_id=room_type_id, start=start, end=end, created=created
                )
            },
        )
        return created

    # ── reads ─────────────────────────────────────────────

    def get_for_range(self, room_type_id: int, start: date, end: date) -> list[InventoryDay]:
        """Rows for nights in [start, end), ordered by date."""
        return with_transaction(
            lambda cur: fetch_days(cur, room_type_id=room_type_id, start=start, end=end),
            connect=self._connect,
        )

    def occupancy_percent(self, room_type_id: int, night: date) -> Decimal:
        """Canonical occupancy for a night: booked_rooms / total_rooms."""
        days = self.get_for_range(room_type_id, night, night + timedelta(days=1))
        return days[0].occupancy_percent if days else Decimal("0")

    def min_availability(self, room_type_id: int, start: date, end: date) -> int:
        return with_transaction(
            lambda cur: min_available(cur, room_type_id=room_type_id, start=start, end=end),
            connect=self._connect,
        )

    # ── internals ─────────────────────────────────────────

    def _run(self, fn, operation: str, context: dict[str, Any]):
        try:
            return with_transaction(fn, commit_if=succeeded, connect=self._connect)
        except psycopg2.Error:
            logger.exception(
                f"inventory {operation} failed",
                extra={"extra_fields": {**context, "operation": operation}},
            )
            return Failure(LedgerFailure.STORAGE_ERROR)

    def _invalidate(self, room_type_id: int, start: date, end: date, *, inclusive: bool = False) -> None:
        stop = end + timedelta(days=1) if inclusive else end
        tags = [night_tag(n) for n in iter_nights(start, stop)]
        self._cache.invalidate_tags(inventory_tag(room_type_id), *tags)
