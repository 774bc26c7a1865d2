"""Inventory repository - persistence for inventory_days.

Uses raw SQL with psycopg2 (no ORM).
Every write is guarded in SQL so counters never leave [0, total_rooms].
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from innkeep.domain.models import InventoryDay

_COLUMNS = (
    "room_type_id, date, total_rooms, available_rooms, booked_rooms, "
    "price_override, stop_sell, min_stay"
)

# Fields an administrator may overwrite through bulk_update_days()
BULK_FIELDS = ("total_rooms", "price_override", "stop_sell", "min_stay")


def _row_to_day(row: tuple[Any, ...]) -> InventoryDay:
    return InventoryDay(
        room_type_id=row[0],
        date=row[1],
        total_rooms=row[2],
        available_rooms=row[3],
        booked_rooms=row[4],
        price_override=None if row[5] is None else Decimal(row[5]),
        stop_sell=bool(row[6]),
        min_stay=row[7],
    )


def fetch_days(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> list[InventoryDay]:
    """Fetch rows for nights in [start, end), ordered by date."""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM inventory_days
        WHERE room_type_id = %s
          AND date >= %s
          AND date < %s
        ORDER BY date
        """,
        (room_type_id, start, end),
    )
    return [_row_to_day(r) for r in cur.fetchall()]


def lock_days(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> list[InventoryDay]:
    """Fetch and row-lock nights in [start, end) until the transaction ends.

    Rows are locked in date order so concurrent multi-night reservations
    always acquire locks in the same sequence.
    """
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM inventory_days
        WHERE room_type_id = %s
          AND date >= %s
          AND date < %s
        ORDER BY date
        FOR UPDATE
        """,
        (room_type_id, start, end),
    )
    return [_row_to_day(r) for r in cur.fetchall()]


def decrement_available(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
    quantity: int,
) -> int:
    """Take quantity rooms from every night in [start, end).

    Uses UPDATE with WHERE guard to prevent overbooking:
    available_rooms >= quantity AND NOT stop_sell

    Returns:
        Number of nights updated. The caller compares it with the number
        of nights requested and rolls back on mismatch.
    """
    cur.execute(
        """
        UPDATE inventory_days
        SET available_rooms = available_rooms - %s,
            booked_rooms = booked_rooms + %s,
            updated_at = now()
        WHERE room_type_id = %s
          AND date >= %s
          AND date < %s
          AND available_rooms >= %s
          AND stop_sell = false
        """,
        (quantity, quantity, room_type_id, start, end, quantity),
    )
    return cur.rowcount


def increment_available(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
    quantity: int,
) -> int:
    """Give quantity rooms back to every night in [start, end).

    Clamped so available_rooms never exceeds total_rooms and booked_rooms
    never drops below zero (double releases are absorbed).

    Returns:
        Number of nights updated.
    """
    cur.execute(
        """
        UPDATE inventory_days
        SET available_rooms = LEAST(available_rooms + %s, total_rooms),
            booked_rooms = GREATEST(booked_rooms - %s, 0),
            updated_at = now()
        WHERE room_type_id = %s
          AND date >= %s
          AND date < %s
        """,
        (quantity, quantity, room_type_id, start, end),
    )
    return cur.rowcount


def bulk_update_days(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
    fields: dict[str, Any],
) -> int:
    """Overwrite admin fields for nights in [start, end] (inclusive).

    When total_rooms changes, available_rooms is recomputed from the rooms
    already booked.

    Returns:
        Number of rows updated.
    """
    set_clauses: list[str] = []
    params: list[Any] = []
    for name in BULK_FIELDS:
        if name in fields:
            set_clauses.append(f"{name} = %s")
            params.append(fields[name])

    if "total_rooms" in fields:
        set_clauses.append("available_rooms = GREATEST(%s - booked_rooms, 0)")
        params.append(fields["total_rooms"])

    set_clauses.append("updated_at = now()")
    params.extend([room_type_id, start, end])

    cur.execute(
        f"""
        UPDATE inventory_days
        SET {", ".join(set_clauses)}
        WHERE room_type_id = %s
          AND date >= %s
          AND date <= %s
        """,
        tuple(params),
    )
    return cur.rowcount


def insert_missing_day(
    cur: PgCursor,
    *,
    room_type_id: int,
    night: date,
    total_rooms: int,
) -> bool:
    """Insert a fresh row for night unless one exists.

    Returns:
        True if a row was created.
    """
    cur.execute(
        """
        INSERT INTO inventory_days (
            room_type_id, date, total_rooms, available_rooms,
            booked_rooms, price_override, stop_sell, min_stay
        )
        VALUES (%s, %s, %s, %s, 0, NULL, false, 1)
        ON CONFLICT (room_type_id, date) DO NOTHING
        RETURNING date
        """,
        (room_type_id, night, total_rooms, total_rooms),
    )
    return cur.fetchone() is not None


def count_sellable_rooms(cur: PgCursor, *, room_type_id: int) -> int:
    """Count physical rooms of the type that are not out of order."""
    cur.execute(
        """
        SELECT COUNT(*)
        FROM rooms
        WHERE room_type_id = %s
          AND status <> 'out_of_order'
        """,
        (room_type_id,),
    )
    row = cur.fetchone()
    return int(row[0]) if row else 0


def min_available(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> int:
    """Lowest available_rooms over non-stop-sell nights in [start, end)."""
    cur.execute(
        """
        SELECT MIN(available_rooms)
        FROM inventory_days
        WHERE room_type_id = %s
          AND date >= %s
          AND date < %s
          AND stop_sell = false
        """,
        (room_type_id, start, end),
    )
    row = cur.fetchone()
    if row is None or row[0] is None:
        return 0
    return int(row[0])
