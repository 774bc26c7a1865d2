"""Room types repository - read-only access to the catalog."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from innkeep.domain.models import RoomType

_SELECT = """
    SELECT id, name, base_price, base_occupancy, max_occupancy,
           extra_adult_price, extra_child_price, is_active
    FROM room_types
"""


def _row_to_room_type(row: tuple[Any, ...]) -> RoomType:
    return RoomType(
        id=row[0],
        name=row[1],
        base_price=Decimal(row[2]),
        base_occupancy=row[3],
        max_occupancy=row[4],
        extra_adult_price=Decimal(row[5] or 0),
        extra_child_price=Decimal(row[6] or 0),
        is_active=bool(row[7]),
    )


def fetch_room_type(cur: PgCursor, room_type_id: int) -> RoomType | None:
    cur.execute(_SELECT + " WHERE id = %s", (room_type_id,))
    row = cur.fetchone()
    return _row_to_room_type(row) if row else None


def fetch_active_room_types(cur: PgCursor) -> list[RoomType]:
    cur.execute(_SELECT + " WHERE is_active = true ORDER BY id")
    return [_row_to_room_type(r) for r in cur.fetchall()]
