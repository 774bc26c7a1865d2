"""Dynamic pricing repository - occupancy, day-of-week and event rules."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from innkeep.domain.models import DowRule, EventOverride, Modifier, OccupancyRule


def fetch_occupancy_rules(cur: PgCursor, *, room_type_id: int) -> list[OccupancyRule]:
    """Active occupancy rules for the room type or global, threshold ascending."""
    cur.execute(
        """
        SELECT id, room_type_id, threshold_percent, modifier_type,
               modifier_value, priority
        FROM occupancy_rules
        WHERE is_active = true
          AND (room_type_id = %s OR room_type_id IS NULL)
        ORDER BY threshold_percent, priority DESC, id
        """,
        (room_type_id,),
    )
    return [
        OccupancyRule(
            id=r[0],
            room_type_id=r[1],
            threshold_percent=Decimal(r[2]),
            modifier=Modifier.of(r[3], r[4]),
            priority=r[5] or 0,
        )
        for r in cur.fetchall()
    ]


def fetch_dow_rules(cur: PgCursor, *, room_type_id: int) -> list[DowRule]:
    """Active day-of-week rules (all weekdays) for the room type or global."""
    cur.execute(
        """
        SELECT id, room_type_id, day_of_week, modifier_type, modifier_value
        FROM dow_rules
        WHERE is_active = true
          AND (room_type_id = %s OR room_type_id IS NULL)
        ORDER BY day_of_week, id
        """,
        (room_type_id,),
    )
    return [
        DowRule(
            id=r[0],
            room_type_id=r[1],
            day_of_week=r[2],
            modifier=Modifier.of(r[3], r[4]),
        )
        for r in cur.fetchall()
    ]


def fetch_event_overrides(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> list[EventOverride]:
    """Active events for the room type or global overlapping [start, end]."""
    cur.execute(
        """
        SELECT id, name, room_type_id, start_date, end_date,
               modifier_type, modifier_value, priority
        FROM event_overrides
        WHERE is_active = true
          AND (room_type_id = %s OR room_type_id IS NULL)
          AND start_date <= %s
          AND end_date >= %s
        ORDER BY priority DESC, id
        """,
        (room_type_id, end, start),
    )
    return [
        EventOverride(
            id=r[0],
            name=r[1],
            room_type_id=r[2],
            start_date=r[3],
            end_date=r[4],
            modifier=Modifier.of(r[5], r[6]),
            priority=r[7] or 0,
        )
        for r in cur.fetchall()
    ]
