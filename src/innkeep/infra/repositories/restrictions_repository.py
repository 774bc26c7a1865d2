"""Rate restrictions repository."""

from __future__ import annotations

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from innkeep.domain.models import RateRestriction, RestrictionType, parse_day_names


def fetch_restrictions(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> list[RateRestriction]:
    """Active restrictions for the room type overlapping [start, end] (inclusive).

    A restriction overlaps when date_from <= end AND date_to >= start.
    """
    cur.execute(
        """
        SELECT id, room_type_id, rate_plan_id, restriction_type, value,
               channel, date_from, date_to, days_of_week
        FROM rate_restrictions
        WHERE room_type_id = %s
          AND is_active = true
          AND date_from <= %s
          AND date_to >= %s
        ORDER BY date_from, id
        """,
        (room_type_id, end, start),
    )
    return [
        RateRestriction(
            id=r[0],
            room_type_id=r[1],
            rate_plan_id=r[2],
            restriction_type=RestrictionType(r[3]),
            value=r[4],
            channel=r[5],
            date_from=r[6],
            date_to=r[7],
            days_of_week=parse_day_names(r[8]),
        )
        for r in cur.fetchall()
    ]
