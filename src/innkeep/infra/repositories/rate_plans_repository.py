"""Rate plans and seasonal rates repository.

Returns active configuration only; selection and tie-breaking happen in the
domain resolvers so they stay testable without a database.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from innkeep.domain.models import Modifier, RatePlan, SeasonalRate

_RATE_PLAN_SELECT = """
    SELECT id, name, code, room_type_id, modifier_type, modifier_value,
           min_stay, max_stay, is_default, is_refundable, guest_segment,
           valid_from, valid_until, is_active
    FROM rate_plans
"""


def _row_to_rate_plan(row: tuple[Any, ...]) -> RatePlan:
    return RatePlan(
        id=row[0],
        name=row[1],
        code=row[2],
        room_type_id=row[3],
        modifier=Modifier.of(row[4], row[5]),
        min_stay=row[6] or 0,
        max_stay=row[7] or 0,
        is_default=bool(row[8]),
        is_refundable=bool(row[9]),
        guest_segment=row[10],
        valid_from=row[11],
        valid_until=row[12],
        is_active=bool(row[13]),
    )


def fetch_rate_plan(cur: PgCursor, rate_plan_id: int) -> RatePlan | None:
    """Fetch a plan by id regardless of status."""
    cur.execute(_RATE_PLAN_SELECT + " WHERE id = %s", (rate_plan_id,))
    row = cur.fetchone()
    return _row_to_rate_plan(row) if row else None


def fetch_active_rate_plans(cur: PgCursor, *, room_type_id: int) -> list[RatePlan]:
    """Active plans for the room type plus global plans (room_type_id IS NULL)."""
    cur.execute(
        _RATE_PLAN_SELECT
        + """
        WHERE is_active = true
          AND (room_type_id = %s OR room_type_id IS NULL)
        ORDER BY name, id
        """,
        (room_type_id,),
    )
    return [_row_to_rate_plan(r) for r in cur.fetchall()]


def _row_to_seasonal_rate(row: tuple[Any, ...]) -> SeasonalRate:
    days = row[8] or []
    return SeasonalRate(
        id=row[0],
        name=row[1],
        room_type_id=row[2],
        rate_plan_id=row[3],
        start_date=row[4],
        end_date=row[5],
        modifier=Modifier.of(row[6], row[7]),
        days_of_week=tuple(int(d) for d in days),
        priority=row[9] or 0,
        is_active=bool(row[10]),
    )


def fetch_seasonal_rates(
    cur: PgCursor,
    *,
    room_type_id: int,
    start: date,
    end: date,
) -> list[SeasonalRate]:
    """Active seasonal rates for the room type (or global) overlapping [start, end].

    Rate-plan filtering is left to the resolver; ordered by priority desc, id asc.
    """
    cur.execute(
        """
        SELECT id, name, room_type_id, rate_plan_id, start_date, end_date,
               modifier_type, modifier_value, days_of_week, priority, is_active
        FROM seasonal_rates
        WHERE is_active = true
          AND (room_type_id = %s OR room_type_id IS NULL)
          AND start_date <= %s
          AND end_date >= %s
        ORDER BY priority DESC, id
        """,
        (room_type_id, end, start),
    )
    return [_row_to_seasonal_rate(r) for r in cur.fetchall()]
