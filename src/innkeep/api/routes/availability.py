"""Availability search endpoint."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from innkeep.api.deps import get_engine
from innkeep.engine import Engine

router = APIRouter(prefix="/availability", tags=["availability"])

MAX_STAY_NIGHTS = 365


@router.get("")
def search_availability(
    check_in: date,
    check_out: date,
    guests: int = 1,
    room_type_id: int | None = None,
    channel: str | None = None,
    engine: Engine = Depends(get_engine),
) -> list[dict]:
    """Sellable room types with their quotes, cheapest first."""
    if check_out <= check_in:
        raise HTTPException(status_code=400, detail="check_out must be after check_in")
    if guests < 1:
        raise HTTPException(status_code=400, detail="guests must be >= 1")
    if (check_out - check_in).days > MAX_STAY_NIGHTS:
        raise HTTPException(status_code=400, detail=f"max stay: {MAX_STAY_NIGHTS} nights")

    options = engine.availability.search(
        check_in, check_out, guests, room_type_id=room_type_id, channel=channel
    )
    return [o.to_dict() for o in options]
