"""Quote endpoint - price a stay without reserving it."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from innkeep.api.deps import get_engine
from innkeep.api.errors import raise_for_failure
from innkeep.domain.results import Failure
from innkeep.engine import Engine

router = APIRouter(prefix="/quotes", tags=["quotes"])


class QuoteRequest(BaseModel):
    room_type_id: int
    check_in: date
    check_out: date
    adults: int = 1
    children: int = 0
    rate_plan_id: int | None = None
    guest_segment: str | None = None


@router.post("")
def create_quote(body: QuoteRequest, engine: Engine = Depends(get_engine)) -> dict:
    quote = engine.pricing.calculate_stay(
        body.room_type_id,
        body.check_in,
        body.check_out,
        adults=body.adults,
        children=body.children,
        rate_plan_id=body.rate_plan_id,
        guest_segment=body.guest_segment,
    )
    if isinstance(quote, Failure):
        raise_for_failure(quote)
    return quote.to_dict()
