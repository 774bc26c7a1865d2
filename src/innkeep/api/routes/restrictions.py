"""Restriction check endpoint."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from innkeep.api.deps import get_engine
from innkeep.api.errors import raise_for_failure
from innkeep.domain.results import Failure
from innkeep.engine import Engine

router = APIRouter(prefix="/restrictions", tags=["restrictions"])


class RestrictionCheckRequest(BaseModel):
    room_type_id: int
    check_in: date
    check_out: date
    rate_plan_id: int | None = None
    channel: str | None = None


@router.post("/check")
def check_restrictions(body: RestrictionCheckRequest, engine: Engine = Depends(get_engine)) -> dict:
    """200 with the stay length when allowed; 400/409 with the violation otherwise."""
    result = engine.restrictions.is_allowed(
        body.room_type_id,
        body.rate_plan_id,
        body.channel,
        body.check_in,
        body.check_out,
    )
    if isinstance(result, Failure):
        raise_for_failure(result)
    return {"allowed": True, "room_type_id": result.room_type_id, "nights": result.nights}
