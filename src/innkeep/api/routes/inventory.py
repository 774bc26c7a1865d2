"""Inventory ledger endpoints.

GET: ledger rows for a date range, or the grid of every active room type
POST /reserve, /release: atomic multi-night mutations
PUT: administrative bulk update
POST /initialize: seed missing rows
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from innkeep.api.deps import get_engine
from innkeep.api.errors import raise_for_failure
from innkeep.domain.models import iter_nights
from innkeep.domain.results import Failure
from innkeep.engine import Engine

router = APIRouter(prefix="/inventory", tags=["inventory"])

MAX_RANGE_DAYS = 366


# ── Schemas ───────────────────────────────────────────────


class StayRequest(BaseModel):
    room_type_id: int
    check_in: date
    check_out: date
    quantity: int = 1


class BulkUpdateRequest(BaseModel):
    room_type_id: int
    start: date
    end: date
    total_rooms: int | None = None
    price_override: Decimal | None = None
    clear_price_override: bool = False
    stop_sell: bool | None = None
    min_stay: int | None = None

    @field_validator("end")
    @classmethod
    def limit_range(cls, v: date, info) -> date:
        start = info.data.get("start")
        if start is not None and (v - start).days > MAX_RANGE_DAYS:
            raise ValueError(f"max range: {MAX_RANGE_DAYS} days")
        return v

    def fields(self) -> dict:
        fields: dict = {}
        for name in ("total_rooms", "stop_sell", "min_stay"):
            value = getattr(self, name)
            if value is not None:
                fields[name] = value
        if self.clear_price_override:
            fields["price_override"] = None
        elif self.price_override is not None:
            fields["price_override"] = self.price_override
        return fields


class InitializeRequest(BaseModel):
    room_type_id: int
    start: date
    end: date
    total_rooms: int | None = None


def _stay_dict(result) -> dict:
    return {
        "room_type_id": result.room_type_id,
        "check_in": result.check_in.isoformat(),
        "check_out": result.check_out.isoformat(),
        "quantity": result.quantity,
        "nights": result.nights,
    }


def _grid_row(room_type, days) -> dict:
    return {
        "id": room_type.id,
        "name": room_type.name,
        "total_rooms": next((d.total_rooms for d in days if d.total_rooms), 0),
        "availability": {d.date.isoformat(): d.available_rooms for d in days},
    }


# ── GET /inventory ────────────────────────────────────────


@router.get("")
def get_inventory(
    start: date,
    end: date,
    room_type_id: int | None = None,
    engine: Engine = Depends(get_engine),
) -> list[dict] | dict:
    """Ledger rows for nights in [start, end).

    Without room_type_id, returns the availability grid of every active
    room type, indexed by date.
    """
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start")
    if (end - start).days > MAX_RANGE_DAYS:
        raise HTTPException(status_code=400, detail=f"max range: {MAX_RANGE_DAYS} days")
    if room_type_id is not None:
        return [d.to_dict() for d in engine.ledger.get_for_range(room_type_id, start, end)]

    return {
        "dates": [night.isoformat() for night in iter_nights(start, end)],
        "inventory": [
            _grid_row(rt, engine.ledger.get_for_range(rt.id, start, end))
            for rt in engine.catalog.active()
        ],
    }


# ── POST /inventory/reserve, /inventory/release ───────────


@router.post("/reserve")
def reserve(body: StayRequest, engine: Engine = Depends(get_engine)) -> dict:
    result = engine.ledger.reserve(body.room_type_id, body.check_in, body.check_out, body.quantity)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return _stay_dict(result)


@router.post("/release")
def release(body: StayRequest, engine: Engine = Depends(get_engine)) -> dict:
    result = engine.ledger.release(body.room_type_id, body.check_in, body.check_out, body.quantity)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return _stay_dict(result)


# ── PUT /inventory ────────────────────────────────────────


@router.put("")
def bulk_update(body: BulkUpdateRequest, engine: Engine = Depends(get_engine)) -> dict:
    """Overwrite inventory fields for every night in [start, end]."""
    try:
        updated = engine.ledger.bulk_update(body.room_type_id, body.start, body.end, body.fields())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"updated": updated}


# ── POST /inventory/initialize ────────────────────────────


@router.post("/initialize")
def initialize(body: InitializeRequest, engine: Engine = Depends(get_engine)) -> dict:
    """Create missing rows for [start, end]; existing rows are left alone."""
    if body.total_rooms is not None and body.total_rooms < 0:
        raise HTTPException(status_code=400, detail="total_rooms must be >= 0")
    try:
        created = engine.ledger.initialize(body.room_type_id, body.start, body.end, body.total_rooms)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"created": created}
