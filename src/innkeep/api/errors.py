"""Failure-to-HTTP mapping shared by the routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from innkeep.domain.results import Failure
from innkeep.observability.logging import get_logger

logger = get_logger(__name__)

# reason code -> status; anything not listed is a state conflict (409)
_STATUS_BY_REASON: dict[str, int] = {
    "invalid_date_range": 400,
    "invalid_quantity": 400,
    "invalid_occupancy": 400,
    "room_type_not_found": 404,
    "rate_plan_not_found": 404,
    "no_inventory_record": 404,
    "storage_error": 503,
}


def status_for(failure: Failure) -> int:
    return _STATUS_BY_REASON.get(failure.reason_code, 409)


def raise_for_failure(failure: Failure) -> NoReturn:
    status = status_for(failure)
    if status == 503:
        # meta of storage failures is never shown to callers
        raise HTTPException(
            status_code=503,
            detail={"reason": failure.reason_code, "meta": {}},
        )
    raise HTTPException(status_code=status, detail=failure.to_dict())


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """psycopg2 errors escaping a read path become a generic 503."""
    logger.exception(
        "storage error",
        exc_info=exc,
        extra={"extra_fields": {"path": request.url.path}},
    )
    return JSONResponse(
        status_code=503,
        content={"detail": {"reason": "storage_error", "meta": {}}},
    )
