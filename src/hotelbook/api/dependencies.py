"""Shared FastAPI dependencies and domain-error translation."""

from __future__ import annotations

from datetime import datetime

from fastapi import HTTPException

from hotelbook.domain.errors import ReservationError
from hotelbook.infra.time import utc_now

# Rejections not listed here are client errors (400).
_STATUS_BY_REASON = {
    "room_not_found": 404,
    "reservation_not_found": 404,
    "unauthorized": 403,
    "date_conflict": 409,
}


def get_now() -> datetime:
    """Reference instant for a request. Overridden in tests."""
    return utc_now()


def to_http_error(exc: ReservationError) -> HTTPException:
    status_code = _STATUS_BY_REASON.get(exc.reason_code, 400)
    return HTTPException(
        status_code=status_code,
        detail=str(exc),
        headers={"X-Reason-Code": exc.reason_code},
    )
