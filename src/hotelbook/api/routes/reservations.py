"""Reservation endpoints.

POST  /reservations                               → book a room (201)
GET   /reservations/mine                          → caller's reservations
GET   /reservations                               → all reservations (admin)
GET   /reservations/{id}                          → one reservation (owner or admin)
PATCH /reservations/{id}/status                   → PENDING/CONFIRMED (admin)
GET   /reservations/{id}/cancellation-info        → refund disclosure, read-only
POST  /reservations/{id}/actions/cancel           → cancel and freeze refund
POST  /reservations/{id}/actions/modify-preview   → evaluate a date change, read-only
POST  /reservations/{id}/actions/modify-apply     → apply a date change

JSON keeps the camelCase shape existing clients use (checkInDate, totalPrice, ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from hotelbook.api.auth import CurrentUser, get_current_user, require_admin
from hotelbook.api.dependencies import get_now, to_http_error
from hotelbook.domain.cancellation_policy import cancellation_deadlines
from hotelbook.domain.errors import ReservationError
from hotelbook.domain.models import CancellationQuote, Reservation, ReservationStatus
from hotelbook.infra.db import txn
from hotelbook.infra.repositories import reservations_repository
from hotelbook.observability.correlation import get_correlation_id
from hotelbook.observability.logging import get_logger
from hotelbook.observability.redaction import safe_log_context
from hotelbook.services import reservation_service

router = APIRouter(prefix="/reservations", tags=["reservations"])

logger = get_logger(__name__)


# ── Schemas ───────────────────────────────────────────────


class CreateReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    room_id: UUID = Field(alias="roomId")
    check_in: AwareDatetime = Field(alias="checkInDate")
    check_out: AwareDatetime = Field(alias="checkOutDate")


class ChangeDatesRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    check_in: AwareDatetime = Field(alias="checkInDate")
    check_out: AwareDatetime = Field(alias="checkOutDate")


class UpdateStatusRequest(BaseModel):
    status: Literal["PENDING", "CONFIRMED"]


class CancelReservationRequest(BaseModel):
    reason: str | None = None


# ── Serialization ─────────────────────────────────────────


def _reservation_to_dict(reservation: Reservation) -> dict:
    return {
        "id": reservation.id,
        "roomId": reservation.room_id,
        "userId": reservation.user_id,
        "checkInDate": reservation.check_in.isoformat(),
        "checkOutDate": reservation.check_out.isoformat(),
        "totalPrice": float(reservation.total_price),
        "status": reservation.status.value,
        "refundAmount": (
            float(reservation.refund_amount)
            if reservation.refund_amount is not None
            else None
        ),
        "cancellationDate": (
            reservation.cancellation_date.isoformat()
            if reservation.cancellation_date is not None
            else None
        ),
        "modificationCount": reservation.modification_count,
    }


def _refund_info(quote: CancellationQuote) -> dict:
    return {
        "policy": quote.policy,
        "refundPercentage": quote.refund_percentage,
        "refundAmount": float(quote.refund_amount),
        "deadline": quote.deadline.isoformat(),
    }


def _log_rejection(action: str, exc: ReservationError, **context) -> None:
    logger.info(
        f"{action} rejected",
        extra={
            "extra_fields": safe_log_context(reason_code=exc.reason_code, **context)
        },
    )


# ── Booking ───────────────────────────────────────────────


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_now),
) -> dict:
    """Book a room for the caller. The reservation starts PENDING."""
    try:
        with txn() as cur:
            reservation, quote = reservation_service.book_room(
                cur,
                user_id=user.id,
                room_id=str(body.room_id),
                check_in=body.check_in,
                check_out=body.check_out,
                now=now,
                correlation_id=get_correlation_id() or None,
            )
    except ReservationError as exc:
        _log_rejection("booking", exc, room_id=str(body.room_id))
        raise to_http_error(exc)

    return {
        "message": "Reservation created successfully",
        "nights": quote.nights,
        "reservation": _reservation_to_dict(reservation),
    }


# ── Reads ─────────────────────────────────────────────────


@router.get("/mine")
def list_my_reservations(user: CurrentUser = Depends(get_current_user)) -> list[dict]:
    """Caller's reservations, newest first."""
    with txn() as cur:
        reservations = reservations_repository.list_reservations(cur, user_id=user.id)
    return [_reservation_to_dict(r) for r in reservations]


@router.get("")
def list_all_reservations(_admin: CurrentUser = Depends(require_admin)) -> list[dict]:
    """All reservations, newest first. Admin only."""
    with txn() as cur:
        reservations = reservations_repository.list_reservations(cur)
    return [_reservation_to_dict(r) for r in reservations]


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    try:
        with txn() as cur:
            reservation = reservation_service.get_reservation(
                cur,
                reservation_id=str(reservation_id),
                user_id=user.id,
                is_admin=user.is_admin,
            )
    except ReservationError as exc:
        raise to_http_error(exc)
    return _reservation_to_dict(reservation)


# ── Status (admin) ────────────────────────────────────────


@router.patch("/{reservation_id}/status")
def update_reservation_status(
    body: UpdateStatusRequest,
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    _admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Confirm (or revert to pending) a reservation. Admin only.

    Cancelling goes through /actions/cancel so the refund is recorded.
    """
    try:
        with txn() as cur:
            reservation = reservation_service.set_status(
                cur,
                reservation_id=str(reservation_id),
                status=ReservationStatus(body.status),
                correlation_id=get_correlation_id() or None,
            )
    except ReservationError as exc:
        raise to_http_error(exc)

    return {
        "message": "Reservation updated successfully",
        "reservation": _reservation_to_dict(reservation),
    }


# ── Cancellation ──────────────────────────────────────────


@router.get("/{reservation_id}/cancellation-info")
def get_cancellation_info(
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_now),
) -> dict:
    """What cancelling right now would refund. Read-only."""
    try:
        with txn() as cur:
            reservation, quote = reservation_service.get_cancellation_info(
                cur,
                reservation_id=str(reservation_id),
                user_id=user.id,
                is_admin=user.is_admin,
                now=now,
            )
    except ReservationError as exc:
        raise to_http_error(exc)

    deadlines = cancellation_deadlines(reservation.check_in)
    return {
        **_refund_info(quote),
        "daysUntilCheckIn": quote.days_until_check_in,
        "checkInDate": reservation.check_in.isoformat(),
        "totalPrice": float(reservation.total_price),
        "deadlines": {
            "freeCancellation": deadlines["free_deadline"].isoformat(),
            "partialRefund": deadlines["partial_deadline"].isoformat(),
            "checkIn": deadlines["check_in"].isoformat(),
        },
    }


@router.post("/{reservation_id}/actions/cancel")
def cancel_reservation(
    body: CancelReservationRequest | None = None,
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_now),
) -> dict:
    """Cancel a reservation. The owner or an admin may cancel."""
    try:
        with txn() as cur:
            reservation, quote = reservation_service.cancel_reservation(
                cur,
                reservation_id=str(reservation_id),
                user_id=user.id,
                is_admin=user.is_admin,
                now=now,
                reason=body.reason if body else None,
                correlation_id=get_correlation_id() or None,
            )
    except ReservationError as exc:
        _log_rejection("cancellation", exc, reservation_id=str(reservation_id))
        raise to_http_error(exc)

    return {
        "message": "Reservation cancelled successfully",
        "reservation": _reservation_to_dict(reservation),
        "refundInfo": {
            "policy": quote.policy,
            "refundPercentage": quote.refund_percentage,
            "refundAmount": float(quote.refund_amount),
        },
    }


# ── Modification ──────────────────────────────────────────


@router.post("/{reservation_id}/actions/modify-preview")
def modify_preview(
    body: ChangeDatesRequest,
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_now),
) -> dict:
    """Evaluate new dates without changing anything.

    Business rejections come back as is_possible=false with a reason code;
    missing or foreign reservations are still 404/403.
    """
    try:
        with txn() as cur:
            quote = reservation_service.preview_modification(
                cur,
                reservation_id=str(reservation_id),
                user_id=user.id,
                is_admin=user.is_admin,
                new_check_in=body.check_in,
                new_check_out=body.check_out,
                now=now,
            )
    except ReservationError as exc:
        if exc.reason_code in ("reservation_not_found", "unauthorized", "room_not_found"):
            raise to_http_error(exc)
        return {"isPossible": False, "reasonCode": exc.reason_code, "message": str(exc)}

    return {
        "isPossible": True,
        "nights": quote.nights,
        "newTotalPrice": float(quote.total_price),
        "priceDelta": float(quote.price_delta),
    }


@router.post("/{reservation_id}/actions/modify-apply")
def modify_apply(
    body: ChangeDatesRequest,
    reservation_id: UUID = Path(..., description="Reservation UUID"),
    user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_now),
) -> dict:
    """Move a reservation to new dates and reprice it."""
    try:
        with txn() as cur:
            reservation, quote = reservation_service.modify_reservation(
                cur,
                reservation_id=str(reservation_id),
                user_id=user.id,
                is_admin=user.is_admin,
                new_check_in=body.check_in,
                new_check_out=body.check_out,
                now=now,
                correlation_id=get_correlation_id() or None,
            )
    except ReservationError as exc:
        _log_rejection("modification", exc, reservation_id=str(reservation_id))
        raise to_http_error(exc)

    return {
        "message": "Reservation dates modified successfully",
        "nights": quote.nights,
        "reservation": _reservation_to_dict(reservation),
        "priceChange": float(quote.price_delta),
    }
