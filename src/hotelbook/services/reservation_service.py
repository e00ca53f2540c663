"""Reservation service: transactional flows around the booking core.

Every function takes an open cursor and runs inside the caller's transaction.

Rules:
- Booking and date changes lock the room row before reading its reservations,
  so the overlap check and the write are serialized per room.
- Cancellation locks the reservation row; the refund is computed once and frozen.
- Each state change emits an outbox event in the same transaction.
- Only the owner of a reservation or an admin may read or change it.
"""

from __future__ import annotations

from datetime import datetime

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from hotelbook.domain.booking import evaluate_booking, evaluate_modification
from hotelbook.domain.cancellation_policy import evaluate_cancellation_policy
from hotelbook.domain.errors import (
    AlreadyCancelled,
    DateConflict,
    ReservationNotFound,
    RoomUnavailable,
    Unauthorized,
)
from hotelbook.domain.models import (
    BookingQuote,
    CancellationQuote,
    ModificationQuote,
    Reservation,
    ReservationStatus,
)
from hotelbook.infra.repositories import (
    outbox_repository,
    reservations_repository,
    rooms_repository,
)
from hotelbook.observability.logging import get_logger
from hotelbook.observability.redaction import safe_log_context

logger = get_logger(__name__)


# ── Lookups ──────────────────────────────────────────────


def _load_owned(
    cur: PgCursor,
    reservation_id: str,
    *,
    user_id: str,
    is_admin: bool,
    lock: bool = False,
) -> Reservation:
    reservation = reservations_repository.get_reservation(cur, reservation_id, lock=lock)
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    if reservation.user_id != user_id and not is_admin:
        raise Unauthorized(reservation_id)
    return reservation


def get_reservation(
    cur: PgCursor, *, reservation_id: str, user_id: str, is_admin: bool
) -> Reservation:
    """Fetch a reservation the caller is allowed to see.

    Raises:
        ReservationNotFound, Unauthorized.
    """
    return _load_owned(cur, reservation_id, user_id=user_id, is_admin=is_admin)


# ── Booking ──────────────────────────────────────────────


def quote_booking(
    cur: PgCursor,
    *,
    room_id: str,
    check_in: datetime,
    check_out: datetime,
    now: datetime,
) -> BookingQuote:
    """Read-only evaluation of a booking request (no lock, no write)."""
    room = rooms_repository.get_room(cur, room_id)
    if room is None:
        raise RoomUnavailable(room_id, missing=True)
    existing = reservations_repository.list_active_for_room(cur, room_id)
    return evaluate_booking(room, check_in, check_out, existing, now)


def book_room(
    cur: PgCursor,
    *,
    user_id: str,
    room_id: str,
    check_in: datetime,
    check_out: datetime,
    now: datetime,
    correlation_id: str | None = None,
) -> tuple[Reservation, BookingQuote]:
    """Create a PENDING reservation if the room is free for the range.

    Raises:
        RoomUnavailable, PastCheckIn, InvalidDateRange, DateConflict.
    """
    room = rooms_repository.get_room(cur, room_id, lock=True)
    if room is None:
        raise RoomUnavailable(room_id, missing=True)

    existing = reservations_repository.list_active_for_room(cur, room_id)
    quote = evaluate_booking(room, check_in, check_out, existing, now)

    try:
        reservation = reservations_repository.insert_reservation(
            cur, user_id=user_id, quote=quote
        )
    except pg_errors.ExclusionViolation:
        # no_room_overlap constraint: another writer got there first
        raise DateConflict(room_id)

    outbox_repository.emit_event(
        cur,
        event_type=outbox_repository.RESERVATION_CREATED,
        aggregate_id=reservation.id,
        payload={
            "reservation_id": reservation.id,
            "room_id": room_id,
            "user_id": user_id,
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "nights": quote.nights,
            "total_price": str(quote.total_price),
        },
        correlation_id=correlation_id,
    )

    logger.info(
        "reservation created",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation.id,
                room_id=room_id,
                nights=quote.nights,
                total_price=quote.total_price,
            )
        },
    )
    return reservation, quote


# ── Modification ─────────────────────────────────────────


def preview_modification(
    cur: PgCursor,
    *,
    reservation_id: str,
    user_id: str,
    is_admin: bool,
    new_check_in: datetime,
    new_check_out: datetime,
    now: datetime,
) -> ModificationQuote:
    """Evaluate a date change without writing anything.

    Raises:
        ReservationNotFound, Unauthorized, AlreadyCancelled,
        TooCloseToModify, InvalidDateRange, DateConflict.
    """
    reservation = _load_owned(cur, reservation_id, user_id=user_id, is_admin=is_admin)
    room = rooms_repository.get_room(cur, reservation.room_id)
    if room is None:
        raise RoomUnavailable(reservation.room_id, missing=True)
    existing = reservations_repository.list_active_for_room(cur, reservation.room_id)
    return evaluate_modification(
        reservation, room, new_check_in, new_check_out, existing, now
    )


def modify_reservation(
    cur: PgCursor,
    *,
    reservation_id: str,
    user_id: str,
    is_admin: bool,
    new_check_in: datetime,
    new_check_out: datetime,
    now: datetime,
    correlation_id: str | None = None,
) -> tuple[Reservation, ModificationQuote]:
    """Apply a date change: lock room, re-check, reprice, persist.

    The room is locked before the reservation, same order as book_room.
    """
    current = _load_owned(cur, reservation_id, user_id=user_id, is_admin=is_admin)
    room = rooms_repository.get_room(cur, current.room_id, lock=True)
    if room is None:
        raise RoomUnavailable(current.room_id, missing=True)

    reservation = reservations_repository.get_reservation(cur, reservation_id, lock=True)
    if reservation is None:
        raise ReservationNotFound(reservation_id)

    existing = reservations_repository.list_active_for_room(cur, reservation.room_id)
    quote = evaluate_modification(
        reservation, room, new_check_in, new_check_out, existing, now
    )

    try:
        updated = reservations_repository.update_dates(cur, quote=quote, modified_at=now)
    except pg_errors.ExclusionViolation:
        raise DateConflict(reservation.room_id)

    outbox_repository.emit_event(
        cur,
        event_type=outbox_repository.RESERVATION_DATES_MODIFIED,
        aggregate_id=reservation_id,
        payload={
            "reservation_id": reservation_id,
            "old_check_in": reservation.check_in.isoformat(),
            "old_check_out": reservation.check_out.isoformat(),
            "check_in": new_check_in.isoformat(),
            "check_out": new_check_out.isoformat(),
            "total_price": str(quote.total_price),
            "price_delta": str(quote.price_delta),
        },
        correlation_id=correlation_id,
    )

    logger.info(
        "reservation dates modified",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                nights=quote.nights,
                price_delta=quote.price_delta,
                modification_count=quote.modification_count,
            )
        },
    )
    return updated, quote


# ── Status (admin) ───────────────────────────────────────


def set_status(
    cur: PgCursor,
    *,
    reservation_id: str,
    status: ReservationStatus,
    correlation_id: str | None = None,
) -> Reservation:
    """Move a reservation between PENDING and CONFIRMED.

    CANCELLED is terminal and only reachable through cancel_reservation.

    Raises:
        ValueError: If status is CANCELLED.
        ReservationNotFound, AlreadyCancelled.
    """
    if status == ReservationStatus.CANCELLED:
        raise ValueError("use cancel_reservation to cancel a reservation")

    reservation = reservations_repository.get_reservation(cur, reservation_id, lock=True)
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    if not reservation.is_active:
        raise AlreadyCancelled(reservation_id)
    if reservation.status == status:
        return reservation

    updated = reservations_repository.update_status(cur, reservation_id, status)
    outbox_repository.emit_event(
        cur,
        event_type=outbox_repository.RESERVATION_STATUS_CHANGED,
        aggregate_id=reservation_id,
        payload={
            "reservation_id": reservation_id,
            "from": reservation.status.value,
            "to": status.value,
        },
        correlation_id=correlation_id,
    )
    return updated


# ── Cancellation ─────────────────────────────────────────


def get_cancellation_info(
    cur: PgCursor,
    *,
    reservation_id: str,
    user_id: str,
    is_admin: bool,
    now: datetime,
) -> tuple[Reservation, CancellationQuote]:
    """Disclose what cancelling now would refund. Writes nothing.

    Raises:
        ReservationNotFound, Unauthorized, AlreadyCancelled.
    """
    reservation = _load_owned(cur, reservation_id, user_id=user_id, is_admin=is_admin)
    if not reservation.is_active:
        raise AlreadyCancelled(reservation_id)
    quote = evaluate_cancellation_policy(reservation.check_in, reservation.total_price, now)
    return reservation, quote


def cancel_reservation(
    cur: PgCursor,
    *,
    reservation_id: str,
    user_id: str,
    is_admin: bool,
    now: datetime,
    reason: str | None = None,
    correlation_id: str | None = None,
) -> tuple[Reservation, CancellationQuote]:
    """Cancel a reservation and freeze its refund.

    This function:
    1. Locks the reservation with FOR UPDATE
    2. Checks existence, ownership, and that it is not already cancelled
    3. Evaluates the cancellation policy at `now`
    4. Sets status CANCELLED, refund_amount and cancellation_date
    5. Emits RESERVATION_CANCELLED

    Raises:
        ReservationNotFound, Unauthorized, AlreadyCancelled.
    """
    reservation = _load_owned(
        cur, reservation_id, user_id=user_id, is_admin=is_admin, lock=True
    )
    if not reservation.is_active:
        raise AlreadyCancelled(reservation_id)

    quote = evaluate_cancellation_policy(reservation.check_in, reservation.total_price, now)

    cancelled = reservations_repository.mark_cancelled(
        cur,
        reservation_id,
        refund_amount=quote.refund_amount,
        cancellation_date=now,
    )

    outbox_repository.emit_event(
        cur,
        event_type=outbox_repository.RESERVATION_CANCELLED,
        aggregate_id=reservation_id,
        payload={
            "reservation_id": reservation_id,
            "policy": quote.policy,
            "refund_percentage": quote.refund_percentage,
            "refund_amount": str(quote.refund_amount),
            "reason": reason,
            "cancelled_by": user_id,
        },
        correlation_id=correlation_id,
    )

    logger.info(
        "reservation cancelled",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                policy=quote.policy,
                refund_amount=quote.refund_amount,
            )
        },
    )
    return cancelled, quote
