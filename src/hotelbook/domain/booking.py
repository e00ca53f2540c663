"""Availability and pricing resolver.

Decides whether a room can be booked for [check_in, check_out) and prices the
stay. Pure functions: the caller fetches the room and its reservations, passes
the clock in as `now`, and persists the returned descriptor.

Overlap formula:  (existing.check_in < check_out) AND (existing.check_out > check_in)
Strict inequality allows check-out day == check-in day (touching ranges are OK).
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from hotelbook.domain.errors import (
    AlreadyCancelled,
    DateConflict,
    InvalidDateRange,
    PastCheckIn,
    RoomUnavailable,
    TooCloseToModify,
)
from hotelbook.domain.models import (
    BookingQuote,
    ModificationQuote,
    Reservation,
    ReservationStatus,
    Room,
)
from hotelbook.infra.time import FALLBACK_TIMEZONE, start_of_today as _start_of_today

SECONDS_PER_NIGHT = 24 * 60 * 60
MODIFICATION_LEAD_TIME = timedelta(hours=48)
_CENTS = Decimal("0.01")

# (tz_name, now) -> local midnight of "today" in that timezone
StartOfToday = Callable[[str | None, datetime], datetime]


def nights_between(check_in: datetime, check_out: datetime) -> int:
    """Whole nights of a stay: ceil of the elapsed time in 24h days."""
    return math.ceil((check_out - check_in).total_seconds() / SECONDS_PER_NIGHT)


def price_stay(nightly_rate: Decimal, nights: int) -> Decimal:
    return (Decimal(nightly_rate) * nights).quantize(_CENTS)


def overlaps(
    existing: Reservation, check_in: datetime, check_out: datetime
) -> bool:
    """Half-open interval overlap between an existing stay and a requested one."""
    return existing.check_in < check_out and existing.check_out > check_in


def find_conflict(
    reservations: Iterable[Reservation],
    check_in: datetime,
    check_out: datetime,
    *,
    exclude_reservation_id: str | None = None,
) -> Reservation | None:
    """Return the earliest active reservation overlapping the range, if any."""
    candidates = [
        r
        for r in reservations
        if r.is_active
        and r.id != exclude_reservation_id
        and overlaps(r, check_in, check_out)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda r: r.check_in)


def evaluate_booking(
    room: Room | None,
    check_in: datetime,
    check_out: datetime,
    existing: Iterable[Reservation],
    now: datetime,
    *,
    start_of_today: StartOfToday = _start_of_today,
) -> BookingQuote:
    """Validate and price a booking request.

    Checks run in a fixed order and the first failure is raised:
    room availability, past check-in (hotel timezone), date order, overlap.

    Args:
        room: Room being booked, or None if the lookup found nothing.
        check_in: Requested check-in instant (inclusive).
        check_out: Requested check-out instant (exclusive).
        existing: Reservations on the room; cancelled ones are ignored.
        now: Reference instant.
        start_of_today: Capability returning local midnight for a timezone.

    Returns:
        BookingQuote with nights and total price, status PENDING.

    Raises:
        RoomUnavailable, PastCheckIn, InvalidDateRange, DateConflict.
    """
    if room is None:
        raise RoomUnavailable(None, missing=True)
    if not room.is_available:
        raise RoomUnavailable(room.id)

    timezone_name = room.hotel_timezone or FALLBACK_TIMEZONE
    if check_in < start_of_today(timezone_name, now):
        raise PastCheckIn(check_in, timezone_name)

    if check_in >= check_out:
        raise InvalidDateRange(check_in, check_out)

    conflict = find_conflict(existing, check_in, check_out)
    if conflict is not None:
        raise DateConflict(room.id, conflict.id)

    nights = nights_between(check_in, check_out)
    return BookingQuote(
        room_id=room.id,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        total_price=price_stay(room.nightly_rate, nights),
        status=ReservationStatus.PENDING,
    )


def evaluate_modification(
    reservation: Reservation,
    room: Room,
    new_check_in: datetime,
    new_check_out: datetime,
    existing: Iterable[Reservation],
    now: datetime,
) -> ModificationQuote:
    """Validate and reprice a date change of an existing reservation.

    The new check-in must be strictly more than 48 hours after `now`.
    The reservation itself is excluded from the overlap check.

    Raises:
        AlreadyCancelled, TooCloseToModify, InvalidDateRange, DateConflict.
    """
    if reservation.status == ReservationStatus.CANCELLED:
        raise AlreadyCancelled(reservation.id)

    earliest = now + MODIFICATION_LEAD_TIME
    if new_check_in <= earliest:
        raise TooCloseToModify(new_check_in, earliest)

    if new_check_in >= new_check_out:
        raise InvalidDateRange(new_check_in, new_check_out)

    conflict = find_conflict(
        existing,
        new_check_in,
        new_check_out,
        exclude_reservation_id=reservation.id,
    )
    if conflict is not None:
        raise DateConflict(reservation.room_id, conflict.id)

    nights = nights_between(new_check_in, new_check_out)
    total_price = price_stay(room.nightly_rate, nights)
    return ModificationQuote(
        reservation_id=reservation.id,
        check_in=new_check_in,
        check_out=new_check_out,
        nights=nights,
        total_price=total_price,
        price_delta=total_price - Decimal(reservation.total_price),
        modification_count=reservation.modification_count + 1,
    )
