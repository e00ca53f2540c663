"""Reservation error taxonomy.

Every rejection carries a stable reason_code so the HTTP layer can map it to a
status code without string matching.
"""

from __future__ import annotations

from datetime import datetime


class ReservationError(Exception):
    """Base class for every rejected booking, modification or cancellation."""

    reason_code = "reservation_error"

    def __init__(self, message: str, meta: dict | None = None):
        self.meta = meta or {}
        super().__init__(message)


class RoomUnavailable(ReservationError):
    reason_code = "room_unavailable"

    def __init__(self, room_id: str | None, *, missing: bool = False):
        self.room_id = room_id
        if missing:
            self.reason_code = "room_not_found"
            label = f"Room {room_id}" if room_id else "Room"
            super().__init__(f"{label} not found", {"room_id": room_id})
        else:
            super().__init__(f"Room {room_id} is not available", {"room_id": room_id})


class PastCheckIn(ReservationError):
    reason_code = "past_check_in"

    def __init__(self, check_in: datetime, timezone_name: str):
        self.check_in = check_in
        self.timezone_name = timezone_name
        super().__init__(
            f"Check-in date cannot be in the past (Hotel timezone: {timezone_name})",
            {"timezone": timezone_name},
        )


class InvalidDateRange(ReservationError):
    reason_code = "invalid_date_range"

    def __init__(self, check_in: datetime, check_out: datetime):
        self.check_in = check_in
        self.check_out = check_out
        super().__init__("Check-out date must be after check-in date")


class DateConflict(ReservationError):
    """Raised when the requested range overlaps an active reservation."""

    reason_code = "date_conflict"

    def __init__(self, room_id: str, conflicting_reservation_id: str | None = None):
        self.room_id = room_id
        self.conflicting_reservation_id = conflicting_reservation_id
        super().__init__(
            "Room is already booked for these dates",
            {"room_id": room_id, "conflicting_reservation_id": conflicting_reservation_id},
        )


class AlreadyCancelled(ReservationError):
    reason_code = "already_cancelled"

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__("Reservation is already cancelled", {"reservation_id": reservation_id})


class TooCloseToModify(ReservationError):
    reason_code = "too_close_to_modify"

    def __init__(self, new_check_in: datetime, earliest: datetime):
        self.new_check_in = new_check_in
        self.earliest = earliest
        super().__init__(
            "Cannot modify dates - check-in must be at least 48 hours away",
            {"earliest": earliest.isoformat()},
        )


class ReservationNotFound(ReservationError):
    reason_code = "reservation_not_found"

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__("Reservation not found", {"reservation_id": reservation_id})


class Unauthorized(ReservationError):
    reason_code = "unauthorized"

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__("Unauthorized", {"reservation_id": reservation_id})
