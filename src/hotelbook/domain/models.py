"""Value types shared by the booking resolver and the cancellation policy engine.

Instants are timezone-aware datetimes. Money is Decimal with two places.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Room:
    """Room as seen by a booking decision.

    Attributes:
        id: Room identifier.
        nightly_rate: Price per night (positive).
        is_available: Administrative availability flag.
        hotel_timezone: IANA timezone of the owning hotel; None means UTC.
        hotel_id: Owning hotel identifier.
    """

    id: str
    nightly_rate: Decimal
    is_available: bool
    hotel_timezone: str | None = None
    hotel_id: str | None = None


@dataclass(frozen=True)
class Reservation:
    id: str
    room_id: str
    user_id: str
    check_in: datetime
    check_out: datetime
    total_price: Decimal
    status: ReservationStatus = ReservationStatus.PENDING
    refund_amount: Decimal | None = None
    cancellation_date: datetime | None = None
    modification_count: int = 0

    @property
    def is_active(self) -> bool:
        """True unless the reservation has been cancelled."""
        return self.status != ReservationStatus.CANCELLED


@dataclass(frozen=True)
class BookingQuote:
    """Accepted booking, ready to be persisted with status PENDING."""

    room_id: str
    check_in: datetime
    check_out: datetime
    nights: int
    total_price: Decimal
    status: ReservationStatus = ReservationStatus.PENDING


@dataclass(frozen=True)
class ModificationQuote:
    """Accepted date change for an existing reservation.

    modification_count is the value the caller must persist (previous + 1).
    """

    reservation_id: str
    check_in: datetime
    check_out: datetime
    nights: int
    total_price: Decimal
    price_delta: Decimal
    modification_count: int


@dataclass(frozen=True)
class CancellationQuote:
    policy: str
    refund_percentage: int
    refund_amount: Decimal
    deadline: datetime
    days_until_check_in: int
