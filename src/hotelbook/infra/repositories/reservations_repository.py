"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelbook.domain.models import (
    BookingQuote,
    ModificationQuote,
    Reservation,
    ReservationStatus,
)
from hotelbook.infra.db import for_update

_COLUMNS = """
    id, room_id, user_id, check_in, check_out, total_price, status,
    refund_amount, cancellation_date, modification_count
"""


def _row_to_reservation(row: tuple) -> Reservation:
    return Reservation(
        id=str(row[0]),
        room_id=str(row[1]),
        user_id=str(row[2]),
        check_in=row[3],
        check_out=row[4],
        total_price=Decimal(row[5]),
        status=ReservationStatus(row[6]),
        refund_amount=Decimal(row[7]) if row[7] is not None else None,
        cancellation_date=row[8],
        modification_count=row[9] or 0,
    )


def get_reservation(
    cur: PgCursor, reservation_id: str, *, lock: bool = False
) -> Reservation | None:
    """Fetch one reservation by ID, optionally locking it FOR UPDATE."""
    query = f"SELECT {_COLUMNS} FROM reservations WHERE id = %s"
    if lock:
        row = for_update(cur, query, (reservation_id,))
    else:
        cur.execute(query, (reservation_id,))
        row = cur.fetchone()
    return _row_to_reservation(row) if row else None


def list_active_for_room(cur: PgCursor, room_id: str) -> list[Reservation]:
    """All non-cancelled reservations on a room, ordered by check-in."""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE room_id = %s AND status <> %s
        ORDER BY check_in
        """,
        (room_id, ReservationStatus.CANCELLED.value),
    )
    return [_row_to_reservation(row) for row in cur.fetchall()]


def list_reservations(cur: PgCursor, *, user_id: str | None = None) -> list[Reservation]:
    """Reservations newest first, optionally only those of one user."""
    if user_id is None:
        cur.execute(f"SELECT {_COLUMNS} FROM reservations ORDER BY created_at DESC")
    else:
        cur.execute(
            f"SELECT {_COLUMNS} FROM reservations WHERE user_id = %s ORDER BY created_at DESC",
            (user_id,),
        )
    return [_row_to_reservation(row) for row in cur.fetchall()]


def insert_reservation(cur: PgCursor, *, user_id: str, quote: BookingQuote) -> Reservation:
    cur.execute(
        f"""
        INSERT INTO reservations (
            user_id, room_id, check_in, check_out, total_price, status
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (
            user_id,
            quote.room_id,
            quote.check_in,
            quote.check_out,
            quote.total_price,
            quote.status.value,
        ),
    )
    return _row_to_reservation(cur.fetchone())


def update_dates(
    cur: PgCursor, *, quote: ModificationQuote, modified_at: datetime
) -> Reservation:
    """Persist a date change together with its new price and counter."""
    cur.execute(
        f"""
        UPDATE reservations
        SET check_in = %s,
            check_out = %s,
            total_price = %s,
            modification_count = %s,
            last_modified_date = %s,
            updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (
            quote.check_in,
            quote.check_out,
            quote.total_price,
            quote.modification_count,
            modified_at,
            quote.reservation_id,
        ),
    )
    return _row_to_reservation(cur.fetchone())


def update_status(
    cur: PgCursor, reservation_id: str, status: ReservationStatus
) -> Reservation:
    cur.execute(
        f"""
        UPDATE reservations
        SET status = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (status.value, reservation_id),
    )
    return _row_to_reservation(cur.fetchone())


def mark_cancelled(
    cur: PgCursor,
    reservation_id: str,
    *,
    refund_amount: Decimal,
    cancellation_date: datetime,
) -> Reservation:
    """Set status CANCELLED and freeze the refund decided at cancellation time."""
    cur.execute(
        f"""
        UPDATE reservations
        SET status = %s,
            refund_amount = %s,
            cancellation_date = %s,
            updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (
            ReservationStatus.CANCELLED.value,
            refund_amount,
            cancellation_date,
            reservation_id,
        ),
    )
    return _row_to_reservation(cur.fetchone())
