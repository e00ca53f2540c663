"""Rooms repository - room lookup for booking decisions and admin updates.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelbook.domain.models import Room
from hotelbook.infra.db import for_update

_SELECT_ROOM = """
    SELECT r.id, r.price, r.is_available, h.timezone, r.hotel_id
    FROM rooms r
    JOIN hotels h ON h.id = r.hotel_id
    WHERE r.id = %s
"""


def get_room(cur: PgCursor, room_id: str, *, lock: bool = False) -> Room | None:
    """Load a room with its hotel timezone.

    Args:
        cur: Database cursor.
        room_id: Room UUID.
        lock: If True, locks the room row (FOR UPDATE OF r) until the
            transaction ends. Bookings and date changes take this lock to
            serialize the conflict check and the write per room.

    Returns:
        Room, or None if it does not exist.
    """
    if lock:
        row = for_update(cur, _SELECT_ROOM, (room_id,), of="r")
    else:
        cur.execute(_SELECT_ROOM, (room_id,))
        row = cur.fetchone()
    if row is None:
        return None
    return Room(
        id=str(row[0]),
        nightly_rate=Decimal(row[1]),
        is_available=bool(row[2]),
        hotel_timezone=row[3],
        hotel_id=str(row[4]),
    )


def _room_to_dict(row: tuple) -> dict:
    return {
        "id": str(row[0]),
        "hotelId": str(row[1]),
        "roomNumber": row[2],
        "type": row[3],
        "price": row[4],
        "capacity": row[5],
        "description": row[6],
        "isAvailable": row[7],
    }


_ROOM_COLUMNS = "id, hotel_id, room_number, type, price, capacity, description, is_available"


def list_rooms(cur: PgCursor, *, hotel_id: str | None = None) -> list[dict]:
    if hotel_id is None:
        cur.execute(f"SELECT {_ROOM_COLUMNS} FROM rooms ORDER BY hotel_id, room_number")
    else:
        cur.execute(
            f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE hotel_id = %s ORDER BY room_number",
            (hotel_id,),
        )
    return [_room_to_dict(row) for row in cur.fetchall()]


def get_room_detail(cur: PgCursor, room_id: str) -> dict | None:
    cur.execute(f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = %s", (room_id,))
    row = cur.fetchone()
    return _room_to_dict(row) if row else None


def insert_room(
    cur: PgCursor,
    *,
    hotel_id: str,
    room_number: str,
    room_type: str,
    price: Decimal,
    capacity: int = 2,
    description: str | None = None,
) -> dict:
    """Insert a room. Raises UniqueViolation on a duplicate room number
    within the hotel and ForeignKeyViolation if the hotel does not exist."""
    cur.execute(
        f"""
        INSERT INTO rooms (hotel_id, room_number, type, price, capacity, description)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_ROOM_COLUMNS}
        """,
        (hotel_id, room_number, room_type, price, capacity, description),
    )
    return _room_to_dict(cur.fetchone())


_UPDATABLE = {
    "room_number": "room_number",
    "room_type": "type",
    "price": "price",
    "capacity": "capacity",
    "description": "description",
    "is_available": "is_available",
}


def update_room(cur: PgCursor, room_id: str, **fields) -> dict | None:
    """Partially update a room. Fields left as None are not touched.

    Accepted fields: room_number, room_type, price, capacity, description,
    is_available.

    Returns:
        Updated room dict, or None if the room does not exist.
    """
    sets: list[str] = []
    params: list = []
    for name, value in fields.items():
        if name not in _UPDATABLE:
            raise ValueError(f"unknown room field: {name}")
        if value is not None:
            sets.append(f"{_UPDATABLE[name]} = %s")
            params.append(value)

    if not sets:
        return get_room_detail(cur, room_id)

    sets.append("updated_at = now()")
    params.append(room_id)
    cur.execute(
        f"UPDATE rooms SET {', '.join(sets)} WHERE id = %s RETURNING {_ROOM_COLUMNS}",
        params,
    )
    row = cur.fetchone()
    return _room_to_dict(row) if row else None


def delete_room(cur: PgCursor, room_id: str) -> bool:
    """Delete a room. Returns False if it did not exist.

    Raises ForeignKeyViolation while reservations still reference the room.
    """
    cur.execute("DELETE FROM rooms WHERE id = %s RETURNING id", (room_id,))
    return cur.fetchone() is not None
