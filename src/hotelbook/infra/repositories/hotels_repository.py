"""Hotels repository - catalogue reads and admin writes.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

_HOTEL_COLUMNS = "id, name, location, description, rating, image_url, timezone"


def _hotel_to_dict(row: tuple) -> dict:
    return {
        "id": str(row[0]),
        "name": row[1],
        "location": row[2],
        "description": row[3],
        "rating": row[4],
        "imageUrl": row[5],
        "timezone": row[6],
    }


def list_hotels(cur: PgCursor) -> list[dict]:
    cur.execute(f"SELECT {_HOTEL_COLUMNS} FROM hotels ORDER BY name")
    return [_hotel_to_dict(row) for row in cur.fetchall()]


def get_hotel(cur: PgCursor, hotel_id: str) -> dict | None:
    cur.execute(f"SELECT {_HOTEL_COLUMNS} FROM hotels WHERE id = %s", (hotel_id,))
    row = cur.fetchone()
    return _hotel_to_dict(row) if row else None


def insert_hotel(
    cur: PgCursor,
    *,
    name: str,
    location: str,
    timezone: str,
    description: str | None = None,
    rating: Decimal | None = None,
    image_url: str | None = None,
) -> dict:
    cur.execute(
        f"""
        INSERT INTO hotels (name, location, description, rating, image_url, timezone)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_HOTEL_COLUMNS}
        """,
        (name, location, description, rating, image_url, timezone),
    )
    return _hotel_to_dict(cur.fetchone())


_UPDATABLE = ("name", "location", "description", "rating", "image_url", "timezone")


def update_hotel(cur: PgCursor, hotel_id: str, **fields) -> dict | None:
    """Partially update a hotel. Fields left as None are not touched.

    Returns:
        Updated hotel dict, or None if the hotel does not exist.
    """
    sets: list[str] = []
    params: list = []
    for name, value in fields.items():
        if name not in _UPDATABLE:
            raise ValueError(f"unknown hotel field: {name}")
        if value is not None:
            sets.append(f"{name} = %s")
            params.append(value)

    if not sets:
        return get_hotel(cur, hotel_id)

    sets.append("updated_at = now()")
    params.append(hotel_id)
    cur.execute(
        f"UPDATE hotels SET {', '.join(sets)} WHERE id = %s RETURNING {_HOTEL_COLUMNS}",
        params,
    )
    row = cur.fetchone()
    return _hotel_to_dict(row) if row else None


def delete_hotel(cur: PgCursor, hotel_id: str) -> bool:
    """Delete a hotel and, by cascade, its rooms. Returns False if it did not exist.

    Raises ForeignKeyViolation while any of its rooms has reservations.
    """
    cur.execute("DELETE FROM hotels WHERE id = %s RETURNING id", (hotel_id,))
    return cur.fetchone() is not None
