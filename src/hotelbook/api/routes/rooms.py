"""Room endpoints.

GET    /rooms?hotel_id=...                          → list rooms
GET    /rooms/hotel/{hotelId}                       → rooms of one hotel
GET    /rooms/{id}                                  → one room
POST   /rooms                                       → create, hotelId in body (admin, 201)
POST   /rooms/hotel/{hotelId}                       → create under a hotel (admin, 201)
PATCH  /rooms/{id}                                  → partial update (admin)
DELETE /rooms/{id}                                  → delete (admin)
GET    /rooms/{id}/quote?check_in=...&check_out=... → price a stay without booking
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from hotelbook.api.auth import CurrentUser, require_admin
from hotelbook.api.dependencies import get_now, to_http_error
from hotelbook.domain.errors import ReservationError
from hotelbook.infra.db import txn
from hotelbook.infra.repositories import rooms_repository
from hotelbook.observability.logging import get_logger
from hotelbook.observability.redaction import safe_log_context
from hotelbook.services import reservation_service

logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


class RoomFields(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    room_number: str = Field(min_length=1, alias="roomNumber")
    room_type: str = Field(min_length=1, alias="type")
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    capacity: int = Field(default=2, gt=0)
    description: str | None = None


class CreateRoomRequest(RoomFields):
    hotel_id: UUID = Field(alias="hotelId")


class UpdateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    room_number: str | None = Field(default=None, min_length=1, alias="roomNumber")
    room_type: str | None = Field(default=None, min_length=1, alias="type")
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    capacity: int | None = Field(default=None, gt=0)
    description: str | None = None
    is_available: bool | None = Field(default=None, alias="isAvailable")


def _room_out(room: dict) -> dict:
    return {**room, "price": float(room["price"])}


@router.get("")
def list_rooms(
    hotel_id: UUID | None = Query(None, description="Filter by hotel"),
) -> list[dict]:
    with txn() as cur:
        rooms = rooms_repository.list_rooms(
            cur, hotel_id=str(hotel_id) if hotel_id else None
        )
    return [_room_out(r) for r in rooms]


@router.get("/hotel/{hotel_id}")
def list_hotel_rooms(hotel_id: UUID = Path(..., description="Hotel UUID")) -> list[dict]:
    with txn() as cur:
        rooms = rooms_repository.list_rooms(cur, hotel_id=str(hotel_id))
    return [_room_out(r) for r in rooms]


@router.get("/{room_id}")
def get_room(room_id: UUID = Path(..., description="Room UUID")) -> dict:
    with txn() as cur:
        room = rooms_repository.get_room_detail(cur, str(room_id))
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return _room_out(room)


# ── Admin writes ──────────────────────────────────────────


def _create_room(hotel_id: UUID, body: RoomFields, admin: CurrentUser) -> dict:
    from psycopg2 import errors as pg_errors

    with txn() as cur:
        try:
            room = rooms_repository.insert_room(
                cur,
                hotel_id=str(hotel_id),
                room_number=body.room_number,
                room_type=body.room_type,
                price=body.price,
                capacity=body.capacity,
                description=body.description,
            )
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(status_code=404, detail="Hotel not found")
        except pg_errors.UniqueViolation:
            raise HTTPException(
                status_code=409,
                detail="Room number already exists for this hotel",
            )

    logger.info(
        "room created",
        extra={
            "extra_fields": safe_log_context(
                room_id=room["id"], hotel_id=str(hotel_id), created_by=admin.id
            )
        },
    )
    return {"message": "Room created successfully", "room": _room_out(room)}


@router.post("", status_code=201)
def create_room(
    body: CreateRoomRequest,
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Create a room in the hotel named by hotelId. Admin only."""
    return _create_room(body.hotel_id, body, admin)


@router.post("/hotel/{hotel_id}", status_code=201)
def create_hotel_room(
    body: RoomFields,
    hotel_id: UUID = Path(..., description="Hotel UUID"),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Create a room in the hotel from the path. Admin only."""
    return _create_room(hotel_id, body, admin)


@router.patch("/{room_id}")
def update_room(
    body: UpdateRoomRequest,
    room_id: UUID = Path(..., description="Room UUID"),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Partially update a room. Admin only.

    Existing reservations keep the price they were booked at.
    """
    from psycopg2 import errors as pg_errors

    with txn() as cur:
        try:
            room = rooms_repository.update_room(
                cur,
                str(room_id),
                room_number=body.room_number,
                room_type=body.room_type,
                price=body.price,
                capacity=body.capacity,
                description=body.description,
                is_available=body.is_available,
            )
        except pg_errors.UniqueViolation:
            raise HTTPException(
                status_code=409,
                detail="Room number already exists for this hotel",
            )
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")

    logger.info(
        "room updated",
        extra={
            "extra_fields": safe_log_context(
                room_id=str(room_id),
                price=body.price,
                is_available=body.is_available,
                updated_by=admin.id,
            )
        },
    )
    return {"message": "Room updated successfully", "room": _room_out(room)}


@router.delete("/{room_id}")
def delete_room(
    room_id: UUID = Path(..., description="Room UUID"),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Delete a room. Admin only.

    Fails with 409 while reservations reference the room.
    """
    from psycopg2 import errors as pg_errors

    with txn() as cur:
        try:
            deleted = rooms_repository.delete_room(cur, str(room_id))
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(
                status_code=409,
                detail="Room has reservations and cannot be deleted",
            )
    if not deleted:
        raise HTTPException(status_code=404, detail="Room not found")

    logger.info(
        "room deleted",
        extra={
            "extra_fields": safe_log_context(room_id=str(room_id), deleted_by=admin.id)
        },
    )
    return {"message": "Room deleted successfully"}


# ── Pricing ───────────────────────────────────────────────


@router.get("/{room_id}/quote")
def quote_room(
    room_id: UUID = Path(..., description="Room UUID"),
    check_in: AwareDatetime = Query(..., description="ISO-8601 check-in instant"),
    check_out: AwareDatetime = Query(..., description="ISO-8601 check-out instant"),
    now: datetime = Depends(get_now),
) -> dict:
    """Run the booking checks and price the stay without reserving anything."""
    try:
        with txn() as cur:
            quote = reservation_service.quote_booking(
                cur,
                room_id=str(room_id),
                check_in=check_in,
                check_out=check_out,
                now=now,
            )
    except ReservationError as exc:
        raise to_http_error(exc)

    return {
        "roomId": quote.room_id,
        "checkInDate": quote.check_in.isoformat(),
        "checkOutDate": quote.check_out.isoformat(),
        "nights": quote.nights,
        "totalPrice": float(quote.total_price),
    }
