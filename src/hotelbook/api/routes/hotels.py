"""Hotel endpoints.

GET    /hotels        → list hotels
GET    /hotels/{id}   → one hotel with its rooms
POST   /hotels        → create (admin, 201)
PATCH  /hotels/{id}   → partial update (admin)
DELETE /hotels/{id}   → delete with its rooms (admin)

The hotel timezone decides what "today" means for check-in validation, so
writes only accept names zoneinfo can load. A hotel created without one gets
the zone of its location when that location is known, UTC otherwise.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from hotelbook.api.auth import CurrentUser, require_admin
from hotelbook.infra.db import txn
from hotelbook.infra.repositories import hotels_repository, rooms_repository
from hotelbook.infra.time import is_known_timezone, timezone_for_location
from hotelbook.observability.logging import get_logger
from hotelbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

router = APIRouter(prefix="/hotels", tags=["hotels"])


def _check_timezone(value: str | None) -> str | None:
    if value is not None and not is_known_timezone(value):
        raise ValueError(f"unknown timezone: {value}")
    return value


class CreateHotelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: str | None = None
    rating: Decimal = Field(default=Decimal("0"), ge=0, le=5, decimal_places=1)
    image_url: str | None = Field(default=None, alias="imageUrl")
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def timezone_must_be_known(cls, value: str | None) -> str | None:
        return _check_timezone(value)


class UpdateHotelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = Field(default=None, min_length=1)
    location: str | None = Field(default=None, min_length=1)
    description: str | None = None
    rating: Decimal | None = Field(default=None, ge=0, le=5, decimal_places=1)
    image_url: str | None = Field(default=None, alias="imageUrl")
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def timezone_must_be_known(cls, value: str | None) -> str | None:
        return _check_timezone(value)


def _hotel_out(hotel: dict) -> dict:
    rating = hotel["rating"]
    return {**hotel, "rating": float(rating) if rating is not None else None}


def _room_out(room: dict) -> dict:
    return {**room, "price": float(room["price"])}


@router.get("")
def list_hotels() -> list[dict]:
    with txn() as cur:
        hotels = hotels_repository.list_hotels(cur)
    return [_hotel_out(h) for h in hotels]


@router.get("/{hotel_id}")
def get_hotel(hotel_id: UUID = Path(..., description="Hotel UUID")) -> dict:
    with txn() as cur:
        hotel = hotels_repository.get_hotel(cur, str(hotel_id))
        if hotel is None:
            raise HTTPException(status_code=404, detail="Hotel not found")
        rooms = rooms_repository.list_rooms(cur, hotel_id=str(hotel_id))
    return {**_hotel_out(hotel), "rooms": [_room_out(r) for r in rooms]}


@router.post("", status_code=201)
def create_hotel(
    body: CreateHotelRequest,
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Create a hotel. Admin only."""
    tz_name = body.timezone or timezone_for_location(body.location)
    with txn() as cur:
        hotel = hotels_repository.insert_hotel(
            cur,
            name=body.name,
            location=body.location,
            timezone=tz_name,
            description=body.description,
            rating=body.rating,
            image_url=body.image_url,
        )

    logger.info(
        "hotel created",
        extra={
            "extra_fields": safe_log_context(
                hotel_id=hotel["id"], timezone=tz_name, created_by=admin.id
            )
        },
    )
    return {"message": "Hotel created successfully", "hotel": _hotel_out(hotel)}


@router.patch("/{hotel_id}")
def update_hotel(
    body: UpdateHotelRequest,
    hotel_id: UUID = Path(..., description="Hotel UUID"),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Partially update a hotel. Admin only."""
    with txn() as cur:
        hotel = hotels_repository.update_hotel(
            cur,
            str(hotel_id),
            name=body.name,
            location=body.location,
            description=body.description,
            rating=body.rating,
            image_url=body.image_url,
            timezone=body.timezone,
        )
    if hotel is None:
        raise HTTPException(status_code=404, detail="Hotel not found")

    logger.info(
        "hotel updated",
        extra={
            "extra_fields": safe_log_context(
                hotel_id=str(hotel_id), timezone=body.timezone, updated_by=admin.id
            )
        },
    )
    return {"message": "Hotel updated successfully", "hotel": _hotel_out(hotel)}


@router.delete("/{hotel_id}")
def delete_hotel(
    hotel_id: UUID = Path(..., description="Hotel UUID"),
    admin: CurrentUser = Depends(require_admin),
) -> dict:
    """Delete a hotel and its rooms. Admin only.

    Fails with 409 while any of its rooms is referenced by reservations.
    """
    from psycopg2 import errors as pg_errors

    with txn() as cur:
        try:
            deleted = hotels_repository.delete_hotel(cur, str(hotel_id))
        except pg_errors.ForeignKeyViolation:
            raise HTTPException(
                status_code=409,
                detail="Hotel has reservations and cannot be deleted",
            )
    if not deleted:
        raise HTTPException(status_code=404, detail="Hotel not found")

    logger.info(
        "hotel deleted",
        extra={
            "extra_fields": safe_log_context(hotel_id=str(hotel_id), deleted_by=admin.id)
        },
    )
    return {"message": "Hotel deleted successfully"}
