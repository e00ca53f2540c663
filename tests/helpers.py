"""Shared test helpers (plain functions, not fixtures)."""

from __future__ import annotations

import base64
import time
from datetime import datetime, timezone
from decimal import Decimal

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from hotelbook.domain.models import Reservation, ReservationStatus, Room

UTC = timezone.utc


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def make_room(
    room_id: str = "room-1",
    rate: str = "100",
    *,
    is_available: bool = True,
    hotel_timezone: str | None = "UTC",
) -> Room:
    return Room(
        id=room_id,
        nightly_rate=Decimal(rate),
        is_available=is_available,
        hotel_timezone=hotel_timezone,
        hotel_id="hotel-1",
    )


def make_reservation(
    reservation_id: str = "res-1",
    check_in: datetime | None = None,
    check_out: datetime | None = None,
    *,
    room_id: str = "room-1",
    user_id: str = "user-1",
    total_price: str = "300",
    status: ReservationStatus = ReservationStatus.CONFIRMED,
    modification_count: int = 0,
) -> Reservation:
    return Reservation(
        id=reservation_id,
        room_id=room_id,
        user_id=user_id,
        check_in=check_in or utc(2026, 1, 10),
        check_out=check_out or utc(2026, 1, 13),
        total_price=Decimal(total_price),
        status=status,
        modification_count=modification_count,
    )


def _generate_rsa_keypair():
    """Generate RSA key pair for test JWT signing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def _create_jwks(public_key, kid: str = "test-key-1") -> dict:
    """Create JWKS from public key."""
    public_numbers = public_key.public_numbers()

    def int_to_base64(n: int) -> str:
        byte_length = (n.bit_length() + 7) // 8
        return (
            base64.urlsafe_b64encode(n.to_bytes(byte_length, "big"))
            .rstrip(b"=")
            .decode()
        )

    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": int_to_base64(public_numbers.n),
                "e": int_to_base64(public_numbers.e),
            }
        ]
    }


def _create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "user-123",
    iss: str = "https://auth.example.com",
    aud: str = "hotelbook-api",
    exp: int | None = None,
    azp: str | None = None,
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if azp:
        payload["azp"] = azp
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})
