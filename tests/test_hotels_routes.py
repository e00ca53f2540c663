"""Tests for the /hotels endpoints."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from psycopg2 import errors as pg_errors

from hotelbook.api.auth import ADMIN_ROLE, CurrentUser, get_current_user
from hotelbook.api.factory import create_app

REPO = "hotelbook.infra.repositories.hotels_repository"
ROOMS_REPO = "hotelbook.infra.repositories.rooms_repository"
HOTEL_ID = "3c1d2e4f-5a6b-4c7d-8e9f-a0b1c2d3e4f5"
MISSING_ID = "3c1d2e4f-5a6b-4c7d-8e9f-a0b1c2d3e400"


def _hotel(**overrides) -> dict:
    hotel = {
        "id": HOTEL_ID,
        "name": "Harbour View",
        "location": "Tokyo, Japan",
        "description": None,
        "rating": Decimal("4.5"),
        "imageUrl": None,
        "timezone": "Asia/Tokyo",
    }
    hotel.update(overrides)
    return hotel


@pytest.fixture
def cur():
    with patch("hotelbook.api.routes.hotels.txn") as mock_txn:
        cursor = MagicMock()
        mock_txn.return_value.__enter__.return_value = cursor
        yield cursor


@pytest.fixture
def admin_client():
    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        id="admin-1", external_subject="sub-admin", email=None, name=None, role=ADMIN_ROLE
    )
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def guest_client():
    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        id="user-1", external_subject="sub-user", email=None, name=None
    )
    return TestClient(app, raise_server_exceptions=False)


class TestReadHotels:
    def test_list_is_public(self, cur):
        with patch(f"{REPO}.list_hotels", return_value=[_hotel()]):
            resp = TestClient(create_app()).get("/hotels")

        assert resp.status_code == 200
        assert resp.json()[0]["rating"] == 4.5
        assert resp.json()[0]["timezone"] == "Asia/Tokyo"

    def test_get_includes_rooms(self, cur):
        room = {"id": "r", "roomNumber": "101", "price": Decimal("99.00")}
        with patch(f"{REPO}.get_hotel", return_value=_hotel()), \
             patch(f"{ROOMS_REPO}.list_rooms", return_value=[room]) as list_rooms:
            resp = TestClient(create_app()).get(f"/hotels/{HOTEL_ID}")

        assert resp.status_code == 200
        assert resp.json()["rooms"] == [{"id": "r", "roomNumber": "101", "price": 99.0}]
        list_rooms.assert_called_once_with(cur, hotel_id=HOTEL_ID)

    def test_get_missing(self, cur):
        with patch(f"{REPO}.get_hotel", return_value=None), \
             patch(f"{ROOMS_REPO}.list_rooms") as list_rooms:
            resp = TestClient(create_app()).get(f"/hotels/{MISSING_ID}")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Hotel not found"
        list_rooms.assert_not_called()

    def test_malformed_id(self, cur):
        with patch(f"{REPO}.get_hotel") as get_hotel:
            resp = TestClient(create_app()).get("/hotels/hotel-1")

        assert resp.status_code == 422
        get_hotel.assert_not_called()


class TestCreateHotel:
    def test_requires_admin(self, cur, guest_client):
        resp = guest_client.post("/hotels", json={"name": "H", "location": "L"})
        assert resp.status_code == 403

    def test_explicit_timezone(self, cur, admin_client):
        with patch(f"{REPO}.insert_hotel", return_value=_hotel()) as insert_hotel:
            resp = admin_client.post(
                "/hotels",
                json={
                    "name": "Harbour View",
                    "location": "Somewhere",
                    "rating": 4.5,
                    "timezone": "Asia/Tokyo",
                },
            )

        assert resp.status_code == 201
        assert resp.json()["message"] == "Hotel created successfully"
        kwargs = insert_hotel.call_args.kwargs
        assert kwargs["timezone"] == "Asia/Tokyo"
        assert kwargs["rating"] == Decimal("4.5")

    @pytest.mark.parametrize(
        ("location", "expected"),
        [
            ("Denver, Colorado", "America/Denver"),
            ("Miami, Florida", "America/New_York"),
            ("Lisbon, Portugal", "UTC"),
        ],
    )
    def test_timezone_defaults_from_location(self, cur, admin_client, location, expected):
        with patch(f"{REPO}.insert_hotel", return_value=_hotel()) as insert_hotel:
            admin_client.post("/hotels", json={"name": "H", "location": location})

        assert insert_hotel.call_args.kwargs["timezone"] == expected
        assert insert_hotel.call_args.kwargs["rating"] == Decimal("0")

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "H", "location": "L", "timezone": "Mars/Olympus_Mons"},
            {"name": "", "location": "L"},
            {"name": "H", "location": "L", "rating": 6},
            {"name": "H"},
        ],
    )
    def test_invalid_body(self, cur, admin_client, body):
        with patch(f"{REPO}.insert_hotel") as insert_hotel:
            resp = admin_client.post("/hotels", json=body)

        assert resp.status_code == 422
        insert_hotel.assert_not_called()


class TestUpdateHotel:
    def test_partial_update(self, cur, admin_client):
        updated = _hotel(timezone="America/New_York")
        with patch(f"{REPO}.update_hotel", return_value=updated) as update_hotel:
            resp = admin_client.patch(
                f"/hotels/{HOTEL_ID}", json={"timezone": "America/New_York"}
            )

        assert resp.status_code == 200
        assert resp.json()["hotel"]["timezone"] == "America/New_York"
        update_hotel.assert_called_once_with(
            cur,
            HOTEL_ID,
            name=None,
            location=None,
            description=None,
            rating=None,
            image_url=None,
            timezone="America/New_York",
        )

    def test_unknown_timezone(self, cur, admin_client):
        with patch(f"{REPO}.update_hotel") as update_hotel:
            resp = admin_client.patch(f"/hotels/{HOTEL_ID}", json={"timezone": "Nowhere/City"})

        assert resp.status_code == 422
        update_hotel.assert_not_called()

    def test_missing(self, cur, admin_client):
        with patch(f"{REPO}.update_hotel", return_value=None):
            resp = admin_client.patch(f"/hotels/{MISSING_ID}", json={"name": "New"})

        assert resp.status_code == 404


class TestDeleteHotel:
    def test_requires_admin(self, cur, guest_client):
        assert guest_client.delete(f"/hotels/{HOTEL_ID}").status_code == 403

    def test_deleted(self, cur, admin_client):
        with patch(f"{REPO}.delete_hotel", return_value=True) as delete_hotel:
            resp = admin_client.delete(f"/hotels/{HOTEL_ID}")

        assert resp.status_code == 200
        assert resp.json() == {"message": "Hotel deleted successfully"}
        delete_hotel.assert_called_once_with(cur, HOTEL_ID)

    def test_missing(self, cur, admin_client):
        with patch(f"{REPO}.delete_hotel", return_value=False):
            resp = admin_client.delete(f"/hotels/{MISSING_ID}")

        assert resp.status_code == 404

    def test_rooms_with_reservations(self, cur, admin_client):
        with patch(f"{REPO}.delete_hotel", side_effect=pg_errors.ForeignKeyViolation()):
            resp = admin_client.delete(f"/hotels/{HOTEL_ID}")

        assert resp.status_code == 409
