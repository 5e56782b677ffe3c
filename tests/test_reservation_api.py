from __future__ import annotations

from dataclasses import replace
from datetime import date

from fastapi import FastAPI
from fastapi.testclient import TestClient

from booking_core.controllers.admin_controller import router as admin_router
from booking_core.controllers.catalog_controller import router as catalog_router
from booking_core.controllers.dependencies import register_error_handlers
from booking_core.controllers.reservation_controller import router as reservation_router
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.database import SQLiteDatabase
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.allocation_service import ReservationAllocator
from booking_core.services.auth_service import AuthService
from booking_core.services.availability_service import AvailabilityIndex
from booking_core.services.cancellation_service import CancellationHandler
from booking_core.services.notification_service import (
    BackgroundNotifier,
    LoggingNotificationDispatcher,
    NotificationKind,
)
from booking_core.utils.config import get_settings


TODAY = date(2031, 6, 1)
ADMIN_TOKEN = "secret-admin-token"


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(
        base,
        database_path=tmp_path / filename,
        admin_token=ADMIN_TOKEN,
        notification_channel="log",
    )


def _build_test_app(tmp_path, filename: str) -> tuple[FastAPI, BackgroundNotifier, LoggingNotificationDispatcher]:
    settings = _build_test_settings(tmp_path, filename)
    database = SQLiteDatabase(settings)
    catalog = RoomCatalogRepository(database=database, settings=settings)
    ledger = ReservationLedger(database=database, settings=settings)
    catalog.initialize_schema()
    ledger.initialize_schema()
    catalog.seed_catalog()

    dispatcher = LoggingNotificationDispatcher()
    notifier = BackgroundNotifier(dispatcher=dispatcher, settings=settings)
    availability_index = AvailabilityIndex(
        catalog=catalog,
        ledger=ledger,
        settings=settings,
        clock=lambda: TODAY,
    )
    allocator = ReservationAllocator(
        availability=availability_index,
        ledger=ledger,
        notifier=notifier,
        settings=settings,
    )

    app = FastAPI()
    app.include_router(catalog_router)
    app.include_router(reservation_router)
    app.include_router(admin_router)
    register_error_handlers(app)
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.ledger = ledger
    app.state.availability_index = availability_index
    app.state.allocator = allocator
    app.state.cancellation_handler = CancellationHandler(ledger=ledger, notifier=notifier, settings=settings)
    app.state.auth_service = AuthService(settings=settings)
    return app, notifier, dispatcher


def _booking(category: str = "Deluxe Suite", check_in: str = "2031-07-10", check_out: str = "2031-07-13", guests: int = 2):
    return {"category": category, "check_in": check_in, "check_out": check_out, "guests": guests}


def _admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post("/login", json={"admin_token": ADMIN_TOKEN})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_booking_lifecycle_over_http(tmp_path):
    app, notifier, dispatcher = _build_test_app(tmp_path, "api_lifecycle.db")
    client = TestClient(app)
    guest = {"X-Guest-Id": "guest-a"}

    assert client.get("/health").json() == {"status": "ok"}

    categories = client.get("/categories").json()["categories"]
    assert categories[0] == {
        "name": "Deluxe Suite",
        "nightly_rate": 3500,
        "max_guests": 3,
        "description": "Panoramic views with a king bed",
    }

    created = client.post("/reservations", json=_booking(), headers=guest)
    assert created.status_code == 201
    body = created.json()
    assert body["room_number"] == 101
    assert body["status"] == "CONFIRMED"
    assert body["nights"] == 3
    assert body["total_price"] == 3500 * 3 + 500 * 2 + 350
    assert body["reference"] == body["reservation_id"][:8].upper()
    reservation_id = body["reservation_id"]

    availability = client.get("/availability", params={"check_in": "2031-07-11", "check_out": "2031-07-12"})
    assert availability.status_code == 200
    summary = {item["category"]: item["free_rooms"] for item in availability.json()["categories"]}
    assert summary["Deluxe Suite"] == 2

    fetched = client.get(f"/reservations/{reservation_id}", headers=guest)
    assert fetched.status_code == 200
    assert fetched.json()["room_number"] == 101

    mine = client.get("/reservations", headers=guest).json()["reservations"]
    assert [item["reservation_id"] for item in mine] == [reservation_id]

    cancelled = client.post(f"/reservations/{reservation_id}/cancel", headers=guest)
    assert cancelled.status_code == 200
    assert cancelled.json() == {
        "ack": True,
        "reservation_id": reservation_id,
        "status": "CANCELLED",
        "already_cancelled": False,
    }

    repeated = client.post(f"/reservations/{reservation_id}/cancel", headers=guest)
    assert repeated.status_code == 200
    assert repeated.json()["already_cancelled"] is True

    notifier.drain(timeout=5)
    assert [kind for kind, _ in dispatcher.sent] == [
        NotificationKind.CONFIRMATION,
        NotificationKind.CANCELLATION,
    ]


def test_booking_errors_map_to_status_codes(tmp_path):
    app, _, _ = _build_test_app(tmp_path, "api_errors.db")
    client = TestClient(app)
    guest = {"X-Guest-Id": "guest-a"}

    assert client.post("/reservations", json=_booking()).status_code == 401

    inverted = client.post(
        "/reservations",
        json=_booking(check_in="2031-07-13", check_out="2031-07-10"),
        headers=guest,
    )
    assert inverted.status_code == 400
    assert inverted.json()["error_kind"] == "ValidationError"
    assert set(inverted.json()) == {"error_kind", "message"}

    malformed = client.post("/reservations", json={"category": "Deluxe Suite"}, headers=guest)
    assert malformed.status_code == 422
    assert "detail" in malformed.json()

    unknown = client.post("/reservations", json=_booking(category="Penthouse"), headers=guest)
    assert unknown.status_code == 400

    too_many = client.post("/reservations", json=_booking(guests=8), headers=guest)
    assert too_many.status_code == 400

    for _ in range(3):
        assert client.post("/reservations", json=_booking(), headers=guest).status_code == 201
    full = client.post("/reservations", json=_booking(), headers=guest)
    assert full.status_code == 409
    assert full.json()["error_kind"] == "NoAvailability"


def test_cancel_and_read_are_owner_scoped(tmp_path):
    app, _, _ = _build_test_app(tmp_path, "api_ownership.db")
    client = TestClient(app)
    created = client.post("/reservations", json=_booking(), headers={"X-Guest-Id": "guest-a"})
    reservation_id = created.json()["reservation_id"]
    stranger = {"X-Guest-Id": "guest-b"}

    assert client.get(f"/reservations/{reservation_id}", headers=stranger).status_code == 403
    anonymous = client.get(f"/reservations/{reservation_id}")
    assert anonymous.status_code == 401
    assert anonymous.json()["error_kind"] == "Unauthenticated"
    forbidden = client.post(f"/reservations/{reservation_id}/cancel", headers=stranger)
    assert forbidden.status_code == 403
    assert forbidden.json()["error_kind"] == "Forbidden"

    assert client.post(f"/reservations/{reservation_id}/cancel").status_code == 401
    missing = client.post("/reservations/unknown-id/cancel", headers=stranger)
    assert missing.status_code == 404
    assert client.get("/reservations/unknown-id", headers=stranger).status_code == 404


def test_admin_oversight_routes(tmp_path):
    app, _, _ = _build_test_app(tmp_path, "api_admin.db")
    client = TestClient(app)
    first = client.post("/reservations", json=_booking(), headers={"X-Guest-Id": "guest-a"}).json()
    client.post("/reservations", json=_booking(), headers={"X-Guest-Id": "guest-b"})

    assert client.get("/admin/reservations").status_code == 401
    assert client.post("/login", json={"admin_token": "wrong"}).status_code == 401

    headers = _admin_headers(client)
    assert client.get(f"/reservations/{first['reservation_id']}", headers=headers).status_code == 200

    cancelled = client.post(f"/reservations/{first['reservation_id']}/cancel", headers=headers)
    assert cancelled.status_code == 200

    everything = client.get("/admin/reservations", headers=headers).json()["reservations"]
    assert len(everything) == 2
    only_cancelled = client.get(
        "/admin/reservations",
        params={"status": "CANCELLED"},
        headers=headers,
    ).json()["reservations"]
    assert [item["reservation_id"] for item in only_cancelled] == [first["reservation_id"]]

    retired = client.put("/admin/rooms/101", json={"active": False}, headers=headers)
    assert retired.status_code == 200
    assert retired.json() == {"room_number": 101, "active": False}
    assert client.put("/admin/rooms/999", json={"active": False}, headers=headers).status_code == 404

    rebooked = client.post("/reservations", json=_booking(), headers={"X-Guest-Id": "guest-c"})
    assert rebooked.json()["room_number"] == 103


def test_ledger_outage_returns_service_unavailable(tmp_path):
    app, _, _ = _build_test_app(tmp_path, "api_outage.db")
    blocked_path = tmp_path / "blocked"
    blocked_path.mkdir()
    app.state.ledger = ReservationLedger(settings=replace(app.state.settings, database_path=blocked_path))
    client = TestClient(app)

    response = client.get("/reservations", headers={"X-Guest-Id": "guest-a"})

    assert response.status_code == 503
    assert response.json()["error_kind"] == "LedgerUnavailable"
