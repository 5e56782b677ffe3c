from __future__ import annotations

import sqlite3
import uuid
from dataclasses import replace
from datetime import date, timedelta

import pytest

from booking_core.domain.errors import InvalidTransitionError, LedgerUnavailableError
from booking_core.domain.models import CommitOutcome, Reservation, ReservationStatus
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.database import SQLiteDatabase
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.utils.config import get_settings


CHECK_IN = date.today() + timedelta(days=40)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, notification_channel="log")


def _build_stores(settings) -> tuple[RoomCatalogRepository, ReservationLedger]:
    database = SQLiteDatabase(settings)
    catalog = RoomCatalogRepository(database=database, settings=settings)
    ledger = ReservationLedger(database=database, settings=settings)
    catalog.initialize_schema()
    ledger.initialize_schema()
    catalog.seed_catalog()
    return catalog, ledger


def _payload(guest_id: str, check_in: date, check_out: date) -> Reservation:
    return Reservation(
        reservation_id=str(uuid.uuid4()),
        guest_id=guest_id,
        room_number=None,
        category="Deluxe Suite",
        check_in=check_in,
        check_out=check_out,
        guests=2,
        total_price=8350,
        status=ReservationStatus.PENDING,
    )


def test_insert_commits_confirmed_reservation(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_insert.db"))
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=2))

    outcome = ledger.insert_if_no_overlap(101, payload.check_in, payload.check_out, payload)

    assert outcome == CommitOutcome.COMMITTED
    stored = ledger.get_reservation(payload.reservation_id)
    assert stored is not None
    assert stored.status == ReservationStatus.CONFIRMED
    assert stored.room_number == 101
    assert stored.nights == 2
    assert stored.total_price == 8350


def test_overlapping_insert_on_same_room_conflicts(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_conflict.db"))
    first = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=5))
    second = _payload("guest-b", CHECK_IN + timedelta(days=2), CHECK_IN + timedelta(days=4))

    assert ledger.insert_if_no_overlap(101, first.check_in, first.check_out, first) == CommitOutcome.COMMITTED
    assert ledger.insert_if_no_overlap(101, second.check_in, second.check_out, second) == CommitOutcome.CONFLICT
    assert ledger.get_reservation(second.reservation_id) is None
    assert ledger.count_reservations() == 1


def test_adjacent_insert_on_same_room_commits(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_adjacent.db"))
    first = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=5))
    second = _payload("guest-b", CHECK_IN + timedelta(days=5), CHECK_IN + timedelta(days=7))

    ledger.insert_if_no_overlap(101, first.check_in, first.check_out, first)

    assert ledger.insert_if_no_overlap(101, second.check_in, second.check_out, second) == CommitOutcome.COMMITTED


def test_transition_status_is_compare_and_set(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_transition.db"))
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=1))
    ledger.insert_if_no_overlap(102, payload.check_in, payload.check_out, payload)

    first = ledger.transition_status(
        payload.reservation_id,
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    )
    second = ledger.transition_status(
        payload.reservation_id,
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    )

    assert first == CommitOutcome.COMMITTED
    assert second == CommitOutcome.CONFLICT
    stored = ledger.get_reservation(payload.reservation_id)
    assert stored.status == ReservationStatus.CANCELLED
    assert stored.cancelled_at is not None


def test_cancelled_reservation_cannot_be_resurrected(tmp_path):
    settings = _build_test_settings(tmp_path, "ledger_terminal.db")
    _, ledger = _build_stores(settings)
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=1))
    ledger.insert_if_no_overlap(102, payload.check_in, payload.check_out, payload)
    ledger.transition_status(payload.reservation_id, ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED)

    with pytest.raises(InvalidTransitionError):
        ledger.transition_status(
            payload.reservation_id,
            ReservationStatus.CANCELLED,
            ReservationStatus.CONFIRMED,
        )

    with sqlite3.connect(settings.database_path) as conn:
        with pytest.raises(sqlite3.IntegrityError, match="terminal_status"):
            conn.execute(
                "UPDATE Reservations SET status = 'CONFIRMED' WHERE id = ?;",
                (payload.reservation_id,),
            )


def test_triggers_reject_writes_that_bypass_the_ledger(tmp_path):
    settings = _build_test_settings(tmp_path, "ledger_triggers.db")
    _, ledger = _build_stores(settings)
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=3))
    ledger.insert_if_no_overlap(103, payload.check_in, payload.check_out, payload)

    with sqlite3.connect(settings.database_path) as conn:
        with pytest.raises(sqlite3.IntegrityError, match="room_overlap"):
            conn.execute(
                """
                INSERT INTO Reservations (
                    id, guest_id, room_number, category, check_in, check_out,
                    nights, guests, total_price, status, created_at
                )
                VALUES (?, 'intruder', 103, 'Deluxe Suite', ?, ?, 1, 1, 100, 'CONFIRMED', ?);
                """,
                (
                    str(uuid.uuid4()),
                    (CHECK_IN + timedelta(days=1)).isoformat(),
                    (CHECK_IN + timedelta(days=2)).isoformat(),
                    CHECK_IN.isoformat(),
                ),
            )
        with pytest.raises(sqlite3.IntegrityError, match="immutable_reservation"):
            conn.execute(
                "UPDATE Reservations SET room_number = 101 WHERE id = ?;",
                (payload.reservation_id,),
            )


def test_list_reservations_filters_by_guest_and_status(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_listing.db"))
    mine = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=1))
    theirs = _payload("guest-b", CHECK_IN, CHECK_IN + timedelta(days=1))
    ledger.insert_if_no_overlap(101, mine.check_in, mine.check_out, mine)
    ledger.insert_if_no_overlap(102, theirs.check_in, theirs.check_out, theirs)
    ledger.transition_status(theirs.reservation_id, ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED)

    assert [item.reservation_id for item in ledger.list_reservations(guest_id="guest-a")] == [
        mine.reservation_id
    ]
    cancelled = ledger.list_reservations(status=ReservationStatus.CANCELLED)
    assert [item.reservation_id for item in cancelled] == [theirs.reservation_id]
    assert len(ledger.list_reservations()) == 2


def test_unreachable_store_raises_ledger_unavailable(tmp_path):
    blocked_path = tmp_path / "not_a_database"
    blocked_path.mkdir()
    settings = replace(get_settings(), database_path=blocked_path)
    ledger = ReservationLedger(settings=settings)

    with pytest.raises(LedgerUnavailableError):
        ledger.get_reservation("missing")


def test_insert_on_retired_room_conflicts(tmp_path):
    catalog, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_retired.db"))
    catalog.set_room_active(101, False)
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=2))

    outcome = ledger.insert_if_no_overlap(101, payload.check_in, payload.check_out, payload)

    assert outcome == CommitOutcome.CONFLICT
    assert ledger.count_reservations() == 0


def test_insert_on_room_of_another_category_conflicts(tmp_path):
    _, ledger = _build_stores(_build_test_settings(tmp_path, "ledger_wrong_category.db"))
    payload = _payload("guest-a", CHECK_IN, CHECK_IN + timedelta(days=2))

    outcome = ledger.insert_if_no_overlap(601, payload.check_in, payload.check_out, payload)

    assert outcome == CommitOutcome.CONFLICT
    assert ledger.get_reservation(payload.reservation_id) is None
