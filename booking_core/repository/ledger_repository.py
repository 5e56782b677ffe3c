"""Reservation ledger: the authoritative store of reservations.

The ledger is mutated through exactly two operations:

* `insert_if_no_overlap` creates a CONFIRMED reservation only when no other
  CONFIRMED reservation holds the same room on an overlapping night;
* `transition_status` moves a reservation between statuses only when its
  current status still matches the caller's expectation.

Both run inside a BEGIN IMMEDIATE transaction. Database triggers repeat the
overlap and terminal-status rules so a write that bypasses this class is
rejected as well.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from booking_core.domain.errors import InvalidTransitionError, LedgerUnavailableError
from booking_core.domain.models import (
    ALLOWED_TRANSITIONS,
    CommitOutcome,
    Reservation,
    ReservationStatus,
)
from booking_core.repository.database import SQLiteDatabase
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)

OVERLAP_ABORT_MESSAGE = "room_overlap"
TERMINAL_ABORT_MESSAGE = "terminal_status"
IMMUTABLE_ABORT_MESSAGE = "immutable_reservation"

_RESERVATION_COLUMNS = """
    id,
    guest_id,
    room_number,
    category,
    check_in,
    check_out,
    guests,
    total_price,
    status,
    created_at,
    cancelled_at
"""


class ReservationLedger:
    """Encapsulates reservation persistence and its conditional writes."""

    def __init__(
        self,
        database: Optional[SQLiteDatabase] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._database = database or SQLiteDatabase(self._settings)

    def initialize_schema(self) -> None:
        """Create reservation table, indexes and guard triggers."""
        try:
            self._database.enable_write_ahead_log()
            with self._database.transaction() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Reservations (
                        id TEXT PRIMARY KEY,
                        guest_id TEXT NOT NULL,
                        room_number INTEGER,
                        category TEXT NOT NULL,
                        check_in TEXT NOT NULL,
                        check_out TEXT NOT NULL,
                        nights INTEGER NOT NULL CHECK (nights > 0),
                        guests INTEGER NOT NULL CHECK (guests >= 1),
                        total_price INTEGER NOT NULL CHECK (total_price >= 0),
                        status TEXT NOT NULL
                            CHECK (status IN ('PENDING', 'CONFIRMED', 'CANCELLED')),
                        created_at TEXT NOT NULL,
                        cancelled_at TEXT,
                        CHECK (check_in < check_out),
                        CHECK (status != 'CONFIRMED' OR room_number IS NOT NULL),
                        FOREIGN KEY (room_number) REFERENCES Rooms(room_number),
                        FOREIGN KEY (category) REFERENCES RoomCategories(name)
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_reservations_room_status_dates
                    ON Reservations(room_number, status, check_in, check_out);
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_reservations_guest
                    ON Reservations(guest_id, check_in);
                    """
                )
                conn.execute(
                    f"""
                    CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_insert
                    BEFORE INSERT ON Reservations
                    WHEN NEW.status = 'CONFIRMED'
                    BEGIN
                        SELECT RAISE(ABORT, '{OVERLAP_ABORT_MESSAGE}')
                        WHERE EXISTS (
                            SELECT 1 FROM Reservations
                            WHERE room_number = NEW.room_number
                              AND status = 'CONFIRMED'
                              AND check_in < NEW.check_out
                              AND check_out > NEW.check_in
                        );
                    END;
                    """
                )
                conn.execute(
                    f"""
                    CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_confirm
                    BEFORE UPDATE OF status ON Reservations
                    WHEN NEW.status = 'CONFIRMED' AND OLD.status != 'CONFIRMED'
                    BEGIN
                        SELECT RAISE(ABORT, '{OVERLAP_ABORT_MESSAGE}')
                        WHERE EXISTS (
                            SELECT 1 FROM Reservations
                            WHERE id != NEW.id
                              AND room_number = NEW.room_number
                              AND status = 'CONFIRMED'
                              AND check_in < NEW.check_out
                              AND check_out > NEW.check_in
                        );
                    END;
                    """
                )
                conn.execute(
                    f"""
                    CREATE TRIGGER IF NOT EXISTS trg_reservations_terminal_status
                    BEFORE UPDATE OF status ON Reservations
                    WHEN OLD.status = 'CANCELLED' AND NEW.status != 'CANCELLED'
                    BEGIN
                        SELECT RAISE(ABORT, '{TERMINAL_ABORT_MESSAGE}');
                    END;
                    """
                )
                conn.execute(
                    f"""
                    CREATE TRIGGER IF NOT EXISTS trg_reservations_immutable_fields
                    BEFORE UPDATE OF guest_id, room_number, check_in, check_out, total_price
                    ON Reservations
                    WHEN OLD.status != 'PENDING'
                    BEGIN
                        SELECT RAISE(ABORT, '{IMMUTABLE_ABORT_MESSAGE}');
                    END;
                    """
                )
            logger.info("Ledger schema initialized at %s", self._database.database_path)
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Ledger initialization failed: {exc}") from exc

    def insert_if_no_overlap(
        self,
        room_number: int,
        check_in: date,
        check_out: date,
        payload: Reservation,
    ) -> CommitOutcome:
        """Atomically confirm `payload` on `room_number`.

        CONFLICT when the room is taken for the range, or is no longer an
        active room of `payload.category`.
        """
        try:
            with self._database.transaction() as conn:
                bookable = conn.execute(
                    """
                    SELECT 1
                    FROM Rooms
                    WHERE room_number = ?
                      AND category = ?
                      AND active = 1;
                    """,
                    (room_number, payload.category),
                ).fetchone()
                if bookable is None:
                    logger.info(
                        "Conditional insert rejected | room=%s | category=%s | reason=room_not_bookable",
                        room_number,
                        payload.category,
                    )
                    return CommitOutcome.CONFLICT

                conflicting = conn.execute(
                    """
                    SELECT id
                    FROM Reservations
                    WHERE room_number = ?
                      AND status = 'CONFIRMED'
                      AND check_in < ?
                      AND check_out > ?
                    LIMIT 1;
                    """,
                    (room_number, check_out.isoformat(), check_in.isoformat()),
                ).fetchone()
                if conflicting is not None:
                    logger.info(
                        "Conditional insert rejected | room=%s | conflicting_reservation_id=%s",
                        room_number,
                        conflicting["id"],
                    )
                    return CommitOutcome.CONFLICT

                conn.execute(
                    """
                    INSERT INTO Reservations (
                        id,
                        guest_id,
                        room_number,
                        category,
                        check_in,
                        check_out,
                        nights,
                        guests,
                        total_price,
                        status,
                        created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'CONFIRMED', ?);
                    """,
                    (
                        payload.reservation_id,
                        payload.guest_id,
                        room_number,
                        payload.category,
                        check_in.isoformat(),
                        check_out.isoformat(),
                        (check_out - check_in).days,
                        payload.guests,
                        payload.total_price,
                        _format_timestamp(payload.created_at or _utc_now()),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if OVERLAP_ABORT_MESSAGE in str(exc):
                logger.info("Overlap trigger rejected insert | room=%s", room_number)
                return CommitOutcome.CONFLICT
            raise LedgerUnavailableError(f"Reservation insert rejected: {exc}") from exc
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Reservation insert failed: {exc}") from exc
        return CommitOutcome.COMMITTED

    def transition_status(
        self,
        reservation_id: str,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
    ) -> CommitOutcome:
        """Compare-and-set the status; CONFLICT when the current status differs."""
        if to_status not in ALLOWED_TRANSITIONS[from_status]:
            raise InvalidTransitionError(
                f"Transition {from_status.value} -> {to_status.value} is not allowed"
            )
        cancelled_at = (
            _format_timestamp(_utc_now())
            if to_status == ReservationStatus.CANCELLED
            else None
        )
        try:
            with self._database.transaction() as conn:
                cursor = conn.execute(
                    """
                    UPDATE Reservations
                    SET status = ?,
                        cancelled_at = COALESCE(?, cancelled_at)
                    WHERE id = ? AND status = ?;
                    """,
                    (to_status.value, cancelled_at, reservation_id, from_status.value),
                )
                updated = cursor.rowcount == 1
        except sqlite3.IntegrityError as exc:
            message = str(exc)
            if OVERLAP_ABORT_MESSAGE in message or TERMINAL_ABORT_MESSAGE in message:
                return CommitOutcome.CONFLICT
            raise LedgerUnavailableError(f"Status transition rejected: {exc}") from exc
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Status transition failed: {exc}") from exc

        return CommitOutcome.COMMITTED if updated else CommitOutcome.CONFLICT

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        try:
            with self._database.reader() as conn:
                row = conn.execute(
                    f"SELECT {_RESERVATION_COLUMNS} FROM Reservations WHERE id = ?;",
                    (reservation_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Reservation read failed: {exc}") from exc
        if row is None:
            return None
        return _row_to_reservation(row)

    def list_confirmed_overlapping(
        self,
        room_numbers: Sequence[int],
        check_in: date,
        check_out: date,
    ) -> list[Reservation]:
        """Confirmed reservations on the given rooms that overlap the range."""
        if not room_numbers:
            return []
        placeholders = ",".join("?" for _ in room_numbers)
        try:
            with self._database.reader() as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_RESERVATION_COLUMNS}
                    FROM Reservations
                    WHERE room_number IN ({placeholders})
                      AND status = 'CONFIRMED'
                      AND check_in < ?
                      AND check_out > ?
                    ORDER BY room_number ASC, check_in ASC;
                    """,
                    (*room_numbers, check_out.isoformat(), check_in.isoformat()),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Availability read failed: {exc}") from exc
        return [_row_to_reservation(row) for row in rows]

    def list_reservations(
        self,
        guest_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
    ) -> list[Reservation]:
        conditions: list[str] = []
        params: list[str] = []
        if guest_id is not None:
            conditions.append("guest_id = ?")
            params.append(guest_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        try:
            with self._database.reader() as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_RESERVATION_COLUMNS}
                    FROM Reservations
                    {where}
                    ORDER BY check_in ASC, created_at ASC;
                    """,
                    tuple(params),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Reservation listing failed: {exc}") from exc
        return [_row_to_reservation(row) for row in rows]

    def count_reservations(self, status: Optional[ReservationStatus] = None) -> int:
        try:
            with self._database.reader() as conn:
                if status is None:
                    row = conn.execute("SELECT COUNT(*) AS count FROM Reservations;").fetchone()
                else:
                    row = conn.execute(
                        "SELECT COUNT(*) AS count FROM Reservations WHERE status = ?;",
                        (status.value,),
                    ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Reservation count failed: {exc}") from exc
        return int(row["count"])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def _row_to_reservation(row: sqlite3.Row) -> Reservation:
    room_number = row["room_number"]
    return Reservation(
        reservation_id=str(row["id"]),
        guest_id=str(row["guest_id"]),
        room_number=int(room_number) if room_number is not None else None,
        category=str(row["category"]),
        check_in=date.fromisoformat(str(row["check_in"])),
        check_out=date.fromisoformat(str(row["check_out"])),
        guests=int(row["guests"]),
        total_price=int(row["total_price"]),
        status=ReservationStatus(str(row["status"])),
        created_at=_parse_timestamp(row["created_at"]),
        cancelled_at=_parse_timestamp(row["cancelled_at"]),
    )
