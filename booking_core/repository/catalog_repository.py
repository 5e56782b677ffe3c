"""Room catalog persistence: categories and physical rooms."""

from __future__ import annotations

import sqlite3
from typing import Optional

from booking_core.domain.errors import BookingValidationError, LedgerUnavailableError
from booking_core.domain.models import Room, RoomCategory
from booking_core.repository.database import SQLiteDatabase
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


class RoomCatalogRepository:
    """Read-mostly access to the set of rooms and their categories."""

    def __init__(
        self,
        database: Optional[SQLiteDatabase] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._database = database or SQLiteDatabase(self._settings)

    def initialize_schema(self) -> None:
        """Create catalog tables before the ledger references them."""
        try:
            with self._database.transaction() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RoomCategories (
                        name TEXT PRIMARY KEY,
                        nightly_rate INTEGER NOT NULL CHECK (nightly_rate >= 0),
                        max_guests INTEGER NOT NULL CHECK (max_guests > 0),
                        description TEXT NOT NULL DEFAULT ''
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        room_number INTEGER PRIMARY KEY,
                        category TEXT NOT NULL,
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0, 1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (category) REFERENCES RoomCategories(name)
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_rooms_category_active
                    ON Rooms(category, active, room_number);
                    """
                )
            logger.info("Catalog schema initialized at %s", self._database.database_path)
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog initialization failed: {exc}") from exc

    def seed_catalog(self) -> None:
        """Seed configured categories and rooms only when the catalog is empty."""
        try:
            with self._database.transaction() as conn:
                row = conn.execute("SELECT COUNT(*) AS count FROM RoomCategories;").fetchone()
                if int(row["count"]) > 0:
                    logger.info("Catalog already provisioned; skipping seed")
                    return

                conn.executemany(
                    """
                    INSERT INTO RoomCategories (name, nightly_rate, max_guests, description)
                    VALUES (?, ?, ?, ?);
                    """,
                    self._settings.catalog_seed_categories,
                )
                conn.executemany(
                    """
                    INSERT INTO Rooms (room_number, category, active)
                    VALUES (?, ?, ?);
                    """,
                    [
                        (room_number, category, 1 if active else 0)
                        for room_number, category, active in self._settings.catalog_seed_rooms
                    ],
                )
            logger.info(
                "Catalog seed completed | categories=%s | rooms=%s",
                len(self._settings.catalog_seed_categories),
                len(self._settings.catalog_seed_rooms),
            )
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog seeding failed: {exc}") from exc

    def add_category(self, category: RoomCategory) -> None:
        try:
            with self._database.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO RoomCategories (name, nightly_rate, max_guests, description)
                    VALUES (?, ?, ?, ?);
                    """,
                    (
                        category.name,
                        category.nightly_rate,
                        category.max_guests,
                        category.description,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise BookingValidationError(f"Category {category.name!r} already exists") from exc
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Category provisioning failed: {exc}") from exc

    def add_room(self, room: Room) -> None:
        """Provision a physical room; room numbers are never reused."""
        try:
            with self._database.transaction() as conn:
                conn.execute(
                    "INSERT INTO Rooms (room_number, category, active) VALUES (?, ?, ?);",
                    (room.room_number, room.category, 1 if room.active else 0),
                )
        except sqlite3.IntegrityError as exc:
            raise BookingValidationError(
                f"Room {room.room_number} could not be provisioned: {exc}"
            ) from exc
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Room provisioning failed: {exc}") from exc

    def set_room_active(self, room_number: int, active: bool) -> bool:
        """Retire or reinstate a room. Returns False for unknown rooms."""
        try:
            with self._database.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE Rooms SET active = ? WHERE room_number = ?;",
                    (1 if active else 0, room_number),
                )
                updated = cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Room update failed: {exc}") from exc
        if updated:
            logger.info("Room activity changed | room=%s | active=%s", room_number, active)
        return updated

    def get_category(self, name: str) -> Optional[RoomCategory]:
        try:
            with self._database.reader() as conn:
                row = conn.execute(
                    """
                    SELECT name, nightly_rate, max_guests, description
                    FROM RoomCategories
                    WHERE name = ?;
                    """,
                    (name,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog read failed: {exc}") from exc
        if row is None:
            return None
        return _row_to_category(row)

    def list_categories(self) -> list[RoomCategory]:
        try:
            with self._database.reader() as conn:
                rows = conn.execute(
                    """
                    SELECT name, nightly_rate, max_guests, description
                    FROM RoomCategories
                    ORDER BY nightly_rate ASC, name ASC;
                    """
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog read failed: {exc}") from exc
        return [_row_to_category(row) for row in rows]

    def get_room(self, room_number: int) -> Optional[Room]:
        try:
            with self._database.reader() as conn:
                row = conn.execute(
                    "SELECT room_number, category, active FROM Rooms WHERE room_number = ?;",
                    (room_number,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog read failed: {exc}") from exc
        if row is None:
            return None
        return _row_to_room(row)

    def list_active_rooms(self, category: str) -> list[Room]:
        """Active rooms of a category in ascending room-number order."""
        try:
            with self._database.reader() as conn:
                rows = conn.execute(
                    """
                    SELECT room_number, category, active
                    FROM Rooms
                    WHERE category = ? AND active = 1
                    ORDER BY room_number ASC;
                    """,
                    (category,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LedgerUnavailableError(f"Catalog read failed: {exc}") from exc
        return [_row_to_room(row) for row in rows]


def _row_to_category(row: sqlite3.Row) -> RoomCategory:
    return RoomCategory(
        name=str(row["name"]),
        nightly_rate=int(row["nightly_rate"]),
        max_guests=int(row["max_guests"]),
        description=str(row["description"]),
    )


def _row_to_room(row: sqlite3.Row) -> Room:
    return Room(
        room_number=int(row["room_number"]),
        category=str(row["category"]),
        active=bool(row["active"]),
    )
