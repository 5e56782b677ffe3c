"""SQLite connection factory shared by the catalog and the ledger."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from booking_core.utils.config import Settings, get_settings


class SQLiteDatabase:
    """Owns the database file and hands out short-lived connections.

    Connections are opened per operation so concurrent request threads never
    share one. Writers go through `transaction()`, which takes the SQLite
    write lock up front with BEGIN IMMEDIATE.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.ledger_busy_timeout_seconds,
            isolation_level=None,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            yield connection
        finally:
            connection.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            connection.execute("BEGIN IMMEDIATE;")
            try:
                yield connection
            except BaseException:
                if connection.in_transaction:
                    connection.execute("ROLLBACK;")
                raise
            connection.execute("COMMIT;")
        finally:
            connection.close()

    def enable_write_ahead_log(self) -> None:
        """WAL lets availability reads proceed while a commit holds the lock."""
        with self.reader() as conn:
            conn.execute("PRAGMA journal_mode = WAL;")
