#!/usr/bin/env python3
"""Validate local room allocation environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, timedelta
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.database import SQLiteDatabase
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.allocation_service import ReservationAllocator
from booking_core.services.availability_service import AvailabilityIndex
from booking_core.services.notification_service import (
    BackgroundNotifier,
    LoggingNotificationDispatcher,
)
from booking_core.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="booking-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("requests", "requests"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    notifier = None
    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "validation.db",
            notification_channel="log",
        )
        database = SQLiteDatabase(validation_settings)
        catalog = RoomCatalogRepository(database=database, settings=validation_settings)
        ledger = ReservationLedger(database=database, settings=validation_settings)

        # CHECK 3: Schema and catalog seed
        try:
            catalog.initialize_schema()
            ledger.initialize_schema()
            catalog.seed_catalog()
            room_count = sum(
                len(catalog.list_active_rooms(category.name))
                for category in catalog.list_categories()
            )
            if room_count == 0:
                raise RuntimeError("catalog seeded without active rooms")
            ok, line = _print_result("Catalog and ledger schema", True, f": {room_count} active rooms")
        except Exception as exc:
            ok, line = _print_result("Catalog and ledger schema", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Allocation round-trip with overlap guard
        notifier = BackgroundNotifier(
            dispatcher=LoggingNotificationDispatcher(),
            settings=validation_settings,
        )
        try:
            allocator = ReservationAllocator(
                availability=AvailabilityIndex(
                    catalog=catalog,
                    ledger=ledger,
                    settings=validation_settings,
                ),
                ledger=ledger,
                notifier=notifier,
                settings=validation_settings,
            )
            category = catalog.list_categories()[0].name
            check_in = date.today() + timedelta(days=7)
            first = allocator.allocate("validation-guest", category, check_in, check_in + timedelta(days=2), 1)
            if not first.succeeded:
                raise RuntimeError("first allocation was rejected")
            rooms = catalog.list_active_rooms(category)
            taken = ledger.list_confirmed_overlapping(
                [room.room_number for room in rooms],
                check_in,
                check_in + timedelta(days=2),
            )
            if len({item.room_number for item in taken}) != len(taken):
                raise RuntimeError("overlapping confirmed reservations detected")
            ok, line = _print_result(
                "Allocation round-trip",
                True,
                f": room {first.reservation.room_number}",
            )
        except Exception as exc:
            ok, line = _print_result("Allocation round-trip", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        if notifier is not None:
            notifier.drain(timeout=5)
            notifier.shutdown()
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Room Allocation Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
