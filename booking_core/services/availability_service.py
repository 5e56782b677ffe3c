"""Availability lookups over the room catalog and confirmed reservations."""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, Optional

from booking_core.domain.constraints import validate_stay
from booking_core.domain.errors import BookingValidationError
from booking_core.domain.models import CategoryAvailability, Room, RoomCategory
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


class AvailabilityIndex:
    """Answers which rooms of a category are free for a date range.

    Results are advisory. The ledger re-checks overlap when a reservation is
    committed, so a room returned here may already be gone by then.
    Rooms are scanned in ascending room-number order.
    """

    def __init__(
        self,
        catalog: Optional[RoomCatalogRepository] = None,
        ledger: Optional[ReservationLedger] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._catalog = catalog or RoomCatalogRepository(settings=self._settings)
        self._ledger = ledger or ReservationLedger(settings=self._settings)
        self._clock = clock or date.today

    def today(self) -> date:
        return self._clock()

    def resolve_category(self, category: str) -> RoomCategory:
        resolved = self._catalog.get_category(category)
        if resolved is None:
            raise BookingValidationError(f"Unknown room category: {category!r}")
        return resolved

    def validate_query(self, category: str, check_in: date, check_out: date) -> RoomCategory:
        validate_stay(check_in, check_out, today=self.today())
        return self.resolve_category(category)

    def _free_rooms(
        self,
        rooms: list[Room],
        check_in: date,
        check_out: date,
        excluded_rooms: Iterable[int],
    ) -> list[int]:
        excluded = set(excluded_rooms)
        candidates = [room.room_number for room in rooms if room.room_number not in excluded]
        occupied = {
            reservation.room_number
            for reservation in self._ledger.list_confirmed_overlapping(
                candidates,
                check_in,
                check_out,
            )
        }
        return [room_number for room_number in candidates if room_number not in occupied]

    def list_free_rooms(
        self,
        category: str,
        check_in: date,
        check_out: date,
        excluded_rooms: Iterable[int] = (),
    ) -> list[int]:
        self.validate_query(category, check_in, check_out)
        rooms = self._catalog.list_active_rooms(category)
        return self._free_rooms(rooms, check_in, check_out, excluded_rooms)

    def find_candidate_room(
        self,
        category: str,
        check_in: date,
        check_out: date,
        excluded_rooms: Iterable[int] = (),
    ) -> Optional[int]:
        """First free active room of the category, or None."""
        free_rooms = self.list_free_rooms(category, check_in, check_out, excluded_rooms)
        if not free_rooms:
            logger.info(
                "No candidate room | category=%s | check_in=%s | check_out=%s",
                category,
                check_in,
                check_out,
            )
            return None
        return free_rooms[0]

    def summarize_availability(
        self,
        check_in: date,
        check_out: date,
    ) -> list[CategoryAvailability]:
        validate_stay(check_in, check_out, today=self.today())
        summary: list[CategoryAvailability] = []
        for category in self._catalog.list_categories():
            rooms = self._catalog.list_active_rooms(category.name)
            free_rooms = self._free_rooms(rooms, check_in, check_out, ())
            summary.append(
                CategoryAvailability(
                    category=category.name,
                    nightly_rate=category.nightly_rate,
                    free_rooms=len(free_rooms),
                )
            )
        return summary
