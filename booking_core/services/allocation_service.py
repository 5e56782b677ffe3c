"""Room allocation: check-then-commit with bounded conflict retry."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional

from booking_core.domain.constraints import (
    AllocationConfig,
    validate_allocation_config,
    validate_guest_count,
    validate_guest_id,
)
from booking_core.domain.models import (
    AllocationResult,
    CommitOutcome,
    Rejection,
    RejectionReason,
    Reservation,
    ReservationStatus,
)
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.availability_service import AvailabilityIndex
from booking_core.services.notification_service import BackgroundNotifier, NotificationKind
from booking_core.services.pricing_service import PricingCalculator
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


class ReservationAllocator:
    """Turns a booking request into one confirmed reservation or a rejection.

    Each attempt asks the availability index for a candidate room and tries
    the ledger's conditional insert on it. A conflicting commit excludes that
    room and triggers another attempt, up to `allocation_max_attempts`.
    Validation problems raise `BookingValidationError`; a missing room is a
    `NoAvailability` rejection; ledger outages raise `LedgerUnavailableError`.
    """

    def __init__(
        self,
        availability: Optional[AvailabilityIndex] = None,
        ledger: Optional[ReservationLedger] = None,
        pricing: Optional[PricingCalculator] = None,
        notifier: Optional[BackgroundNotifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._ledger = ledger or ReservationLedger(settings=self._settings)
        self._availability = availability or AvailabilityIndex(
            ledger=self._ledger,
            settings=self._settings,
        )
        self._pricing = pricing or PricingCalculator(settings=self._settings)
        self._notifier = notifier or BackgroundNotifier(settings=self._settings)
        self._config = AllocationConfig(max_attempts=self._settings.allocation_max_attempts)
        validate_allocation_config(self._config)

    def allocate(
        self,
        guest_id: str,
        category: str,
        check_in: date,
        check_out: date,
        guests: int,
    ) -> AllocationResult:
        validate_guest_id(guest_id)
        validate_guest_count(guests)
        room_category = self._availability.validate_query(category, check_in, check_out)
        validate_guest_count(guests, room_category.max_guests)

        nights = (check_out - check_in).days
        draft = Reservation(
            reservation_id=str(uuid.uuid4()),
            guest_id=guest_id,
            room_number=None,
            category=room_category.name,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            total_price=self._pricing.price(room_category, nights, guests),
            status=ReservationStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )

        excluded_rooms: list[int] = []
        for attempt in range(1, self._config.max_attempts + 1):
            room_number = self._availability.find_candidate_room(
                category,
                check_in,
                check_out,
                excluded_rooms=excluded_rooms,
            )
            if room_number is None:
                return self._reject(draft, attempt, "No rooms available for the requested dates")

            outcome = self._ledger.insert_if_no_overlap(room_number, check_in, check_out, draft)
            if outcome == CommitOutcome.COMMITTED:
                reservation = replace(
                    draft,
                    room_number=room_number,
                    status=ReservationStatus.CONFIRMED,
                )
                logger.info(
                    (
                        "Reservation confirmed | reservation_id=%s | guest_id=%s | room=%s | "
                        "check_in=%s | check_out=%s | total_price=%s | attempts=%s"
                    ),
                    reservation.reservation_id,
                    guest_id,
                    room_number,
                    check_in,
                    check_out,
                    reservation.total_price,
                    attempt,
                )
                self._notifier.submit(
                    NotificationKind.CONFIRMATION,
                    reservation.to_notification_payload(),
                )
                return AllocationResult(reservation=reservation, attempts=attempt)

            excluded_rooms.append(room_number)
            logger.warning(
                "Allocation conflict | category=%s | room=%s | attempt=%s/%s",
                category,
                room_number,
                attempt,
                self._config.max_attempts,
            )

        return self._reject(
            draft,
            self._config.max_attempts,
            "No rooms available after concurrent booking conflicts",
        )

    def _reject(self, draft: Reservation, attempts: int, message: str) -> AllocationResult:
        logger.info(
            "Allocation rejected | guest_id=%s | category=%s | check_in=%s | check_out=%s | attempts=%s",
            draft.guest_id,
            draft.category,
            draft.check_in,
            draft.check_out,
            attempts,
        )
        return AllocationResult(
            rejection=Rejection(reason=RejectionReason.NO_AVAILABILITY, message=message),
            attempts=attempts,
        )
