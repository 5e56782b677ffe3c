"""Reservation cancellation with compensating guest notification."""

from __future__ import annotations

from typing import Optional

from booking_core.domain.constraints import validate_guest_id
from booking_core.domain.models import (
    CancellationResult,
    CommitOutcome,
    Rejection,
    RejectionReason,
    Reservation,
    ReservationStatus,
)
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.notification_service import BackgroundNotifier, NotificationKind
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


class CancellationHandler:
    """Moves confirmed reservations to CANCELLED, releasing their room."""

    def __init__(
        self,
        ledger: Optional[ReservationLedger] = None,
        notifier: Optional[BackgroundNotifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._ledger = ledger or ReservationLedger(settings=self._settings)
        self._notifier = notifier or BackgroundNotifier(settings=self._settings)

    def cancel(
        self,
        reservation_id: str,
        requester_guest_id: str,
        *,
        as_admin: bool = False,
    ) -> CancellationResult:
        if not as_admin:
            validate_guest_id(requester_guest_id)

        reservation = self._ledger.get_reservation(reservation_id)
        if reservation is None:
            return CancellationResult(
                rejection=Rejection(
                    reason=RejectionReason.NOT_FOUND,
                    message=f"Reservation {reservation_id} not found",
                )
            )

        if not as_admin and reservation.guest_id != requester_guest_id:
            logger.warning(
                "Cancellation forbidden | reservation_id=%s | requester=%s",
                reservation_id,
                requester_guest_id,
            )
            return CancellationResult(
                rejection=Rejection(
                    reason=RejectionReason.FORBIDDEN,
                    message="Only the reservation owner can cancel it",
                )
            )

        if reservation.status == ReservationStatus.CANCELLED:
            return CancellationResult(reservation=reservation, already_cancelled=True)

        outcome = self._ledger.transition_status(
            reservation_id,
            reservation.status,
            ReservationStatus.CANCELLED,
        )
        current = self._ledger.get_reservation(reservation_id) or reservation
        if outcome == CommitOutcome.CONFLICT:
            # A concurrent cancel won; it owns the notification.
            logger.info(
                "Cancellation raced | reservation_id=%s | status=%s",
                reservation_id,
                current.status.value,
            )
            return CancellationResult(
                reservation=current,
                already_cancelled=current.status == ReservationStatus.CANCELLED,
            )

        logger.info(
            "Reservation cancelled | reservation_id=%s | room=%s | by_admin=%s",
            reservation_id,
            current.room_number,
            as_admin,
        )
        self._notifier.submit(NotificationKind.CANCELLATION, _cancellation_payload(current))
        return CancellationResult(reservation=current)


def _cancellation_payload(reservation: Reservation) -> dict:
    payload = reservation.to_notification_payload()
    payload["refund_amount"] = reservation.total_price
    return payload
