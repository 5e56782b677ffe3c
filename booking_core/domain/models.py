"""Domain models for room allocation and the reservation ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


# CANCELLED is terminal.
ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
}


class RejectionReason(str, Enum):
    NO_AVAILABILITY = "NoAvailability"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"


class CommitOutcome(str, Enum):
    COMMITTED = "committed"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class RoomCategory:
    name: str
    nightly_rate: int
    max_guests: int
    description: str = ""


@dataclass(frozen=True)
class Room:
    room_number: int
    category: str
    active: bool = True


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    guest_id: str
    room_number: Optional[int]
    category: str
    check_in: date
    check_out: date
    guests: int
    total_price: int
    status: ReservationStatus
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def short_reference(self) -> str:
        """Guest-facing booking reference."""
        return self.reservation_id[:8].upper()

    def overlaps(self, check_in: date, check_out: date) -> bool:
        return self.check_in < check_out and self.check_out > check_in

    def to_notification_payload(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "reference": self.short_reference,
            "guest_id": self.guest_id,
            "room_number": self.room_number,
            "category": self.category,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "guests": self.guests,
            "total_price": self.total_price,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str


@dataclass(frozen=True)
class AllocationResult:
    reservation: Optional[Reservation] = None
    rejection: Optional[Rejection] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.reservation is not None


@dataclass(frozen=True)
class CancellationResult:
    reservation: Optional[Reservation] = None
    rejection: Optional[Rejection] = None
    already_cancelled: bool = False

    @property
    def acknowledged(self) -> bool:
        return self.rejection is None


@dataclass(frozen=True)
class CategoryAvailability:
    category: str
    nightly_rate: int
    free_rooms: int
