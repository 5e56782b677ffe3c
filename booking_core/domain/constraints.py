"""Domain-level validation rules for stays, allocation and pricing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from booking_core.domain.errors import BookingValidationError


@dataclass(frozen=True)
class AllocationConfig:
    max_attempts: int


@dataclass(frozen=True)
class PricingConfig:
    guest_fee: int
    fixed_tax: int


def validate_allocation_config(config: AllocationConfig) -> None:
    if config.max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")


def validate_pricing_config(config: PricingConfig) -> None:
    if config.guest_fee < 0:
        raise ValueError("guest_fee must be >= 0")
    if config.fixed_tax < 0:
        raise ValueError("fixed_tax must be >= 0")


def intervals_overlap(
    first_start: date,
    first_end: date,
    second_start: date,
    second_end: date,
) -> bool:
    """Half-open overlap: [a, b) and [c, d) overlap iff a < d and c < b."""
    return first_start < second_end and second_start < first_end


def validate_stay(check_in: date, check_out: date, today: date) -> None:
    if check_in >= check_out:
        raise BookingValidationError("check_out must be after check_in")
    if check_in < today:
        raise BookingValidationError("check_in cannot be in the past")


def validate_guest_count(guests: int, max_guests: int | None = None) -> None:
    if guests < 1:
        raise BookingValidationError("guests must be >= 1")
    if max_guests is not None and guests > max_guests:
        raise BookingValidationError(
            f"guests must be <= {max_guests} for this category"
        )


def validate_guest_id(guest_id: str) -> None:
    if not guest_id or not guest_id.strip():
        raise BookingValidationError("guest_id must be non-empty")
