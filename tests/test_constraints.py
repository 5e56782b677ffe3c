"""Tests for stay, guest and configuration validation rules."""

from __future__ import annotations

from datetime import date

import pytest

from booking_core.domain.constraints import (
    AllocationConfig,
    PricingConfig,
    intervals_overlap,
    validate_allocation_config,
    validate_guest_count,
    validate_guest_id,
    validate_pricing_config,
    validate_stay,
)
from booking_core.domain.errors import BookingValidationError


TODAY = date(2031, 3, 1)


# --- Overlap semantics ---

def test_overlapping_intervals_detected() -> None:
    assert intervals_overlap(date(2031, 1, 10), date(2031, 1, 15), date(2031, 1, 12), date(2031, 1, 14))
    assert intervals_overlap(date(2031, 1, 12), date(2031, 1, 20), date(2031, 1, 10), date(2031, 1, 15))


def test_adjacent_intervals_do_not_overlap() -> None:
    """Checkout day equals the next check-in day."""
    assert not intervals_overlap(date(2031, 1, 10), date(2031, 1, 15), date(2031, 1, 15), date(2031, 1, 18))
    assert not intervals_overlap(date(2031, 1, 15), date(2031, 1, 18), date(2031, 1, 10), date(2031, 1, 15))


# --- Stay dates ---

def test_valid_stay_passes() -> None:
    validate_stay(TODAY, date(2031, 3, 2), today=TODAY)


def test_same_day_check_in_and_check_out_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_stay(date(2031, 3, 5), date(2031, 3, 5), today=TODAY)


def test_check_out_before_check_in_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_stay(date(2031, 3, 5), date(2031, 3, 4), today=TODAY)


def test_past_check_in_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_stay(date(2031, 2, 28), date(2031, 3, 3), today=TODAY)


# --- Guests ---

def test_zero_guests_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_guest_count(0)


def test_guests_above_category_ceiling_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_guest_count(4, max_guests=3)


def test_guests_at_category_ceiling_passes() -> None:
    validate_guest_count(3, max_guests=3)


def test_blank_guest_id_raises() -> None:
    with pytest.raises(BookingValidationError):
        validate_guest_id("   ")


# --- Configuration ---

def test_allocation_config_requires_positive_attempts() -> None:
    validate_allocation_config(AllocationConfig(max_attempts=1))
    with pytest.raises(ValueError):
        validate_allocation_config(AllocationConfig(max_attempts=0))


def test_pricing_config_rejects_negative_amounts() -> None:
    validate_pricing_config(PricingConfig(guest_fee=0, fixed_tax=0))
    with pytest.raises(ValueError):
        validate_pricing_config(PricingConfig(guest_fee=-1, fixed_tax=0))
    with pytest.raises(ValueError):
        validate_pricing_config(PricingConfig(guest_fee=0, fixed_tax=-5))
