"""Stay pricing: nightly rate times nights plus per-guest fee and fixed tax."""

from __future__ import annotations

from typing import Optional

from booking_core.domain.constraints import PricingConfig, validate_pricing_config
from booking_core.domain.errors import BookingValidationError
from booking_core.domain.models import RoomCategory
from booking_core.utils.config import Settings, get_settings


def calculate_total_price(
    *,
    nightly_rate: int,
    nights: int,
    guests: int,
    config: PricingConfig,
) -> int:
    if nights <= 0:
        raise BookingValidationError("nights must be > 0")
    if guests < 1:
        raise BookingValidationError("guests must be >= 1")
    return nightly_rate * nights + config.guest_fee * guests + config.fixed_tax


class PricingCalculator:
    """Deterministic price quotes; performs no I/O."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._config = PricingConfig(
            guest_fee=self._settings.pricing_guest_fee,
            fixed_tax=self._settings.pricing_fixed_tax,
        )
        validate_pricing_config(self._config)

    @property
    def config(self) -> PricingConfig:
        return self._config

    def price(self, category: RoomCategory, nights: int, guests: int) -> int:
        return calculate_total_price(
            nightly_rate=category.nightly_rate,
            nights=nights,
            guests=guests,
            config=self._config,
        )
