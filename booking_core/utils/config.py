"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


# (name, nightly_rate, max_guests, description)
DEFAULT_CATEGORIES: tuple[tuple[str, int, int, str], ...] = (
    ("Deluxe Suite", 3500, 3, "Panoramic views with a king bed"),
    ("The Deluxe King", 4500, 2, "Signature king room with city views"),
    ("Garden Twin Room", 5200, 4, "Two queen beds and a garden balcony"),
    ("Family Studio", 7000, 5, "Open-plan studio with kitchenette"),
    ("The Executive Suite", 8500, 3, "Separate living area and lounge access"),
    ("Royal Sunrise Suite", 15000, 4, "Corner suite with private dining"),
)

# (room_number, category, active)
DEFAULT_ROOMS: tuple[tuple[int, str, bool], ...] = (
    (101, "Deluxe Suite", True),
    (102, "Deluxe Suite", True),
    (103, "Deluxe Suite", True),
    (104, "Deluxe Suite", False),
    (201, "The Deluxe King", True),
    (202, "The Deluxe King", True),
    (203, "The Deluxe King", True),
    (301, "Garden Twin Room", True),
    (302, "Garden Twin Room", True),
    (401, "Family Studio", True),
    (402, "Family Studio", True),
    (501, "The Executive Suite", True),
    (502, "The Executive Suite", True),
    (601, "Royal Sunrise Suite", True),
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str = "Sunrise Room Allocation"
    app_version: str = "1.0.0"
    database_path: Path = Path("data") / "reservations.db"
    log_level: str = "INFO"
    admin_token: Optional[str] = None

    allocation_max_attempts: int = 3

    pricing_guest_fee: int = 500
    pricing_fixed_tax: int = 350

    ledger_busy_timeout_seconds: float = 10.0

    notification_channel: str = "log"
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 5.0
    notification_workers: int = 2

    catalog_seed_categories: tuple[tuple[str, int, int, str], ...] = DEFAULT_CATEGORIES
    catalog_seed_rooms: tuple[tuple[int, str, bool], ...] = DEFAULT_ROOMS


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment overrides."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("BOOKING_APP_NAME", defaults.app_name),
        app_version=os.getenv("BOOKING_APP_VERSION", defaults.app_version),
        database_path=Path(os.getenv("BOOKING_DATABASE_PATH", str(defaults.database_path))),
        log_level=os.getenv("BOOKING_LOG_LEVEL", defaults.log_level),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        allocation_max_attempts=_env_int(
            "BOOKING_ALLOCATION_MAX_ATTEMPTS",
            defaults.allocation_max_attempts,
        ),
        pricing_guest_fee=_env_int("BOOKING_GUEST_FEE", defaults.pricing_guest_fee),
        pricing_fixed_tax=_env_int("BOOKING_FIXED_TAX", defaults.pricing_fixed_tax),
        ledger_busy_timeout_seconds=_env_float(
            "BOOKING_LEDGER_BUSY_TIMEOUT_SECONDS",
            defaults.ledger_busy_timeout_seconds,
        ),
        notification_channel=os.getenv(
            "BOOKING_NOTIFICATION_CHANNEL",
            defaults.notification_channel,
        ),
        notification_webhook_url=os.getenv("BOOKING_NOTIFICATION_WEBHOOK_URL") or None,
        notification_timeout_seconds=_env_float(
            "BOOKING_NOTIFICATION_TIMEOUT_SECONDS",
            defaults.notification_timeout_seconds,
        ),
        notification_workers=_env_int(
            "BOOKING_NOTIFICATION_WORKERS",
            defaults.notification_workers,
        ),
    )
