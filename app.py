"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the catalog, ledger and booking services, registers routers, and
runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from booking_core.controllers.admin_controller import router as admin_router
from booking_core.controllers.catalog_controller import router as catalog_router
from booking_core.controllers.dependencies import register_error_handlers
from booking_core.controllers.reservation_controller import router as reservation_router
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.database import SQLiteDatabase
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.allocation_service import ReservationAllocator
from booking_core.services.auth_service import AuthService
from booking_core.services.availability_service import AvailabilityIndex
from booking_core.services.cancellation_service import CancellationHandler
from booking_core.services.notification_service import BackgroundNotifier, NotificationDispatcher
from booking_core.services.pricing_service import PricingCalculator
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service is instantiated here and placed on app.state, so each
    dependency is traceable from this function.
    """
    settings = settings or get_settings()

    # --- Persistence (one database file, short-lived connections) ---
    database = SQLiteDatabase(settings)
    catalog = RoomCatalogRepository(database=database, settings=settings)
    ledger = ReservationLedger(database=database, settings=settings)

    # --- Services ---
    notifier = BackgroundNotifier(dispatcher=dispatcher, settings=settings)
    availability_index = AvailabilityIndex(catalog=catalog, ledger=ledger, settings=settings)
    pricing = PricingCalculator(settings=settings)
    allocator = ReservationAllocator(
        availability=availability_index,
        ledger=ledger,
        pricing=pricing,
        notifier=notifier,
        settings=settings,
    )
    cancellation_handler = CancellationHandler(
        ledger=ledger,
        notifier=notifier,
        settings=settings,
    )
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield
        _shutdown(app)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(catalog_router)
    app.include_router(reservation_router)
    app.include_router(admin_router)
    register_error_handlers(app)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.ledger = ledger
    app.state.notifier = notifier
    app.state.availability_index = availability_index
    app.state.pricing = pricing
    app.state.allocator = allocator
    app.state.cancellation_handler = cancellation_handler
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Catalog tables must exist before the ledger references them.
      2. Ledger schema and its overlap triggers come next.
      3. The catalog is seeded last, and only when empty.
    """
    catalog: RoomCatalogRepository = app.state.catalog
    ledger: ReservationLedger = app.state.ledger

    logger.info("Startup: initializing catalog schema")
    catalog.initialize_schema()

    logger.info("Startup: initializing ledger schema")
    ledger.initialize_schema()

    logger.info("Startup: seeding room catalog (skipped if already provisioned)")
    catalog.seed_catalog()

    logger.info("Startup complete, system ready")


def _shutdown(app: FastAPI) -> None:
    notifier: BackgroundNotifier = app.state.notifier
    logger.info("Shutdown: flushing pending notifications")
    notifier.drain(timeout=app.state.settings.notification_timeout_seconds)
    notifier.shutdown()


# Module-level app object for uvicorn
app = create_app()
