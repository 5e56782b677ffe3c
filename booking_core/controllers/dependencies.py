"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any, NoReturn, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booking_core.domain.errors import BookingError, BookingValidationError, LedgerUnavailableError
from booking_core.domain.models import Rejection, RejectionReason
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.allocation_service import ReservationAllocator
from booking_core.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
    MissingGuestIdentityError,
)
from booking_core.services.availability_service import AvailabilityIndex
from booking_core.services.cancellation_service import CancellationHandler
from booking_core.utils.config import get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_REJECTION_STATUS = {
    RejectionReason.NO_AVAILABILITY: status.HTTP_409_CONFLICT,
    RejectionReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    RejectionReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def error_detail(error_kind: str, message: str) -> dict[str, str]:
    return {"error_kind": error_kind, "message": message}


async def booking_error_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return `{error_kind, message}` bodies unwrapped; other errors keep FastAPI's shape."""
    if isinstance(exc.detail, dict) and "error_kind" in exc.detail:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, booking_error_response)


def raise_for_rejection(rejection: Rejection) -> NoReturn:
    raise HTTPException(
        status_code=_REJECTION_STATUS[rejection.reason],
        detail=error_detail(rejection.reason.value, rejection.message),
    )


def raise_for_booking_error(exc: BookingError) -> NoReturn:
    if isinstance(exc, BookingValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, LedgerUnavailableError):
        logger.error("Ledger unavailable | detail=%s", exc)
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        logger.exception("Booking failure | kind=%s | detail=%s", exc.error_kind, exc)
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(
        status_code=status_code,
        detail=error_detail(exc.error_kind, str(exc)),
    ) from exc


def _from_state(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_detail("ServiceUnavailable", f"{label} is not initialized"),
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_catalog(request: Request) -> RoomCatalogRepository:
    return _from_state(request, "catalog", "Room catalog")


def get_ledger(request: Request) -> ReservationLedger:
    return _from_state(request, "ledger", "Reservation ledger")


def get_availability_index(request: Request) -> AvailabilityIndex:
    return _from_state(request, "availability_index", "Availability index")


def get_allocator(request: Request) -> ReservationAllocator:
    return _from_state(request, "allocator", "Allocator")


def get_cancellation_handler(request: Request) -> CancellationHandler:
    return _from_state(request, "cancellation_handler", "Cancellation handler")


def is_admin_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> bool:
    if credentials is None:
        return False
    return auth_service.is_admin_session(credentials.credentials)


def get_optional_guest_id(
    x_guest_id: Optional[str] = Header(default=None, alias="X-Guest-Id"),
) -> Optional[str]:
    if x_guest_id is None or not x_guest_id.strip():
        return None
    return x_guest_id.strip()


def get_guest_id(
    x_guest_id: Optional[str] = Header(default=None, alias="X-Guest-Id"),
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    try:
        return auth_service.resolve_guest_id(x_guest_id)
    except MissingGuestIdentityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_detail("Unauthenticated", str(exc)),
        ) from exc


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    try:
        auth_service.validate_admin_token(
            credentials.credentials if credentials is not None else None
        )
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_detail("Unauthenticated", str(exc)),
        ) from exc


def require_identified_caller(guest_id: Optional[str], as_admin: bool) -> None:
    if guest_id is None and not as_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_detail("Unauthenticated", "X-Guest-Id header is required"),
        )
