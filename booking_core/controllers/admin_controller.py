"""Controller layer for administrative login and ledger oversight."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from booking_core.controllers.dependencies import (
    error_detail,
    get_auth_service,
    get_catalog,
    get_ledger,
    raise_for_booking_error,
    require_admin,
)
from booking_core.controllers.reservation_controller import (
    ReservationListResponse,
    to_reservation_response,
)
from booking_core.domain.errors import BookingError
from booking_core.domain.models import ReservationStatus
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["admin"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RoomActivityRequest(BaseModel):
    active: bool


class RoomActivityResponse(BaseModel):
    room_number: int
    active: bool


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        token = auth_service.login(payload.admin_token)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        logger.warning("Admin login rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_detail("Unauthenticated", str(exc)),
        ) from exc
    return LoginResponse(access_token=token)


@router.get(
    "/admin/reservations",
    response_model=ReservationListResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def list_all_reservations(
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    ledger: ReservationLedger = Depends(get_ledger),
) -> ReservationListResponse:
    try:
        reservations = ledger.list_reservations(status=status_filter)
    except BookingError as exc:
        raise_for_booking_error(exc)
    return ReservationListResponse(
        reservations=[to_reservation_response(item) for item in reservations]
    )


@router.put(
    "/admin/rooms/{room_number}",
    response_model=RoomActivityResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def set_room_activity(
    room_number: int,
    payload: RoomActivityRequest,
    catalog: RoomCatalogRepository = Depends(get_catalog),
) -> RoomActivityResponse:
    """Retire a room from allocation or bring it back."""
    try:
        updated = catalog.set_room_active(room_number, payload.active)
    except BookingError as exc:
        raise_for_booking_error(exc)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_detail("NotFound", f"Room {room_number} not found"),
        )
    return RoomActivityResponse(room_number=room_number, active=payload.active)
