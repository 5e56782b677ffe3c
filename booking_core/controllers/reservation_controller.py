"""HTTP controller layer for booking and cancelling rooms."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from booking_core.controllers.dependencies import (
    error_detail,
    get_allocator,
    get_cancellation_handler,
    get_guest_id,
    get_ledger,
    get_optional_guest_id,
    is_admin_caller,
    raise_for_booking_error,
    raise_for_rejection,
    require_identified_caller,
)
from booking_core.domain.errors import BookingError
from booking_core.domain.models import Reservation
from booking_core.repository.ledger_repository import ReservationLedger
from booking_core.services.allocation_service import ReservationAllocator
from booking_core.services.cancellation_service import CancellationHandler
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["reservations"])


class AllocationRequest(BaseModel):
    """Booking request body; the guest id comes from the identity header."""

    category: str = Field(min_length=1)
    check_in: date
    check_out: date
    guests: int


class ReservationResponse(BaseModel):
    reservation_id: str
    reference: str
    room_number: int | None = None
    category: str
    check_in: date
    check_out: date
    nights: int = Field(gt=0)
    guests: int = Field(ge=1)
    total_price: int = Field(ge=0)
    status: str


class ReservationListResponse(BaseModel):
    reservations: list[ReservationResponse]


class CancellationResponse(BaseModel):
    ack: bool = True
    reservation_id: str
    status: str
    already_cancelled: bool = False


def to_reservation_response(reservation: Reservation) -> ReservationResponse:
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        reference=reservation.short_reference,
        room_number=reservation.room_number,
        category=reservation.category,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        nights=reservation.nights,
        guests=reservation.guests,
        total_price=reservation.total_price,
        status=reservation.status.value,
    )


@router.post(
    "/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    payload: AllocationRequest,
    guest_id: str = Depends(get_guest_id),
    allocator: ReservationAllocator = Depends(get_allocator),
) -> ReservationResponse:
    """Allocate a room of the requested category for the caller."""
    try:
        result = allocator.allocate(
            guest_id=guest_id,
            category=payload.category,
            check_in=payload.check_in,
            check_out=payload.check_out,
            guests=payload.guests,
        )
    except BookingError as exc:
        raise_for_booking_error(exc)
    if result.rejection is not None:
        raise_for_rejection(result.rejection)
    return to_reservation_response(result.reservation)


@router.get(
    "/reservations",
    response_model=ReservationListResponse,
    status_code=status.HTTP_200_OK,
)
def list_my_reservations(
    guest_id: str = Depends(get_guest_id),
    ledger: ReservationLedger = Depends(get_ledger),
) -> ReservationListResponse:
    try:
        reservations = ledger.list_reservations(guest_id=guest_id)
    except BookingError as exc:
        raise_for_booking_error(exc)
    return ReservationListResponse(
        reservations=[to_reservation_response(item) for item in reservations]
    )


@router.get(
    "/reservations/{reservation_id}",
    response_model=ReservationResponse,
    status_code=status.HTTP_200_OK,
)
def get_reservation(
    reservation_id: str,
    guest_id: Optional[str] = Depends(get_optional_guest_id),
    as_admin: bool = Depends(is_admin_caller),
    ledger: ReservationLedger = Depends(get_ledger),
) -> ReservationResponse:
    require_identified_caller(guest_id, as_admin)
    try:
        reservation = ledger.get_reservation(reservation_id)
    except BookingError as exc:
        raise_for_booking_error(exc)
    if reservation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_detail("NotFound", f"Reservation {reservation_id} not found"),
        )
    if not as_admin and reservation.guest_id != guest_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=error_detail("Forbidden", "Reservation belongs to another guest"),
        )
    return to_reservation_response(reservation)


@router.post(
    "/reservations/{reservation_id}/cancel",
    response_model=CancellationResponse,
    status_code=status.HTTP_200_OK,
)
def cancel_reservation(
    reservation_id: str,
    guest_id: Optional[str] = Depends(get_optional_guest_id),
    as_admin: bool = Depends(is_admin_caller),
    handler: CancellationHandler = Depends(get_cancellation_handler),
) -> CancellationResponse:
    """Cancel a reservation owned by the caller, or any reservation as admin."""
    require_identified_caller(guest_id, as_admin)
    try:
        result = handler.cancel(
            reservation_id,
            guest_id or "admin",
            as_admin=as_admin,
        )
    except BookingError as exc:
        raise_for_booking_error(exc)
    if result.rejection is not None:
        raise_for_rejection(result.rejection)
    return CancellationResponse(
        reservation_id=reservation_id,
        status=result.reservation.status.value,
        already_cancelled=result.already_cancelled,
    )
