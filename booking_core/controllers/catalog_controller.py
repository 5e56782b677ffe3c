"""HTTP controller layer for catalog browsing and availability search."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from booking_core.controllers.dependencies import (
    get_availability_index,
    get_catalog,
    raise_for_booking_error,
)
from booking_core.domain.errors import BookingError
from booking_core.repository.catalog_repository import RoomCatalogRepository
from booking_core.services.availability_service import AvailabilityIndex


router = APIRouter(tags=["catalog"])


class CategoryResponse(BaseModel):
    name: str
    nightly_rate: int = Field(ge=0)
    max_guests: int = Field(gt=0)
    description: str


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]


class CategoryAvailabilityResponse(BaseModel):
    category: str
    nightly_rate: int = Field(ge=0)
    free_rooms: int = Field(ge=0)


class AvailabilityResponse(BaseModel):
    check_in: date
    check_out: date
    categories: list[CategoryAvailabilityResponse]


@router.get("/health", include_in_schema=False)
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/categories", response_model=CategoryListResponse, status_code=status.HTTP_200_OK)
def list_categories(
    catalog: RoomCatalogRepository = Depends(get_catalog),
) -> CategoryListResponse:
    try:
        categories = catalog.list_categories()
    except BookingError as exc:
        raise_for_booking_error(exc)
    return CategoryListResponse(
        categories=[
            CategoryResponse(
                name=item.name,
                nightly_rate=item.nightly_rate,
                max_guests=item.max_guests,
                description=item.description,
            )
            for item in categories
        ]
    )


@router.get("/availability", response_model=AvailabilityResponse, status_code=status.HTTP_200_OK)
def availability(
    check_in: date,
    check_out: date,
    index: AvailabilityIndex = Depends(get_availability_index),
) -> AvailabilityResponse:
    """Free-room counts per category; advisory, not a hold."""
    try:
        summary = index.summarize_availability(check_in, check_out)
    except BookingError as exc:
        raise_for_booking_error(exc)
    return AvailabilityResponse(
        check_in=check_in,
        check_out=check_out,
        categories=[
            CategoryAvailabilityResponse(
                category=item.category,
                nightly_rate=item.nightly_rate,
                free_rooms=item.free_rooms,
            )
            for item in summary
        ],
    )
