"""Reservation endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.exceptions import NotFoundError
from app.models.booking import Reservation
from app.schemas.booking import (
    CancelRequest,
    ReservationCreate,
    ReservationCreatedResponse,
    ReservationResponse,
    StatusUpdate,
)
from app.services.admission_service import admission_service
from app.services.blane_service import blane_service
from app.services.cancellation_service import cancellation_service
from app.services.capacity_service import capacity_service
from app.utils.booking_number import RESERVATION_PREFIX

router = APIRouter()


def _require_reservation_code(code: str) -> None:
    if not code.startswith(f"{RESERVATION_PREFIX}-"):
        raise NotFoundError("Reservation", code)


@router.post("", response_model=ReservationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReservationCreatedResponse:
    """Create a reservation for a date (and slot, for time-slot Blanes)."""
    result = await admission_service.create_reservation(db, reservation_data)
    return ReservationCreatedResponse(
        reservation=ReservationResponse.model_validate(result.booking),
        cancellation=result.cancellation,
        payment_info=result.payment_info,
    )


@router.post("/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    cancel_data: CancelRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReservationResponse:
    """Cancel a pending reservation with its signed cancellation token."""
    _require_reservation_code(cancel_data.id)
    reservation = await cancellation_service.cancel(
        db, cancel_data.id, cancel_data.token, cancel_data.timestamp
    )
    return ReservationResponse.model_validate(reservation)


@router.get("/blanes/{slug}/time-slots")
async def get_time_slots(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    day: date = Query(..., alias="date"),
) -> dict:
    """Per-slot availability of a Blane for one date."""
    blane = await blane_service.get_blane_by_slug(db, slug)
    return await capacity_service.available_time_slots(db, blane, day)


@router.get("/{code}", response_model=ReservationResponse)
async def get_reservation(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Reservation:
    _require_reservation_code(code)
    return await admission_service.get_booking(db, code)


@router.patch("/{code}/status", response_model=ReservationResponse)
async def update_reservation_status(
    code: str,
    status_data: StatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Reservation:
    """Set a pending reservation to pending or failed."""
    _require_reservation_code(code)
    return await admission_service.change_status(db, code, status_data.status)
