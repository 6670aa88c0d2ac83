"""Vendor-entered bookings for their own Blanes (cash only).

Bookings over capacity are rejected with ``requires_confirmation`` until the
vendor resends them with ``confirm_exceed``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_vendor_context
from app.core.vendor_context import VendorContext
from app.schemas.booking import (
    OrderCreatedResponse,
    OrderResponse,
    ReservationCreatedResponse,
    ReservationResponse,
    VendorOrderCreate,
    VendorReservationCreate,
)
from app.services.admission_service import admission_service

router = APIRouter()


@router.post("/orders", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor_order(
    order_data: VendorOrderCreate,
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrderCreatedResponse:
    result = await admission_service.create_order(
        db, order_data, vendor=ctx, confirm_exceed=order_data.confirm_exceed
    )
    return OrderCreatedResponse(
        order=OrderResponse.model_validate(result.booking),
        cancellation=result.cancellation,
    )


@router.post(
    "/reservations",
    response_model=ReservationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_vendor_reservation(
    reservation_data: VendorReservationCreate,
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReservationCreatedResponse:
    result = await admission_service.create_reservation(
        db, reservation_data, vendor=ctx, confirm_exceed=reservation_data.confirm_exceed
    )
    return ReservationCreatedResponse(
        reservation=ReservationResponse.model_validate(result.booking),
        cancellation=result.cancellation,
    )
