"""Order endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.exceptions import NotFoundError
from app.models.booking import Order
from app.schemas.booking import (
    CancelRequest,
    OrderCreate,
    OrderCreatedResponse,
    OrderResponse,
    StatusUpdate,
)
from app.services.admission_service import admission_service
from app.services.cancellation_service import cancellation_service
from app.utils.booking_number import ORDER_PREFIX

router = APIRouter()


def _require_order_code(code: str) -> None:
    if not code.startswith(f"{ORDER_PREFIX}-"):
        raise NotFoundError("Order", code)


@router.post("", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrderCreatedResponse:
    """Create an order; online payments get the gateway form back."""
    result = await admission_service.create_order(db, order_data)
    return OrderCreatedResponse(
        order=OrderResponse.model_validate(result.booking),
        cancellation=result.cancellation,
        payment_info=result.payment_info,
    )


@router.post("/cancel", response_model=OrderResponse)
async def cancel_order(
    cancel_data: CancelRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrderResponse:
    """Cancel a pending order with its signed cancellation token."""
    _require_order_code(cancel_data.id)
    order = await cancellation_service.cancel(
        db, cancel_data.id, cancel_data.token, cancel_data.timestamp
    )
    return OrderResponse.model_validate(order)


@router.get("/{code}", response_model=OrderResponse)
async def get_order(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Order:
    _require_order_code(code)
    return await admission_service.get_booking(db, code)


@router.patch("/{code}/status", response_model=OrderResponse)
async def update_order_status(
    code: str,
    status_data: StatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Order:
    """Set a pending order to pending or failed."""
    _require_order_code(code)
    return await admission_service.change_status(db, code, status_data.status)
