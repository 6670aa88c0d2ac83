"""Order and reservation Pydantic schemas."""

import datetime as dt
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.domain.capacity import is_valid_time

PaymentMethod = Literal["cash", "online", "partiel"]
BookingSource = Literal["web", "mobile", "agent"]


class CustomerFields(BaseModel):
    """Contact details captured with every booking."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=20)
    city: str | None = Field(None, max_length=255)


class OrderCreate(CustomerFields):
    """Schema for creating an order."""

    blane_id: UUID
    quantity: int = Field(..., ge=1)
    payment_method: PaymentMethod
    # Client-side figure; the server recomputes the price
    total_price: Decimal | None = Field(None, ge=0)
    partiel_price: Decimal | None = Field(None, ge=0)
    delivery_address: str | None = Field(None, max_length=255)
    comments: str | None = None
    source: BookingSource | None = None


class ReservationCreate(CustomerFields):
    """Schema for creating a reservation."""

    blane_id: UUID
    date: dt.date
    end_date: dt.date | None = None
    time: str | None = None
    quantity: int = Field(default=1, ge=1)
    number_persons: int = Field(..., ge=1)
    payment_method: PaymentMethod
    total_price: Decimal | None = Field(None, ge=0)
    partiel_price: Decimal | None = Field(None, ge=0)
    comments: str | None = None
    source: BookingSource | None = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str | None) -> str | None:
        if v is not None and not is_valid_time(v):
            raise ValueError("time must use the HH:MM format")
        return v

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: dt.date | None, info) -> dt.date | None:
        start = info.data.get("date")
        if v is not None and start and v < start:
            raise ValueError("end_date must be on or after date")
        return v


class VendorOrderCreate(OrderCreate):
    """Order entered by a vendor on behalf of a customer."""

    payment_method: Literal["cash"] = "cash"
    confirm_exceed: bool = False


class VendorReservationCreate(ReservationCreate):
    """Reservation entered by a vendor on behalf of a customer."""

    payment_method: Literal["cash"] = "cash"
    confirm_exceed: bool = False


class CancelRequest(BaseModel):
    """Signed cancellation parameters issued at booking time."""

    id: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    timestamp: int


class StatusUpdate(BaseModel):
    """Manual status change for a pending booking."""

    status: Literal["pending", "failed"]


class CancellationParams(BaseModel):
    id: str
    timestamp: int
    token: str


class PaymentInfo(BaseModel):
    payment_url: str
    method: str = "post"
    inputs: dict[str, str]


class BookingBaseResponse(BaseModel):
    """Fields shared by order and reservation responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    blane_id: UUID
    vendor_id: UUID | None = None
    phone: str | None = None
    quantity: int
    total_price: Decimal
    partiel_price: Decimal | None = None
    payment_method: str
    status: str
    comments: str | None = None
    source: str | None = None
    vendor_override: bool = False
    created_at: dt.datetime


class OrderResponse(BookingBaseResponse):
    NUM_ORD: str
    delivery_address: str | None = None
    city: str | None = None


class ReservationResponse(BookingBaseResponse):
    NUM_RES: str
    date: dt.date
    end_date: dt.date | None = None
    time: str | None = None
    number_persons: int
    city: str | None = None


class OrderCreatedResponse(BaseModel):
    order: OrderResponse
    cancellation: CancellationParams
    payment_info: PaymentInfo | None = None


class ReservationCreatedResponse(BaseModel):
    reservation: ReservationResponse
    cancellation: CancellationParams
    payment_info: PaymentInfo | None = None


class MessageResponse(BaseModel):
    message: str
    data: dict[str, Any] | None = None
