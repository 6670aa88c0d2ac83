"""Commission configuration schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class CommissionSettingsResponse(BaseModel):
    partial_payment_commission_rate: Decimal
    vat_rate: Decimal
    transfer_processing_day: str
    daba_blane_account_iban: str | None


class CommissionSettingsUpdate(BaseModel):
    """Schema for updating global commission settings."""

    partial_payment_commission_rate: Decimal | None = Field(None, ge=0, le=100)
    vat_rate: Decimal | None = Field(None, ge=0, le=100)
    transfer_processing_day: Weekday | None = None
    daba_blane_account_iban: str | None = Field(None, max_length=64)


class VendorCommissionCreate(BaseModel):
    """Category rate, optionally scoped to one vendor."""

    category_id: UUID
    vendor_id: UUID | None = None
    commission_rate: Decimal = Field(..., ge=0, le=100)
    is_active: bool = True


class VendorCommissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vendor_id: UUID | None
    category_id: UUID
    commission_rate: Decimal
    is_active: bool
    created_at: datetime
