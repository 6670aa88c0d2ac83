"""Vendor payment ledger schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class VendorPaymentResponse(BaseModel):
    """Schema for a ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vendor_id: UUID
    order_id: UUID | None
    reservation_id: UUID | None
    booking_reference: str
    total_amount_ttc: Decimal
    payment_type: str
    commission_rate_applied: Decimal
    commission_amount_excl_vat: Decimal
    commission_vat: Decimal
    commission_amount_incl_vat: Decimal
    net_amount_ttc: Decimal
    transfer_status: str
    transfer_date: date | None
    processed_by: UUID | None
    processed_at: datetime | None
    booking_date: date | None
    payment_date: date
    week_start: date
    week_end: date
    debit_account: str | None
    credit_account: str | None
    reason: str | None
    note: str | None
    created_at: datetime


class VendorPaymentListResponse(BaseModel):
    items: list[VendorPaymentResponse]
    total: int
    page: int
    limit: int


class VendorPaymentLogResponse(BaseModel):
    """Schema for a ledger audit entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vendor_payment_id: UUID | None
    admin_id: UUID
    action: str
    previous_status: str | None
    new_status: str | None
    affected_rows: int
    admin_note: str | None
    changes: dict | None = None
    created_at: datetime


class MarkProcessedRequest(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
    transfer_date: date | None = None
    note: str | None = Field(None, max_length=1000)


class MarkProcessedResponse(BaseModel):
    affected_rows: int
    payments: list[VendorPaymentResponse]


class RevertRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=1000)


class VendorPaymentUpdate(BaseModel):
    """Status change and/or banking data correction; omitted fields are kept."""

    status: Literal["pending", "processed", "complete"] | None = None
    transfer_date: date | None = None
    debit_account: str | None = Field(None, max_length=255)
    credit_account: str | None = Field(None, max_length=1000)
    reason: str | None = Field(None, max_length=1000)
    booking_date: date | None = None
    payment_date: date | None = None
    note: str | None = Field(None, max_length=1000)


class VendorWeekSummary(BaseModel):
    vendor_id: UUID
    vendor_name: str | None
    count: int
    total_ttc: Decimal
    total_commission: Decimal
    total_net: Decimal


class WeeklyPaymentsResponse(BaseModel):
    week_start: date
    week_end: date
    payments: list[VendorPaymentResponse]
    vendors: list[VendorWeekSummary]
    total_net: Decimal


class BankingReportRow(BaseModel):
    id: UUID
    vendor_name: str | None
    debit_account: str | None
    credit_account: str | None
    amount: Decimal
    reason: str | None
    booking_reference: str
    payment_date: date
    transfer_status: str
    transfer_date: date | None


class StatusTotals(BaseModel):
    count: int
    net: Decimal


class BankingReportResponse(BaseModel):
    rows: list[BankingReportRow]
    totals_by_status: dict[str, StatusTotals]
    total_net: Decimal
    count: int
