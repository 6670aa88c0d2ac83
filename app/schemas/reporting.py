"""Vendor revenue reporting schemas (read-only)."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.vendor_payment import VendorPaymentResponse


class PaymentTypeSplit(BaseModel):
    total_amount_ttc: Decimal
    expected_reimbursement: Decimal
    count: int


class StatusSummary(BaseModel):
    count: int
    total_amount_ttc: Decimal
    net_amount_ttc: Decimal


class CommissionStructure(BaseModel):
    partial_payment_rate: Decimal
    vat_rate: Decimal


class TransferStatusSummary(BaseModel):
    pending_count: int
    processed_count: int


class OversoldBlane(BaseModel):
    id: UUID
    name: str
    slug: str
    stock: int


class VendorOverview(BaseModel):
    """Revenue dashboard for one vendor."""

    total_online_revenue_ttc: Decimal
    expected_reimbursement_week: Decimal
    full_payments: PaymentTypeSplit
    partial_payments: PaymentTypeSplit
    by_status: dict[str, StatusSummary]
    commission_structure: CommissionStructure
    scheduled_transfer_date: date
    last_week_expected_amount: Decimal
    transfer_status_summary: TransferStatusSummary
    oversold_blanes: list[OversoldBlane]


class ExpectedReimbursement(BaseModel):
    week_start: date
    week_end: date
    total_amount_ttc: Decimal
    payment_count: int
    payments: list[VendorPaymentResponse]


class MonthlyStatistics(BaseModel):
    month: str
    count: int
    total_amount_ttc: Decimal
    commission: Decimal
    net_amount: Decimal


class VendorStatistics(BaseModel):
    total_revenue: Decimal
    total_commission_paid: Decimal
    total_reimbursed: Decimal
    pending_reimbursement: Decimal
    total_transactions: int
    full_payments_count: int
    partial_payments_count: int
    average_commission_rate: Decimal
    by_month: list[MonthlyStatistics]


class MonthlyInvoiceResponse(BaseModel):
    """Schema for a frozen monthly commission invoice."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vendor_id: UUID
    year: int
    month: int
    invoice_number: str
    total_ttc: Decimal
    total_commission_excl_vat: Decimal
    total_commission_vat: Decimal
    total_commission_incl_vat: Decimal
    total_net: Decimal
    payment_count: int
    created_at: datetime


class CommissionTotals(BaseModel):
    excl_vat: Decimal
    vat: Decimal
    incl_vat: Decimal


class InvoiceSummary(BaseModel):
    total_revenue_earned: Decimal
    total_commission_deducted: CommissionTotals
    net_amount_received: Decimal


class InvoiceGroup(BaseModel):
    count: int
    total_revenue: Decimal
    commission_deducted: Decimal
    net_amount: Decimal


class InvoiceLine(BaseModel):
    id: UUID
    payment_date: date
    payment_type: str
    order_id: UUID | None
    reservation_id: UUID | None
    total_amount_ttc: Decimal
    commission_rate: Decimal
    commission_deducted: Decimal
    net_amount: Decimal
    transfer_status: str


class InvoicePeriod(BaseModel):
    start_date: date
    end_date: date


class InvoiceDetailResponse(BaseModel):
    """Invoice with summary, full/partial breakdown and line items."""

    invoice: MonthlyInvoiceResponse
    month_name: str
    summary: InvoiceSummary
    breakdown: dict[str, InvoiceGroup]
    transactions: list[InvoiceLine]
    period: InvoicePeriod
