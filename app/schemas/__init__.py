"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    CancelRequest,
    OrderCreate,
    OrderCreatedResponse,
    OrderResponse,
    ReservationCreate,
    ReservationCreatedResponse,
    ReservationResponse,
    StatusUpdate,
    VendorOrderCreate,
    VendorReservationCreate,
)
from app.schemas.commission import (
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    VendorCommissionCreate,
    VendorCommissionResponse,
)
from app.schemas.payment import PaymentInitiateRequest, PaymentRedirectResponse
from app.schemas.reporting import (
    ExpectedReimbursement,
    InvoiceDetailResponse,
    MonthlyInvoiceResponse,
    VendorOverview,
    VendorStatistics,
)
from app.schemas.vendor_payment import (
    BankingReportResponse,
    VendorPaymentListResponse,
    VendorPaymentLogResponse,
    VendorPaymentResponse,
    WeeklyPaymentsResponse,
)

__all__ = [
    "BankingReportResponse",
    "CancelRequest",
    "CommissionSettingsResponse",
    "CommissionSettingsUpdate",
    "ExpectedReimbursement",
    "InvoiceDetailResponse",
    "MonthlyInvoiceResponse",
    "OrderCreate",
    "OrderCreatedResponse",
    "OrderResponse",
    "PaymentInitiateRequest",
    "PaymentRedirectResponse",
    "ReservationCreate",
    "ReservationCreatedResponse",
    "ReservationResponse",
    "StatusUpdate",
    "VendorCommissionCreate",
    "VendorCommissionResponse",
    "VendorOrderCreate",
    "VendorOverview",
    "VendorPaymentListResponse",
    "VendorPaymentLogResponse",
    "VendorPaymentResponse",
    "VendorReservationCreate",
    "VendorStatistics",
    "WeeklyPaymentsResponse",
]
