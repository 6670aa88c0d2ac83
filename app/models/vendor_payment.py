"""Vendor settlement ledger models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow


class VendorPayment(Base):
    """Net payout owed to a vendor for one paid online booking."""

    __tablename__ = "vendor_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    order_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("orders.id"), unique=True
    )
    reservation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("reservations.id"), unique=True
    )

    # Amounts (TTC = VAT included)
    total_amount_ttc: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(10), nullable=False)  # full, partial
    commission_rate_applied: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    commission_amount_excl_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_amount_incl_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_amount_ttc: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Transfer lifecycle
    transfer_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )  # pending, processed, complete
    transfer_date: Mapped[date | None] = mapped_column(Date)
    processed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Periods
    booking_date: Mapped[date | None] = mapped_column(Date)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    week_end: Mapped[date] = mapped_column(Date, nullable=False)

    # Banking
    debit_account: Mapped[str | None] = mapped_column(String(255))
    credit_account: Mapped[str | None] = mapped_column(Text)
    reason: Mapped[str | None] = mapped_column(Text)
    note: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def booking_reference(self) -> str:
        return "order" if self.order_id else "reservation"


class VendorPaymentLog(Base):
    """Append-only audit entry for ledger transitions."""

    __tablename__ = "vendor_payment_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_payment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("vendor_payments.id"), index=True
    )  # None for bulk summary rows
    admin_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String(20))
    new_status: Mapped[str | None] = mapped_column(String(20))
    affected_rows: Mapped[int] = mapped_column(Integer, default=1)
    admin_note: Mapped[str | None] = mapped_column(Text)
    changes: Mapped[dict | None] = mapped_column(JSON)  # field -> {"from", "to"}
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class VendorMonthlyInvoice(Base):
    """Monthly commission invoice, totals frozen at generation."""

    __tablename__ = "vendor_monthly_invoices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    total_ttc: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_commission_excl_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_commission_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_commission_incl_vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_net: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
