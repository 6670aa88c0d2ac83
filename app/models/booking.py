"""Booking database models: customers, orders and reservations."""

from __future__ import annotations

import uuid
import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.blane import Blane


class Customer(Base):
    """Contact details captured with each booking."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    city: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class BookingMixin:
    """Columns shared by orders and reservations."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), index=True)
    phone: Mapped[str | None] = mapped_column(String(20))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    partiel_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)  # cash, online, partiel
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="pending", index=True)

    cancel_token: Mapped[str | None] = mapped_column(String(64))
    cancel_token_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    comments: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str | None] = mapped_column(String(20))  # web, mobile, agent
    vendor_override: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def payment_amount(self) -> Decimal:
        """Amount charged online: the deposit for partial payments."""
        if self.payment_method == "partiel":
            return self.partiel_price
        return self.total_price


class Order(BookingMixin, Base):
    """One-shot purchase consuming Blane stock."""

    __tablename__ = "orders"

    NUM_ORD: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    blane_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("blanes.id"), nullable=False, index=True)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("customers.id"), nullable=False)
    delivery_address: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(255))

    blane: Mapped["Blane"] = relationship("Blane")
    customer: Mapped["Customer"] = relationship("Customer")

    @property
    def code(self) -> str:
        return self.NUM_ORD


class Reservation(BookingMixin, Base):
    """Scheduled booking against per-day and per-slot capacity."""

    __tablename__ = "reservations"

    NUM_RES: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    blane_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("blanes.id"), nullable=False, index=True)
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("customers.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    end_date: Mapped[dt.date | None] = mapped_column(Date)
    number_persons: Mapped[int] = mapped_column(Integer, default=1)
    city: Mapped[str | None] = mapped_column(String(255))

    blane: Mapped["Blane"] = relationship("Blane")
    customer: Mapped["Customer"] = relationship("Customer")

    @property
    def code(self) -> str:
        return self.NUM_RES
