"""Blane (deal) and category models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.user import User


class Category(Base):
    """Blane category with an optional default commission rate."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))


class Blane(Base):
    """A sellable deal: one-shot purchase (order) or scheduled (reservation)."""

    __tablename__ = "blanes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="order")  # order, reservation
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, inactive, expired

    # Ownership
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), index=True
    )
    commerce_name: Mapped[str | None] = mapped_column(String(255), index=True)  # legacy vendor key
    commerce_phone: Mapped[str | None] = mapped_column(String(20))
    category_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("categories.id"))

    # Pricing & delivery
    price_current: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    city: Mapped[str | None] = mapped_column(String(255))
    is_digital: Mapped[bool] = mapped_column(Boolean, default=False)
    livraison_in_city: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    livraison_out_city: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # Order capacity
    stock: Mapped[int] = mapped_column(Integer, default=0)
    max_orders: Mapped[int] = mapped_column(Integer, default=0)  # per order, 0 = unlimited
    availability_per_day: Mapped[int | None] = mapped_column(Integer)  # None = unlimited, 0 = closed

    # Reservation capacity
    max_reservation_par_creneau: Mapped[int | None] = mapped_column(Integer)
    nombre_max_reservation: Mapped[int] = mapped_column(Integer, default=0)
    type_time: Mapped[str | None] = mapped_column(String(20))  # time, date
    heure_debut: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    heure_fin: Mapped[str | None] = mapped_column(String(5))
    intervale_reservation: Mapped[int | None] = mapped_column(Integer)  # minutes

    # Validity
    start_date: Mapped[date | None] = mapped_column(Date)
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    vendor: Mapped["User | None"] = relationship("User", back_populates="blanes")
    category: Mapped["Category | None"] = relationship("Category")

    @property
    def is_reservation(self) -> bool:
        return self.type == "reservation"
