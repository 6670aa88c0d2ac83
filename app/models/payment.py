"""Payment-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow


class Transaction(Base):
    """Captured gateway callback for exactly one order or reservation.

    ``transid`` is unique so a replayed callback cannot settle twice.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "(order_id IS NULL) <> (reservation_id IS NULL)",
            name="ck_transactions_single_target",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("orders.id"), index=True)
    reservation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("reservations.id"), index=True
    )

    # Gateway
    transid: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    proc_return_code: Mapped[str | None] = mapped_column(String(10))
    response: Mapped[str | None] = mapped_column(String(50))
    auth_code: Mapped[str | None] = mapped_column(String(50))
    transaction_date: Mapped[str | None] = mapped_column(String(50))  # EXTRA.TRXDATE as sent
    gateway_response: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
