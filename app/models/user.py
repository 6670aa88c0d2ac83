"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.blane import Blane


class User(Base):
    """Platform actor: admin, vendor or end user.

    Credentials live in the identity provider; only the attributes the
    booking and settlement flows need are kept here.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")  # admin, vendor, user

    # Vendor profile
    company_name: Mapped[str | None] = mapped_column(String(255), index=True)
    custom_commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    rib_account: Mapped[str | None] = mapped_column(Text)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    blanes: Mapped[list["Blane"]] = relationship("Blane", back_populates="vendor")

    @property
    def is_vendor(self) -> bool:
        return self.role == "vendor"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
