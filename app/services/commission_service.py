"""Commission calculation service.

CRITICAL BUSINESS LOGIC:
- The platform deducts a VAT-inclusive commission from every online payment
- Base rate resolution order: vendor override -> vendor+category rate ->
  category default -> category-wide rate -> 0
- Partial (deposit) payments use the global partial rate when it is lower
  than the base rate, otherwise it acts as a percentage of the base rate
- Every amount is rounded to 2 decimals when computed, and
  net + commission incl. VAT always equals the amount paid
"""

import logging
import uuid
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.blane import Category
from app.models.commission import CommissionSettings, VendorCommission
from app.models.user import User

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")
HUNDRED = Decimal("100")
PARTIAL_FALLBACK_FACTOR = Decimal("0.5")


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CommissionConfig:
    """Snapshot of the global commission settings."""

    partial_payment_commission_rate: Decimal
    vat_rate: Decimal
    transfer_processing_day: str
    daba_blane_account_iban: str | None

    @classmethod
    def from_app_settings(cls) -> "CommissionConfig":
        return cls(
            partial_payment_commission_rate=settings.partial_payment_commission_rate,
            vat_rate=settings.vat_rate,
            transfer_processing_day=settings.transfer_processing_day,
            daba_blane_account_iban=settings.daba_blane_account_iban or None,
        )

    @classmethod
    def from_model(cls, row: CommissionSettings) -> "CommissionConfig":
        return cls(
            partial_payment_commission_rate=Decimal(row.partial_payment_commission_rate),
            vat_rate=Decimal(row.vat_rate),
            transfer_processing_day=row.transfer_processing_day,
            daba_blane_account_iban=row.daba_blane_account_iban,
        )


@dataclass(frozen=True)
class CommissionBreakdown:
    """Commission split of one payment."""

    total_ttc: Decimal
    rate: Decimal
    excl_vat: Decimal
    vat: Decimal
    incl_vat: Decimal
    net_amount: Decimal

    def as_dict(self) -> dict:
        return {
            "total_ttc": self.total_ttc,
            "commission_rate": self.rate,
            "commission_excl_vat": self.excl_vat,
            "commission_vat": self.vat,
            "commission_incl_vat": self.incl_vat,
            "net_amount_ttc": self.net_amount,
        }


class CommissionService:
    """Service for resolving commission rates and splitting payments."""

    def __init__(self, config: CommissionConfig | None = None) -> None:
        self._config = config or CommissionConfig.from_app_settings()

    @property
    def config(self) -> CommissionConfig:
        return self._config

    def configure(self, config: CommissionConfig) -> None:
        self._config = config

    # ==================== SETTINGS ====================

    async def load_settings(self, db: AsyncSession) -> CommissionConfig:
        """Load (creating if missing) the settings row and inject it.

        Called once at startup and after every admin update.
        """
        result = await db.execute(select(CommissionSettings).where(CommissionSettings.id == 1))
        row = result.scalar_one_or_none()
        if row is None:
            defaults = CommissionConfig.from_app_settings()
            row = CommissionSettings(
                id=1,
                partial_payment_commission_rate=defaults.partial_payment_commission_rate,
                vat_rate=defaults.vat_rate,
                transfer_processing_day=defaults.transfer_processing_day,
                daba_blane_account_iban=defaults.daba_blane_account_iban,
            )
            db.add(row)
            await db.flush()
            logger.info("Created default commission settings")

        self.configure(CommissionConfig.from_model(row))
        return self._config

    async def update_settings(self, db: AsyncSession, **changes) -> CommissionConfig:
        """Persist changed settings and reload the injected snapshot."""
        await self.load_settings(db)
        result = await db.execute(select(CommissionSettings).where(CommissionSettings.id == 1))
        row = result.scalar_one()
        for field, value in changes.items():
            if value is not None:
                setattr(row, field, value)
        await db.flush()
        self.configure(replace(self._config, **{k: v for k, v in changes.items() if v is not None}))
        logger.info(f"Commission settings updated: {sorted(k for k, v in changes.items() if v is not None)}")
        return self._config

    # ==================== RATES ====================

    async def get_base_rate(
        self,
        db: AsyncSession,
        vendor_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
    ) -> Decimal:
        """Resolve the base commission rate.

        Args:
            db: Database session
            vendor_id: Vendor receiving the payout
            category_id: Category of the booked Blane

        Returns:
            Decimal: Rate as percentage (e.g., 10.00 for 10%)
        """
        if vendor_id is not None:
            vendor = await db.get(User, vendor_id)
            if vendor and vendor.custom_commission_rate is not None:
                return Decimal(vendor.custom_commission_rate)

        if category_id is None:
            return Decimal("0")

        if vendor_id is not None:
            result = await db.execute(
                select(VendorCommission.commission_rate)
                .where(
                    VendorCommission.vendor_id == vendor_id,
                    VendorCommission.category_id == category_id,
                    VendorCommission.is_active.is_(True),
                )
                .limit(1)
            )
            rate = result.scalar_one_or_none()
            if rate is not None:
                return Decimal(rate)

        category = await db.get(Category, category_id)
        if category and category.default_commission_rate is not None:
            return Decimal(category.default_commission_rate)

        result = await db.execute(
            select(VendorCommission.commission_rate)
            .where(
                VendorCommission.vendor_id.is_(None),
                VendorCommission.category_id == category_id,
                VendorCommission.is_active.is_(True),
            )
            .limit(1)
        )
        rate = result.scalar_one_or_none()
        return Decimal(rate) if rate is not None else Decimal("0")

    def apply_partial_rate(self, base_rate: Decimal) -> Decimal:
        """Rate for a partial payment given the base rate.

        A positive global partial rate replaces the base rate when lower and
        scales it (base * partial / 100) otherwise; without a partial rate the
        base rate is halved.
        """
        partial_rate = Decimal(self._config.partial_payment_commission_rate)
        if partial_rate > 0:
            if partial_rate < base_rate:
                return partial_rate
            return (base_rate * partial_rate / HUNDRED).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)
        return (base_rate * PARTIAL_FALLBACK_FACTOR).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    async def resolve_rate(
        self,
        db: AsyncSession,
        vendor_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
        payment_type: str = "full",
    ) -> Decimal:
        base_rate = await self.get_base_rate(db, vendor_id, category_id)
        if payment_type == "partial":
            return self.apply_partial_rate(base_rate)
        return base_rate

    # ==================== AMOUNTS ====================

    def calculate_commission(self, total_ttc: Decimal, rate: Decimal) -> CommissionBreakdown:
        """Split a VAT-inclusive payment into commission and vendor net.

        Args:
            total_ttc: Amount paid, VAT included
            rate: Commission rate as percentage

        Returns:
            CommissionBreakdown with every amount rounded to 2 decimals
        """
        total = round_money(total_ttc)
        excl_vat = round_money(total * Decimal(rate) / HUNDRED)
        vat = round_money(excl_vat * Decimal(self._config.vat_rate) / HUNDRED)
        incl_vat = excl_vat + vat
        net_amount = total - incl_vat

        return CommissionBreakdown(
            total_ttc=total,
            rate=Decimal(rate),
            excl_vat=excl_vat,
            vat=vat,
            incl_vat=incl_vat,
            net_amount=net_amount,
        )


commission_service = CommissionService()
