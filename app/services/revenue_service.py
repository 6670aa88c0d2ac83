"""Vendor revenue reporting and monthly commission invoices.

Every read is scoped by an explicit VendorContext.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.vendor_context import VendorContext
from app.domain.capacity import week_bounds
from app.models.blane import Blane
from app.models.vendor_payment import VendorMonthlyInvoice, VendorPayment
from app.services.commission_service import commission_service
from app.utils.booking_number import generate_invoice_number
from app.utils.dates import local_today, month_bounds, next_weekday

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _sum(payments: list[VendorPayment], attr: str) -> Decimal:
    return sum((getattr(p, attr) for p in payments), ZERO)


def _subtract_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    _, last = month_bounds(year, month + 1)
    return date(year, month + 1, min(day.day, last.day))


class RevenueService:
    """Service for vendor-facing revenue reports."""

    async def _payments(self, db: AsyncSession, ctx: VendorContext, *criteria) -> list[VendorPayment]:
        result = await db.execute(
            select(VendorPayment)
            .where(VendorPayment.vendor_id == ctx.vendor_id, *criteria)
            .order_by(VendorPayment.payment_date.desc(), VendorPayment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_oversold_blanes(self, db: AsyncSession, ctx: VendorContext) -> list[dict]:
        """Blanes whose stock went negative through vendor overrides."""
        ownership = Blane.vendor_id == ctx.vendor_id
        if ctx.company_name:
            ownership = or_(
                ownership,
                (Blane.vendor_id.is_(None)) & (Blane.commerce_name == ctx.company_name),
            )
        result = await db.execute(select(Blane).where(ownership, Blane.stock < 0))
        return [
            {"id": blane.id, "name": blane.name, "slug": blane.slug, "stock": blane.stock}
            for blane in result.scalars().all()
        ]

    async def get_vendor_overview(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        week_start: date | None = None,
    ) -> dict:
        """Totals per transfer status and payment type, plus this week's payout."""
        week_start, week_end = week_bounds(week_start or local_today())
        last_week_start, last_week_end = week_bounds(week_start - timedelta(days=7))

        payments = await self._payments(db, ctx)
        open_payments = [p for p in payments if p.transfer_status in ("pending", "processed")]
        current_week = [
            p for p in open_payments if p.week_start >= week_start and p.week_end <= week_end
        ]
        last_week = [
            p for p in open_payments
            if p.week_start >= last_week_start and p.week_end <= last_week_end
        ]

        by_status = {}
        for status in ("pending", "processed", "complete"):
            rows = [p for p in payments if p.transfer_status == status]
            by_status[status] = {
                "count": len(rows),
                "total_amount_ttc": _sum(rows, "total_amount_ttc"),
                "net_amount_ttc": _sum(rows, "net_amount_ttc"),
            }

        def split(payment_type: str) -> dict:
            rows = [p for p in open_payments if p.payment_type == payment_type]
            return {
                "total_amount_ttc": _sum(rows, "total_amount_ttc"),
                "expected_reimbursement": _sum(
                    [p for p in rows if p.transfer_status == "pending"], "net_amount_ttc"
                ),
                "count": len(rows),
            }

        config = commission_service.config
        return {
            "total_online_revenue_ttc": _sum(open_payments, "total_amount_ttc"),
            "expected_reimbursement_week": _sum(
                [p for p in current_week if p.transfer_status == "pending"], "net_amount_ttc"
            ),
            "full_payments": split("full"),
            "partial_payments": split("partial"),
            "by_status": by_status,
            "commission_structure": {
                "partial_payment_rate": config.partial_payment_commission_rate,
                "vat_rate": config.vat_rate,
            },
            "scheduled_transfer_date": next_weekday(local_today(), config.transfer_processing_day),
            "last_week_expected_amount": _sum(
                [p for p in last_week if p.transfer_status == "pending"], "net_amount_ttc"
            ),
            "transfer_status_summary": {
                "pending_count": sum(1 for p in current_week if p.transfer_status == "pending"),
                "processed_count": sum(1 for p in current_week if p.transfer_status == "processed"),
            },
            "oversold_blanes": await self.get_oversold_blanes(db, ctx),
        }

    async def get_vendor_transactions(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        months: int = 6,
    ) -> list[VendorPayment]:
        if months < 1:
            raise ValidationError("Validation failed", errors={"months": "must be at least 1"})
        since = _subtract_months(local_today(), months)
        return await self._payments(db, ctx, VendorPayment.payment_date >= since)

    async def get_expected_reimbursement(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        week_start: date | None = None,
    ) -> dict:
        """Pending net amount for one Monday-Sunday week."""
        week_start, week_end = week_bounds(week_start or local_today())
        payments = await self._payments(
            db,
            ctx,
            VendorPayment.week_start >= week_start,
            VendorPayment.week_end <= week_end,
            VendorPayment.transfer_status == "pending",
        )
        return {
            "week_start": week_start,
            "week_end": week_end,
            "total_amount_ttc": _sum(payments, "net_amount_ttc"),
            "payment_count": len(payments),
            "payments": payments,
        }

    async def get_vendor_statistics(self, db: AsyncSession, ctx: VendorContext) -> dict:
        payments = await self._payments(db, ctx)
        count = len(payments)
        average_rate = (
            (_sum(payments, "commission_rate_applied") / count).quantize(Decimal("0.01"))
            if count else ZERO
        )

        monthly: dict[str, dict] = defaultdict(
            lambda: {"count": 0, "total_amount_ttc": ZERO, "commission": ZERO, "net_amount": ZERO}
        )
        for payment in payments:
            bucket = monthly[payment.payment_date.strftime("%Y-%m")]
            bucket["count"] += 1
            bucket["total_amount_ttc"] += payment.total_amount_ttc
            bucket["commission"] += payment.commission_amount_incl_vat
            bucket["net_amount"] += payment.net_amount_ttc

        return {
            "total_revenue": _sum(payments, "total_amount_ttc"),
            "total_commission_paid": _sum(payments, "commission_amount_incl_vat"),
            "total_reimbursed": _sum(
                [p for p in payments if p.transfer_status in ("processed", "complete")],
                "net_amount_ttc",
            ),
            "pending_reimbursement": _sum(
                [p for p in payments if p.transfer_status == "pending"], "net_amount_ttc"
            ),
            "total_transactions": count,
            "full_payments_count": sum(1 for p in payments if p.payment_type == "full"),
            "partial_payments_count": sum(1 for p in payments if p.payment_type == "partial"),
            "average_commission_rate": average_rate,
            "by_month": [{"month": key, **monthly[key]} for key in sorted(monthly)],
        }

    # ==================== INVOICES ====================

    async def _month_payments(
        self, db: AsyncSession, ctx: VendorContext, year: int, month: int
    ) -> list[VendorPayment]:
        if not 1 <= month <= 12:
            raise ValidationError("Validation failed", errors={"month": "must be between 1 and 12"})
        start, end = month_bounds(year, month)
        return await self._payments(
            db, ctx, VendorPayment.payment_date >= start, VendorPayment.payment_date <= end
        )

    async def _existing_invoice(
        self, db: AsyncSession, ctx: VendorContext, year: int, month: int
    ) -> VendorMonthlyInvoice | None:
        result = await db.execute(
            select(VendorMonthlyInvoice).where(
                VendorMonthlyInvoice.vendor_id == ctx.vendor_id,
                VendorMonthlyInvoice.year == year,
                VendorMonthlyInvoice.month == month,
            )
        )
        return result.scalars().first()

    async def generate_monthly_invoice(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        year: int,
        month: int,
    ) -> VendorMonthlyInvoice:
        """Return the month's invoice, creating it with frozen totals if absent."""
        payments = await self._month_payments(db, ctx, year, month)
        existing = await self._existing_invoice(db, ctx, year, month)
        if existing:
            return existing

        invoice = VendorMonthlyInvoice(
            vendor_id=ctx.vendor_id,
            year=year,
            month=month,
            invoice_number=generate_invoice_number(year, month, ctx.vendor_id),
            total_ttc=_sum(payments, "total_amount_ttc"),
            total_commission_excl_vat=_sum(payments, "commission_amount_excl_vat"),
            total_commission_vat=_sum(payments, "commission_vat"),
            total_commission_incl_vat=_sum(payments, "commission_amount_incl_vat"),
            total_net=_sum(payments, "net_amount_ttc"),
            payment_count=len(payments),
        )
        db.add(invoice)
        await db.flush()

        logger.info(
            f"Invoice {invoice.invoice_number} generated for vendor {ctx.vendor_id} "
            f"{year}-{month:02d}: {len(payments)} payment(s)"
        )
        return invoice

    async def create_monthly_invoice(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        year: int,
        month: int,
    ) -> dict:
        """Invoice plus summary, full/partial breakdown and line items."""
        payments = await self._month_payments(db, ctx, year, month)
        invoice = await self.generate_monthly_invoice(db, ctx, year, month)
        start, end = month_bounds(year, month)

        def group(payment_type: str) -> dict:
            rows = [p for p in payments if p.payment_type == payment_type]
            return {
                "count": len(rows),
                "total_revenue": _sum(rows, "total_amount_ttc"),
                "commission_deducted": _sum(rows, "commission_amount_incl_vat"),
                "net_amount": _sum(rows, "net_amount_ttc"),
            }

        return {
            "invoice": invoice,
            "month_name": start.strftime("%B %Y"),
            "summary": {
                "total_revenue_earned": _sum(payments, "total_amount_ttc"),
                "total_commission_deducted": {
                    "excl_vat": _sum(payments, "commission_amount_excl_vat"),
                    "vat": _sum(payments, "commission_vat"),
                    "incl_vat": _sum(payments, "commission_amount_incl_vat"),
                },
                "net_amount_received": _sum(payments, "net_amount_ttc"),
            },
            "breakdown": {"full_payments": group("full"), "partial_payments": group("partial")},
            "transactions": [
                {
                    "id": p.id,
                    "payment_date": p.payment_date,
                    "payment_type": p.payment_type,
                    "order_id": p.order_id,
                    "reservation_id": p.reservation_id,
                    "total_amount_ttc": p.total_amount_ttc,
                    "commission_rate": p.commission_rate_applied,
                    "commission_deducted": p.commission_amount_incl_vat,
                    "net_amount": p.net_amount_ttc,
                    "transfer_status": p.transfer_status,
                }
                for p in sorted(payments, key=lambda p: p.payment_date)
            ],
            "period": {"start_date": start, "end_date": end},
        }


revenue_service = RevenueService()
