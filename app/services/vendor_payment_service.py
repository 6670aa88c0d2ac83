"""Vendor payment ledger service.

One VendorPayment per paid online booking; admins move rows through the
transfer lifecycle and every transition appends a VendorPaymentLog.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.capacity import week_bounds
from app.domain.transfer_state import (
    TRANSFER_STATUSES,
    assert_transfer_status,
    assert_transfer_transition,
)
from app.models.blane import Blane
from app.models.booking import Order, Reservation
from app.models.user import User
from app.models.vendor_payment import VendorPayment, VendorPaymentLog
from app.services.commission_service import commission_service
from app.services.vendor_resolution import resolve_vendor
from app.utils.dates import local_today, to_local_date

logger = logging.getLogger(__name__)

REIMBURSEMENT_REASON = "Reimbursement of payment via DabaBlane platform net of platform commission"
MISSING_IBAN = "[IBAN]"

# Row fields an admin may correct through the update endpoint
EDITABLE_FIELDS = (
    "transfer_date",
    "debit_account",
    "credit_account",
    "reason",
    "booking_date",
    "payment_date",
)
AUDITED_FIELDS = ("transfer_status", *EDITABLE_FIELDS, "note")


def assert_payable_booking(booking: Order | Reservation) -> None:
    """Guard: only online payments with a positive amount are settled to vendors."""
    if booking.payment_method == "cash":
        raise ValidationError(
            "Cash bookings do not create vendor payments",
            errors={"payment_method": "cash"},
        )
    if booking.payment_amount is None or Decimal(booking.payment_amount) <= 0:
        raise ValidationError(
            "Payment amount must be positive",
            errors={"amount": str(booking.payment_amount)},
        )


@dataclass
class LedgerFilters:
    """Admin ledger listing filters."""

    vendor_id: uuid.UUID | None = None
    status: str | None = None
    payment_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    week_start: date | None = None


class VendorPaymentService:
    """Service for the vendor payout ledger."""

    # ==================== CREATION ====================

    async def get_for_booking(
        self, db: AsyncSession, booking: Order | Reservation
    ) -> VendorPayment | None:
        column = VendorPayment.order_id if isinstance(booking, Order) else VendorPayment.reservation_id
        result = await db.execute(select(VendorPayment).where(column == booking.id))
        return result.scalar_one_or_none()

    async def create_for_booking(
        self,
        db: AsyncSession,
        booking: Order | Reservation,
        payment_date: date | None = None,
    ) -> VendorPayment:
        """Create the ledger row for a paid online booking.

        Args:
            db: Database session
            booking: Paid order or reservation
            payment_date: Local date of the capture (defaults to today)

        Returns:
            VendorPayment: Existing or newly created row

        Raises:
            ValidationError: For cash bookings or non-positive amounts
            NotFoundError: If no vendor can be resolved
        """
        assert_payable_booking(booking)

        existing = await self.get_for_booking(db, booking)
        if existing:
            return existing

        blane = await db.get(Blane, booking.blane_id)
        if blane is None:
            raise NotFoundError("Blane", str(booking.blane_id))

        vendor = await resolve_vendor(db, booking.vendor_id or blane.vendor_id, blane.commerce_name)
        if vendor is None:
            raise NotFoundError("Vendor", blane.commerce_name or str(blane.id))

        payment_type = "partial" if booking.payment_method == "partiel" else "full"
        rate = await commission_service.resolve_rate(db, vendor.id, blane.category_id, payment_type)
        breakdown = commission_service.calculate_commission(booking.payment_amount, rate)

        payment_date = payment_date or local_today()
        week_start, week_end = week_bounds(payment_date)
        iban = commission_service.config.daba_blane_account_iban or MISSING_IBAN

        payment = VendorPayment(
            vendor_id=vendor.id,
            order_id=booking.id if isinstance(booking, Order) else None,
            reservation_id=booking.id if isinstance(booking, Reservation) else None,
            total_amount_ttc=breakdown.total_ttc,
            payment_type=payment_type,
            commission_rate_applied=breakdown.rate,
            commission_amount_excl_vat=breakdown.excl_vat,
            commission_vat=breakdown.vat,
            commission_amount_incl_vat=breakdown.incl_vat,
            net_amount_ttc=breakdown.net_amount,
            transfer_status="pending",
            booking_date=to_local_date(booking.created_at) if booking.created_at else None,
            payment_date=payment_date,
            week_start=week_start,
            week_end=week_end,
            debit_account=f"DabaBlane corporate account – {iban}",
            credit_account=vendor.rib_account,
            reason=REIMBURSEMENT_REASON,
        )
        db.add(payment)
        await db.flush()

        logger.info(
            f"Vendor payment {payment.id} created for {booking.code}: "
            f"total={breakdown.total_ttc} rate={breakdown.rate} net={breakdown.net_amount}"
        )
        return payment

    # ==================== TRANSITIONS ====================

    async def get_payment(self, db: AsyncSession, payment_id: uuid.UUID) -> VendorPayment:
        result = await db.execute(
            select(VendorPayment)
            .where(VendorPayment.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Vendor payment", str(payment_id))
        return payment

    def _log(
        self,
        db: AsyncSession,
        admin_id: uuid.UUID,
        action: str,
        payment_id: uuid.UUID | None = None,
        previous_status: str | None = None,
        new_status: str | None = None,
        affected_rows: int = 1,
        note: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> VendorPaymentLog:
        entry = VendorPaymentLog(
            vendor_payment_id=payment_id,
            admin_id=admin_id,
            action=action,
            previous_status=previous_status,
            new_status=new_status,
            affected_rows=affected_rows,
            admin_note=note,
            changes=changes,
        )
        db.add(entry)
        return entry

    @staticmethod
    def _snapshot(payment: VendorPayment) -> dict[str, Any]:
        """Audited values in JSON form."""
        values = {}
        for field in AUDITED_FIELDS:
            value = getattr(payment, field)
            values[field] = value.isoformat() if isinstance(value, date) else value
        return values

    @staticmethod
    def _diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
        return {
            field: {"from": before[field], "to": after[field]}
            for field in AUDITED_FIELDS
            if before[field] != after[field]
        }

    async def mark_as_processed(
        self,
        db: AsyncSession,
        payment_ids: list[uuid.UUID],
        admin_id: uuid.UUID,
        note: str | None = None,
        transfer_date: date | None = None,
    ) -> list[VendorPayment]:
        """Mark pending payments as transferred.

        Rows not in ``pending`` are skipped.

        Args:
            db: Database session
            payment_ids: Ledger rows to mark
            admin_id: Acting admin
            note: Optional note copied onto each row
            transfer_date: Date the bank transfer was issued (defaults to today)

        Returns:
            The rows that changed status
        """
        if not payment_ids:
            raise ValidationError("No payments selected", errors={"ids": "required"})

        result = await db.execute(
            select(VendorPayment)
            .where(
                VendorPayment.id.in_(payment_ids),
                VendorPayment.transfer_status == "pending",
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        payments = list(result.scalars().all())
        if not payments:
            logger.info(f"mark_as_processed: none of {len(payment_ids)} payment(s) are pending")
            return []

        now = datetime.now(UTC)
        transfer_date = transfer_date or local_today()
        for payment in payments:
            before = self._snapshot(payment)
            payment.transfer_status = "processed"
            payment.transfer_date = transfer_date
            payment.processed_by = admin_id
            payment.processed_at = now
            if note:
                payment.note = note
            self._log(
                db,
                admin_id,
                "mark_processed",
                payment.id,
                "pending",
                "processed",
                note=note,
                changes=self._diff(before, self._snapshot(payment)),
            )

        self._log(
            db,
            admin_id,
            "bulk_mark_processed",
            previous_status="pending",
            new_status="processed",
            affected_rows=len(payments),
            note=note or f"Bulk update: {len(payments)} payments marked as processed",
        )
        await db.flush()

        logger.info(
            f"Admin {admin_id} marked {len(payments)} vendor payment(s) as processed, "
            f"transfer_date={transfer_date}"
        )
        return payments

    async def revert_to_pending(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        admin_id: uuid.UUID,
        note: str,
    ) -> VendorPayment:
        """Send a processed or complete payment back to pending."""
        if not note or not note.strip():
            raise ValidationError("A note is required to revert a payment", errors={"note": "required"})

        payment = await self.get_payment(db, payment_id)
        previous = payment.transfer_status
        assert_transfer_transition(previous, "pending")

        before = self._snapshot(payment)
        payment.transfer_status = "pending"
        payment.transfer_date = None
        payment.processed_by = None
        payment.processed_at = None
        payment.note = note
        self._log(
            db,
            admin_id,
            "revert_to_pending",
            payment.id,
            previous,
            "pending",
            note=note,
            changes=self._diff(before, self._snapshot(payment)),
        )
        await db.flush()

        logger.info(f"Vendor payment {payment.id} reverted {previous} -> pending by {admin_id}")
        return payment

    async def update_payment_status(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        status: str | None,
        admin_id: uuid.UUID,
        note: str | None = None,
        edits: dict[str, Any] | None = None,
    ) -> VendorPayment:
        """Change a payment's transfer status and/or correct its banking data.

        A status change is checked against the transfer lifecycle. Keeping
        the current status (or passing ``None``) with field edits is a data
        correction, logged as ``payment_updated``. Every entry carries the
        before/after values of what changed.

        Args:
            db: Database session
            payment_id: Ledger row
            status: Target transfer status, or None to keep the current one
            admin_id: Acting admin
            note: Optional admin note
            edits: Values for any of ``EDITABLE_FIELDS``; None values are ignored

        Raises:
            ValidationError: Unknown field, nothing to change, or a transfer
                date on a pending payment
            StateConflictError: Transition not allowed
        """
        if status is not None:
            assert_transfer_status(status)
        edits = {field: value for field, value in (edits or {}).items() if value is not None}
        unknown = sorted(set(edits) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(
                "Fields cannot be edited",
                errors={field: "not editable" for field in unknown},
            )

        payment = await self.get_payment(db, payment_id)
        previous = payment.transfer_status
        target = status or previous
        status_changed = target != previous
        if status_changed:
            assert_transfer_transition(previous, target)
        elif not edits and not note:
            raise ValidationError(
                "Nothing to update",
                errors={"status": f"already {previous}"},
            )
        if target == "pending" and "transfer_date" in edits:
            raise ValidationError(
                "A pending payment has no transfer date",
                errors={"transfer_date": "only allowed once processed"},
            )

        before = self._snapshot(payment)
        payment.transfer_status = target
        if status_changed and target == "pending":
            payment.transfer_date = None
            payment.processed_by = None
            payment.processed_at = None
        elif status_changed:
            payment.transfer_date = edits.get("transfer_date") or payment.transfer_date or local_today()
            payment.processed_by = admin_id
            payment.processed_at = datetime.now(UTC)

        for field, value in edits.items():
            setattr(payment, field, value)
        if "payment_date" in edits:
            payment.week_start, payment.week_end = week_bounds(payment.payment_date)
        if note:
            payment.note = note

        changes = self._diff(before, self._snapshot(payment))
        action = "status_update" if status_changed else "payment_updated"
        self._log(
            db,
            admin_id,
            action,
            payment.id,
            previous,
            target,
            note=note,
            changes=changes,
        )
        await db.flush()

        logger.info(
            f"Vendor payment {payment.id} {action} {previous} -> {target} by {admin_id}: "
            f"{', '.join(changes) or 'no field changes'}"
        )
        return payment

    # ==================== QUERIES ====================

    def _filtered(self, filters: LedgerFilters):
        query = select(VendorPayment)
        if filters.vendor_id:
            query = query.where(VendorPayment.vendor_id == filters.vendor_id)
        if filters.status:
            assert_transfer_status(filters.status)
            query = query.where(VendorPayment.transfer_status == filters.status)
        if filters.payment_type:
            query = query.where(VendorPayment.payment_type == filters.payment_type)
        if filters.start_date:
            query = query.where(VendorPayment.payment_date >= filters.start_date)
        if filters.end_date:
            query = query.where(VendorPayment.payment_date <= filters.end_date)
        if filters.week_start:
            query = query.where(VendorPayment.week_start == filters.week_start)
        return query

    async def list_payments(
        self,
        db: AsyncSession,
        filters: LedgerFilters,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[VendorPayment], int]:
        query = self._filtered(filters)
        total = (
            await db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()

        result = await db.execute(
            query.order_by(VendorPayment.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def all_payments(self, db: AsyncSession, filters: LedgerFilters) -> list[VendorPayment]:
        result = await db.execute(
            self._filtered(filters).order_by(VendorPayment.payment_date, VendorPayment.created_at)
        )
        return list(result.scalars().all())

    async def get_logs(self, db: AsyncSession, payment_id: uuid.UUID) -> list[VendorPaymentLog]:
        result = await db.execute(
            select(VendorPaymentLog)
            .where(VendorPaymentLog.vendor_payment_id == payment_id)
            .order_by(VendorPaymentLog.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_weekly_payments(self, db: AsyncSession, week_start: date) -> dict:
        """Payments of one Monday-Sunday week, grouped by vendor."""
        week_start, week_end = week_bounds(week_start)
        payments = await self.all_payments(db, LedgerFilters(week_start=week_start))
        vendors = await self._vendor_names(db, {p.vendor_id for p in payments})

        by_vendor: dict[uuid.UUID, dict] = {}
        for payment in payments:
            group = by_vendor.setdefault(payment.vendor_id, {
                "vendor_id": payment.vendor_id,
                "vendor_name": vendors.get(payment.vendor_id),
                "count": 0,
                "total_ttc": Decimal("0"),
                "total_commission": Decimal("0"),
                "total_net": Decimal("0"),
            })
            group["count"] += 1
            group["total_ttc"] += payment.total_amount_ttc
            group["total_commission"] += payment.commission_amount_incl_vat
            group["total_net"] += payment.net_amount_ttc

        return {
            "week_start": week_start,
            "week_end": week_end,
            "payments": payments,
            "vendors": list(by_vendor.values()),
            "total_net": sum((p.net_amount_ttc for p in payments), Decimal("0")),
        }

    async def generate_banking_report(self, db: AsyncSession, filters: LedgerFilters) -> dict:
        """Transfer instructions plus totals per transfer status."""
        payments = await self.all_payments(db, filters)
        vendors = await self._vendor_names(db, {p.vendor_id for p in payments})

        totals = {status: {"count": 0, "net": Decimal("0")} for status in TRANSFER_STATUSES}
        rows = []
        for payment in payments:
            totals[payment.transfer_status]["count"] += 1
            totals[payment.transfer_status]["net"] += payment.net_amount_ttc
            rows.append({
                "id": payment.id,
                "vendor_name": vendors.get(payment.vendor_id),
                "debit_account": payment.debit_account,
                "credit_account": payment.credit_account,
                "amount": payment.net_amount_ttc,
                "reason": payment.reason,
                "booking_reference": payment.booking_reference,
                "payment_date": payment.payment_date,
                "transfer_status": payment.transfer_status,
                "transfer_date": payment.transfer_date,
            })

        return {
            "rows": rows,
            "totals_by_status": totals,
            "total_net": sum((p.net_amount_ttc for p in payments), Decimal("0")),
            "count": len(rows),
        }

    async def _vendor_names(self, db: AsyncSession, vendor_ids: set[uuid.UUID]) -> dict:
        if not vendor_ids:
            return {}
        result = await db.execute(
            select(User.id, User.company_name, User.name).where(User.id.in_(vendor_ids))
        )
        return {row[0]: row[1] or row[2] for row in result.all()}


vendor_payment_service = VendorPaymentService()
