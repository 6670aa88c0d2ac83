"""Payment settlement from gateway callbacks.

The gateway expects a plain-text answer: ``ACTION=POSTAUTH`` captures the
payment, ``FAILURE`` rejects it. The callback endpoint always answers 200.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException, StateConflictError
from app.domain.reservation_status import is_waiting
from app.gateways.base import CallbackResult
from app.gateways.cmi import cmi_gateway
from app.models.blane import Blane
from app.models.booking import Customer, Order, Reservation
from app.models.payment import Transaction
from app.services.admission_service import admission_service
from app.services.notification_service import notification_service
from app.services.vendor_payment_service import vendor_payment_service
from app.utils.booking_number import ORDER_PREFIX, RESERVATION_PREFIX, SUBSCRIPTION_PREFIX
from app.utils.dates import local_today

logger = logging.getLogger(__name__)

POSTAUTH = "ACTION=POSTAUTH"
FAILURE = "FAILURE"


def is_settleable(booking: Order | Reservation) -> bool:
    """Only bookings still awaiting payment can be captured."""
    if isinstance(booking, Reservation):
        try:
            return is_waiting(booking.status)
        except ValueError:
            return False
    return booking.status == "pending"


class SettlementService:
    """Service applying verified gateway callbacks to bookings."""

    async def _find_transaction(self, db: AsyncSession, transid: str) -> Transaction | None:
        result = await db.execute(select(Transaction).where(Transaction.transid == transid))
        return result.scalar_one_or_none()

    async def handle_callback(self, db: AsyncSession, fields: dict[str, str]) -> str:
        """Verify and apply a gateway callback.

        Args:
            db: Database session
            fields: Form fields as posted by the gateway

        Returns:
            str: ``ACTION=POSTAUTH`` when captured (or already captured),
            ``FAILURE`` otherwise
        """
        try:
            result = cmi_gateway.verify_callback(fields)
        except Exception:
            logger.exception("Unverifiable CMI callback")
            return FAILURE
        if not result.hash_valid:
            return FAILURE

        if not result.approved:
            logger.warning(
                f"Payment not approved for oid={result.oid}: "
                f"ProcReturnCode={result.proc_return_code} Response={result.response}"
            )
            return FAILURE

        oid = result.oid or ""
        if oid.startswith(f"{SUBSCRIPTION_PREFIX}-"):
            logger.error(f"Subscription callback rejected for oid={oid}")
            return FAILURE
        if not oid.startswith((f"{ORDER_PREFIX}-", f"{RESERVATION_PREFIX}-")):
            logger.error(f"Invalid oid format in callback: {oid!r}")
            return FAILURE
        if not result.transaction_id:
            logger.error(f"Callback for {oid} carries no TransId")
            return FAILURE

        try:
            return await self._settle(db, result)
        except IntegrityError:
            await db.rollback()
            # A concurrent callback with the same TransId won the insert
            if await self._find_transaction(db, result.transaction_id):
                logger.info(f"Duplicate callback for TransId={result.transaction_id}, already settled")
                return POSTAUTH
            logger.exception(f"Integrity error settling {oid}")
            return FAILURE
        except (AppException, SQLAlchemyError) as e:
            await db.rollback()
            logger.error(f"Exception during CMI callback for {oid}: {e}")
            return FAILURE
        except Exception:
            await db.rollback()
            logger.exception(f"Unexpected error settling {oid}")
            return FAILURE

    async def _settle(self, db: AsyncSession, result: CallbackResult) -> str:
        existing = await self._find_transaction(db, result.transaction_id)
        if existing:
            logger.info(f"Duplicate callback for TransId={result.transaction_id}, no side effects")
            return POSTAUTH

        booking = await admission_service.get_booking(db, result.oid, for_update=True)
        if not is_settleable(booking):
            logger.error(
                f"Callback for {booking.code} in status {booking.status} "
                f"(TransId={result.transaction_id}) rejected"
            )
            return FAILURE

        previous = booking.status
        booking.status = "paid"
        db.add(Transaction(
            order_id=booking.id if isinstance(booking, Order) else None,
            reservation_id=booking.id if isinstance(booking, Reservation) else None,
            transid=result.transaction_id,
            proc_return_code=result.proc_return_code,
            response=result.response,
            auth_code=result.auth_code,
            transaction_date=result.transaction_date,
            gateway_response=result.raw,
        ))
        await db.flush()

        if booking.payment_method != "cash":
            try:
                async with db.begin_nested():
                    await vendor_payment_service.create_for_booking(
                        db, booking, payment_date=local_today()
                    )
            except (AppException, SQLAlchemyError) as e:
                logger.error(f"Failed to create vendor payment for {booking.code}: {e}")

        blane = await db.get(Blane, booking.blane_id)
        customer = await db.get(Customer, booking.customer_id)
        await db.commit()

        logger.info(
            f"Booking {booking.code} settled {previous} -> paid, "
            f"TransId={result.transaction_id} amount={booking.payment_amount}"
        )
        if blane is not None and customer is not None:
            await notification_service.notify_payment_captured(booking, blane, customer)
        return POSTAUTH

    # ==================== CUSTOMER FLOWS ====================

    async def initiate_payment(self, db: AsyncSession, code: str) -> dict:
        """Rebuild gateway parameters for a booking still awaiting payment."""
        booking = await admission_service.get_booking(db, code)
        if not is_settleable(booking):
            raise StateConflictError(f"Booking {code} is not awaiting payment (status: {booking.status})")

        customer = await db.get(Customer, booking.customer_id)
        street = booking.delivery_address if isinstance(booking, Order) else None
        return admission_service.build_payment_info(booking, customer, street)

    async def payment_result(self, db: AsyncSession, oid: str, outcome: str) -> dict:
        """Landing data for the gateway ok/fail redirects."""
        booking = await admission_service.get_booking(db, oid)
        return {
            "oid": oid,
            "result": outcome,
            "status": booking.status,
            "paid": booking.status == "paid",
        }


settlement_service = SettlementService()
