"""Booking admission: orders and reservations against finite capacity.

Every admission runs a fast pre-check, then repeats the checks with the
Blane row locked before decrementing stock or remaining reservations in the
same transaction. Vendor-entered bookings may exceed the limits once the
vendor confirms.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AppException,
    CapacityExceededError,
    NotFoundError,
    OverrideConfirmationRequired,
    PersistenceFailure,
    ValidationError,
)
from app.core.security import generate_cancel_token, sign_cancel_request
from app.core.vendor_context import VendorContext
from app.domain import capacity
from app.domain.booking_state import MANUAL_STATUS_TARGETS, assert_booking_transition
from app.gateways.base import PaymentRequest
from app.gateways.cmi import cmi_gateway
from app.models.blane import Blane
from app.models.booking import Customer, Order, Reservation
from app.schemas.booking import OrderCreate, ReservationCreate
from app.services.blane_service import blane_service
from app.services.capacity_service import capacity_service
from app.services.notification_service import notification_service
from app.services.vendor_resolution import resolve_vendor
from app.utils.booking_number import ORDER_PREFIX, RESERVATION_PREFIX, generate_booking_code
from app.utils.dates import local_today

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class AdmissionResult:
    """Committed booking plus what the client needs next."""

    booking: Order | Reservation
    cancellation: dict
    payment_info: dict | None = None


def delivery_fee(blane: Blane, city: str | None) -> Decimal:
    """Fee added to an order: none for digital goods, else in/out of city."""
    if blane.is_digital:
        return Decimal("0")
    if city and blane.city and city.strip().lower() == blane.city.strip().lower():
        return Decimal(blane.livraison_in_city or 0)
    return Decimal(blane.livraison_out_city or 0)


def compute_total_price(unit_price: Decimal, quantity: int, fee: Decimal = Decimal("0")) -> Decimal:
    """(unit price x quantity + fee) x configured multiplier, to the cent."""
    total = (Decimal(unit_price) * quantity + fee) * settings.order_price_multiplier
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


def assert_partial_price(payment_method: str, partiel_price: Decimal | None, total: Decimal) -> None:
    """Guard: a deposit must be set and lower than the total."""
    if payment_method != "partiel":
        return
    if partiel_price is None or partiel_price <= 0:
        raise ValidationError(
            "Validation failed",
            errors={"partiel_price": "partiel_price is required for partial payment"},
        )
    if partiel_price >= total:
        raise ValidationError(
            "Validation failed",
            errors={"partiel_price": "partiel_price must be lower than total_price"},
        )


class AdmissionService:
    """Service for admitting orders and reservations."""

    # ==================== LOOKUP ====================

    async def get_booking(
        self,
        db: AsyncSession,
        code: str,
        for_update: bool = False,
    ) -> Order | Reservation:
        """Find a booking by its public code; the prefix selects the table."""
        if code.startswith(f"{ORDER_PREFIX}-"):
            model, column = Order, Order.NUM_ORD
        elif code.startswith(f"{RESERVATION_PREFIX}-"):
            model, column = Reservation, Reservation.NUM_RES
        else:
            raise NotFoundError("Booking", code)

        query = select(model).where(column == code)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Order" if model is Order else "Reservation", code)
        return booking

    # ==================== ORDERS ====================

    async def _order_limits(
        self, db: AsyncSession, blane: Blane, quantity: int, today: date
    ) -> capacity.OrderLimitCheck:
        return capacity.OrderLimitCheck(
            requested_quantity=quantity,
            daily_available=await capacity_service.remaining_order_capacity(db, blane, today),
            stock_available=blane.stock or 0,
            max_orders=blane.max_orders or 0,
        )

    def _raise_order_limit(self, check: capacity.OrderLimitCheck) -> None:
        if check.exceeds_daily_limit:
            raise CapacityExceededError(
                f"Daily order limit reached. Only {check.daily_available} orders available for today.",
                ceiling="daily",
                requested=check.requested_quantity,
                remaining=check.daily_available,
            )
        if check.exceeds_stock_limit:
            raise CapacityExceededError(
                "Order quantity exceeds available stock",
                ceiling="stock",
                requested=check.requested_quantity,
                remaining=check.stock_available,
            )
        if check.exceeds_max_orders:
            raise CapacityExceededError(
                "Order quantity exceeds maximum allowed orders",
                ceiling="max_orders",
                requested=check.requested_quantity,
                remaining=check.max_orders,
            )

    async def create_order(
        self,
        db: AsyncSession,
        data: OrderCreate,
        vendor: VendorContext | None = None,
        confirm_exceed: bool = False,
    ) -> AdmissionResult:
        """Admit an order.

        Args:
            db: Database session
            data: Validated order request
            vendor: Set when a vendor enters the order for their own Blane
            confirm_exceed: Vendor accepted exceeding capacity limits

        Returns:
            AdmissionResult with the committed order

        Raises:
            ValidationError: Missing delivery fields or invalid deposit
            CapacityExceededError: A daily, stock or max-order ceiling is hit
            OverrideConfirmationRequired: Vendor order over limits, unconfirmed
            PersistenceFailure: The transaction could not be committed
        """
        blane = await blane_service.get_blane(db, data.blane_id)
        blane_service.assert_bookable(blane)
        if vendor is not None:
            vendor.assert_owns(blane.vendor_id, blane.commerce_name)

        if not blane.is_digital:
            errors = {}
            if not data.delivery_address:
                errors["delivery_address"] = "delivery_address is required"
            if not data.city:
                errors["city"] = "city is required"
            if errors:
                raise ValidationError("Validation failed", errors=errors)

        total = compute_total_price(blane.price_current, data.quantity, delivery_fee(blane, data.city))
        assert_partial_price(data.payment_method, data.partiel_price, total)
        if data.total_price is not None and data.total_price != total:
            logger.info(
                f"Order total for blane {blane.id} recomputed: client {data.total_price} -> {total}"
            )

        today = local_today()
        override = False
        check = await self._order_limits(db, blane, data.quantity, today)
        if vendor is not None:
            override = self._vendor_override(check.exceeds_any, confirm_exceed, check.as_dict())
        elif check.exceeds_daily_limit:
            self._raise_order_limit(check)

        try:
            blane = await blane_service.lock_blane(db, blane.id)
            if not override:
                self._raise_order_limit(
                    await self._order_limits(db, blane, data.quantity, today)
                )

            code = await generate_booking_code(db, Order.NUM_ORD, ORDER_PREFIX)
            owner = await resolve_vendor(db, blane.vendor_id, blane.commerce_name)
            customer = self._customer(data)
            db.add(customer)
            await db.flush()

            now = datetime.now(UTC)
            order = Order(
                NUM_ORD=code,
                blane_id=blane.id,
                customer_id=customer.id,
                vendor_id=owner.id if owner else None,
                phone=data.phone,
                quantity=data.quantity,
                total_price=total,
                partiel_price=data.partiel_price or Decimal("0"),
                delivery_address=data.delivery_address,
                city=data.city,
                payment_method=data.payment_method,
                status="pending",
                cancel_token=generate_cancel_token(code, now),
                cancel_token_created_at=now,
                comments=data.comments,
                source=data.source,
                vendor_override=override,
                created_at=now,
            )
            db.add(order)
            # Under vendor override stock may go negative
            blane.stock = (blane.stock or 0) - data.quantity
            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create order for blane {data.blane_id}: {e}")
            raise PersistenceFailure("Failed to create Order") from e

        logger.info(
            f"Order {order.NUM_ORD} created: blane={blane.id} qty={order.quantity} "
            f"total={order.total_price} method={order.payment_method} override={override}"
        )
        if override and blane.stock < 0:
            logger.warning(f"Blane {blane.id} oversold by vendor override, stock={blane.stock}")

        return await self._finish(order, blane, customer, street=data.delivery_address)

    # ==================== RESERVATIONS ====================

    async def _reservation_limits(
        self, db: AsyncSession, blane: Blane, data: ReservationCreate
    ) -> capacity.ReservationLimitCheck:
        return capacity.ReservationLimitCheck(
            requested_quantity=data.quantity,
            daily_available=await capacity_service.remaining_reservation_capacity(db, blane, data.date),
            slot_available=await capacity_service.remaining_slot_capacity(
                db, blane, data.date, data.time, data.end_date
            ),
            reservations_available=blane.nombre_max_reservation or 0,
        )

    def _raise_reservation_limit(self, check: capacity.ReservationLimitCheck) -> None:
        if check.exceeds_daily_limit:
            raise CapacityExceededError(
                f"Daily reservation limit reached. Only {check.daily_available} "
                f"reservations available for this date.",
                ceiling="daily",
                requested=check.requested_quantity,
                remaining=check.daily_available,
            )
        if check.exceeds_slot_limit:
            raise CapacityExceededError(
                "This time slot is full",
                ceiling="slot",
                requested=check.requested_quantity,
                remaining=check.slot_available,
            )
        if check.exceeds_max_reservations:
            raise CapacityExceededError(
                "Blane is full",
                ceiling="nombre_max_reservation",
                requested=check.requested_quantity,
                remaining=check.reservations_available,
            )

    async def create_reservation(
        self,
        db: AsyncSession,
        data: ReservationCreate,
        vendor: VendorContext | None = None,
        confirm_exceed: bool = False,
    ) -> AdmissionResult:
        """Admit a reservation against the daily, slot and total ceilings."""
        blane = await blane_service.get_blane(db, data.blane_id)
        blane_service.assert_bookable(blane)
        if vendor is not None:
            vendor.assert_owns(blane.vendor_id, blane.commerce_name)

        errors = {}
        if data.date < local_today():
            errors["date"] = "date must be today or later"
        if capacity.is_time_slot_type(blane.type_time) and not data.time:
            errors["time"] = "time is required for this blane"
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        total = compute_total_price(blane.price_current, data.quantity)
        assert_partial_price(data.payment_method, data.partiel_price, total)
        if data.total_price is not None and data.total_price != total:
            logger.info(
                f"Reservation total for blane {blane.id} recomputed: client {data.total_price} -> {total}"
            )

        override = False
        check = await self._reservation_limits(db, blane, data)
        if vendor is not None:
            override = self._vendor_override(check.exceeds_any, confirm_exceed, check.as_dict())
        else:
            self._raise_reservation_limit(check)

        try:
            blane = await blane_service.lock_blane(db, blane.id)
            if not override:
                self._raise_reservation_limit(await self._reservation_limits(db, blane, data))

            code = await generate_booking_code(db, Reservation.NUM_RES, RESERVATION_PREFIX)
            owner = await resolve_vendor(db, blane.vendor_id, blane.commerce_name)
            customer = self._customer(data)
            db.add(customer)
            await db.flush()

            now = datetime.now(UTC)
            reservation = Reservation(
                NUM_RES=code,
                blane_id=blane.id,
                customer_id=customer.id,
                vendor_id=owner.id if owner else None,
                phone=data.phone,
                date=data.date,
                time=data.time if capacity.is_time_slot_type(blane.type_time) else None,
                end_date=data.end_date,
                quantity=data.quantity,
                number_persons=data.number_persons,
                total_price=total,
                partiel_price=data.partiel_price or Decimal("0"),
                city=data.city,
                payment_method=data.payment_method,
                status="pending",
                cancel_token=generate_cancel_token(code, now),
                cancel_token_created_at=now,
                comments=data.comments,
                source=data.source,
                vendor_override=override,
                created_at=now,
            )
            db.add(reservation)
            blane.nombre_max_reservation = (blane.nombre_max_reservation or 0) - data.quantity
            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create reservation for blane {data.blane_id}: {e}")
            raise PersistenceFailure("Failed to create Reservation") from e

        logger.info(
            f"Reservation {reservation.NUM_RES} created: blane={blane.id} date={reservation.date} "
            f"time={reservation.time} qty={reservation.quantity} override={override}"
        )
        return await self._finish(reservation, blane, customer)

    # ==================== STATUS ====================

    async def change_status(self, db: AsyncSession, code: str, status: str) -> Order | Reservation:
        """Move a pending booking to ``pending`` or ``failed``."""
        if status not in MANUAL_STATUS_TARGETS:
            raise ValidationError(
                "Validation failed",
                errors={"status": f"must be one of {', '.join(sorted(MANUAL_STATUS_TARGETS))}"},
            )

        booking = await self.get_booking(db, code, for_update=True)
        assert_booking_transition(booking.status, status)
        previous = booking.status
        booking.status = status
        await db.flush()

        logger.info(f"Booking {code} status {previous} -> {status}")
        return booking

    # ==================== HELPERS ====================

    def cancellation_params(self, booking: Order | Reservation, now: datetime | None = None) -> dict:
        """Signed parameters the customer presents to cancel."""
        timestamp = int((now or datetime.now(UTC)).timestamp())
        return {
            "id": booking.code,
            "timestamp": timestamp,
            "token": sign_cancel_request(booking.cancel_token, timestamp),
        }

    def build_payment_info(
        self,
        booking: Order | Reservation,
        customer: Customer,
        street: str | None = None,
    ) -> dict:
        """Gateway form for the amount due online."""
        redirect = cmi_gateway.build_payment_request(
            PaymentRequest(
                oid=booking.code,
                amount=booking.payment_amount,
                email=customer.email or "",
                name=customer.name or "",
                tel=customer.phone or "",
                street=street or "",
                city=customer.city or "",
            )
        )
        return redirect.as_dict()

    def _customer(self, data: OrderCreate | ReservationCreate) -> Customer:
        return Customer(name=data.name, email=data.email, phone=data.phone, city=data.city)

    def _vendor_override(self, exceeds: bool, confirm_exceed: bool, availability: dict) -> bool:
        if not exceeds:
            return False
        if not confirm_exceed:
            raise OverrideConfirmationRequired(
                "This booking exceeds the available capacity. Confirm to proceed.",
                availability=availability,
            )
        logger.warning(f"Vendor override confirmed: {availability}")
        return True

    async def _finish(
        self,
        booking: Order | Reservation,
        blane: Blane,
        customer: Customer,
        street: str | None = None,
    ) -> AdmissionResult:
        await notification_service.notify_booking_created(booking, blane, customer)

        payment_info = None
        if booking.payment_method != "cash":
            payment_info = self.build_payment_info(booking, customer, street)

        return AdmissionResult(
            booking=booking,
            cancellation=self.cancellation_params(booking),
            payment_info=payment_info,
        )


admission_service = AdmissionService()
