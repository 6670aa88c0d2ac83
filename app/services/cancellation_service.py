"""Customer cancellation of pending bookings with signed tokens."""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AppException,
    AuthorizationError,
    PersistenceFailure,
    StateConflictError,
)
from app.core.security import constant_time_equals, sign_cancel_request
from app.database import ensure_aware
from app.domain.booking_state import assert_booking_transition
from app.models.booking import Order, Reservation
from app.services.admission_service import admission_service
from app.services.blane_service import blane_service

logger = logging.getLogger(__name__)


def verify_cancel_request(
    booking: Order | Reservation,
    token: str,
    timestamp: int,
    now: datetime | None = None,
) -> None:
    """Check both expiries and the request signature.

    Raises:
        AuthorizationError: Token expired, request too old or signature mismatch
    """
    now = now or datetime.now(UTC)
    if not booking.cancel_token or booking.cancel_token_created_at is None:
        raise AuthorizationError("Invalid cancellation token")

    issued_at = ensure_aware(booking.cancel_token_created_at)
    if (now - issued_at).total_seconds() > settings.cancel_token_lifetime_seconds:
        raise AuthorizationError("Cancellation token has expired")

    if now.timestamp() - timestamp > settings.cancel_request_window_seconds:
        raise AuthorizationError("Cancellation request has expired")

    expected = sign_cancel_request(booking.cancel_token, timestamp)
    if not constant_time_equals(expected, token):
        raise AuthorizationError("Invalid cancellation token")


class CancellationService:
    """Service for token-verified cancellations."""

    async def cancel(
        self,
        db: AsyncSession,
        code: str,
        token: str,
        timestamp: int,
        now: datetime | None = None,
    ) -> Order | Reservation:
        """Cancel a pending booking and give its capacity back.

        Args:
            db: Database session
            code: ``ORDER-`` or ``RES-`` booking code
            token: Signature issued with the booking
            timestamp: Timestamp the signature was issued for

        Returns:
            The cancelled booking

        Raises:
            NotFoundError: Unknown booking code
            AuthorizationError: Token or request expired, or signature mismatch
            StateConflictError: Booking is no longer pending
        """
        booking = await admission_service.get_booking(db, code)
        verify_cancel_request(booking, token, timestamp, now)

        try:
            blane = await blane_service.lock_blane(db, booking.blane_id)
            booking = await admission_service.get_booking(db, code, for_update=True)
            if booking.status != "pending":
                raise StateConflictError(
                    f"Booking {code} cannot be cancelled (status: {booking.status})"
                )
            assert_booking_transition(booking.status, "cancelled")

            booking.status = "cancelled"
            if isinstance(booking, Order):
                blane.stock = (blane.stock or 0) + booking.quantity
            else:
                blane.nombre_max_reservation = (blane.nombre_max_reservation or 0) + booking.quantity
            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to cancel {code}: {e}")
            raise PersistenceFailure("Failed to cancel booking") from e

        logger.info(f"Booking {code} cancelled, {booking.quantity} unit(s) returned to blane {blane.id}")
        return booking


cancellation_service = CancellationService()
