"""Notification Service for booking emails and outbound webhooks.

The booking flows decide *that* a notification goes out and *what* it
carries; delivery runs in Celery workers (``app.tasks``). Every failure is
logged and swallowed so a committed booking or payment is never undone by
a notification problem.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.core.exceptions import IntegrationFailure
from app.models.blane import Blane
from app.models.booking import Customer, Order, Reservation

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for booking notifications."""

    ORDER_CONFIRMED = "order_confirmed"
    RESERVATION_CONFIRMED = "reservation_confirmed"

    def __init__(self) -> None:
        """Initialize notification service."""
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== PAYLOADS ====================

    def build_booking_webhook_payload(
        self,
        booking: Order | Reservation,
        blane: Blane,
        customer: Customer,
    ) -> dict[str, Any]:
        """Flat webhook payload describing a new booking."""
        is_reservation = isinstance(booking, Reservation)
        return {
            "id": booking.code,
            "created_at": booking.created_at.isoformat() if booking.created_at else None,
            "date": booking.date.isoformat() if is_reservation else None,
            "end_date": booking.end_date.isoformat() if is_reservation and booking.end_date else None,
            "customer_name": customer.name,
            "customer_phone": customer.phone,
            "customer_email": customer.email,
            "commerce_name": blane.commerce_name,
            "commerce_phone": blane.commerce_phone,
            "quantity": booking.quantity,
            "total_price": str(booking.total_price),
            "comments": booking.comments,
            "blane_name": blane.name,
            "payment_method": booking.payment_method,
            "blane_city": blane.city,
            "delivery_address": None if is_reservation else booking.delivery_address,
            "type_time": blane.type_time,
            "type": "reservation" if is_reservation else "order",
            "is_digital": blane.is_digital,
        }

    def build_confirmation_email(
        self,
        booking: Order | Reservation,
        blane: Blane,
        customer: Customer,
    ) -> dict[str, Any]:
        """Recipient, subject and body for a booking confirmation."""
        kind = "reservation" if isinstance(booking, Reservation) else "order"
        title = f"Your {kind} {booking.code} is confirmed"
        lines = [
            f"Hello {customer.name},",
            f"Thank you for your {kind} of <strong>{blane.name}</strong>.",
            f"Reference: {booking.code}",
            f"Quantity: {booking.quantity}",
            f"Total: {booking.total_price} MAD ({booking.payment_method})",
        ]
        if isinstance(booking, Reservation):
            when = booking.date.isoformat()
            if booking.time:
                when = f"{when} {booking.time}"
            lines.append(f"Date: {when}")
        return {
            "to_email": customer.email,
            "cc": settings.mail_contact_address,
            "subject": title,
            "html_content": self._render_email_html(title, "<br>".join(lines)),
        }

    def _render_email_html(self, title: str, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="font-size: 22px;">{title}</h1>
            <p style="font-size: 15px; line-height: 1.6;">{body}</p>
            <p style="color: #9ca3af; font-size: 12px;">
                &copy; {datetime.now(UTC).year} {settings.email_from_name}
            </p>
        </body>
        </html>
        """

    # ==================== DELIVERY ====================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        cc: str | None = None,
    ) -> bool:
        """Send an email through the configured mail API.

        Returns:
            bool: True if sent, False if mail is not configured

        Raises:
            IntegrationFailure: If the mail API rejects the request
        """
        if not settings.email_api_url or not settings.email_api_key:
            logger.info(f"Mail API not configured, skipping email to {to_email}")
            return False

        personalization: dict[str, Any] = {"to": [{"email": to_email}]}
        if cc:
            personalization["cc"] = [{"email": cc}]

        payload = {
            "personalizations": [personalization],
            "from": {"email": settings.email_from_address, "name": settings.email_from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        try:
            response = await self.http_client.post(
                settings.email_api_url,
                headers={"Authorization": f"Bearer {settings.email_api_key}"},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise IntegrationFailure("email", str(e)) from e

        if response.status_code not in (200, 202):
            raise IntegrationFailure("email", f"status {response.status_code}")
        return True

    async def send_webhook(self, payload: dict[str, Any]) -> bool:
        """POST a booking payload to the configured webhook.

        Raises:
            IntegrationFailure: On transport error or non-2xx response
        """
        if not settings.webhook_url:
            logger.info(f"Webhook not configured, skipping booking {payload.get('id')}")
            return False

        try:
            response = await self.http_client.post(settings.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise IntegrationFailure("webhook", str(e)) from e

        if response.is_error:
            raise IntegrationFailure("webhook", f"status {response.status_code}")
        return True

    # ==================== DISPATCH ====================

    def _enqueue(self, task: Any, *args: Any) -> None:
        task.apply_async(args=args, retry=False)

    async def _dispatch(self, task: Any, *args: Any) -> None:
        """Publish off the event loop; the broker round-trip blocks."""
        await run_in_threadpool(self._enqueue, task, *args)

    async def notify_booking_created(
        self,
        booking: Order | Reservation,
        blane: Blane,
        customer: Customer,
    ) -> None:
        """Queue the new-booking webhook and, for cash bookings, the confirmation."""
        from app.tasks import send_booking_confirmation_email, send_booking_webhook

        try:
            await self._dispatch(
                send_booking_webhook,
                self.build_booking_webhook_payload(booking, blane, customer),
            )
        except Exception as e:
            logger.error(f"Failed to queue webhook for {booking.code}: {e}")

        if booking.payment_method == "cash":
            try:
                await self._dispatch(
                    send_booking_confirmation_email,
                    self.build_confirmation_email(booking, blane, customer),
                )
            except Exception as e:
                logger.error(f"Failed to queue confirmation email for {booking.code}: {e}")

    async def notify_payment_captured(
        self,
        booking: Order | Reservation,
        blane: Blane,
        customer: Customer,
    ) -> None:
        """Queue the confirmation email sent once an online payment settles."""
        from app.tasks import send_booking_confirmation_email

        try:
            await self._dispatch(
                send_booking_confirmation_email,
                self.build_confirmation_email(booking, blane, customer),
            )
        except Exception as e:
            logger.error(f"Failed to queue payment confirmation for {booking.code}: {e}")


# Global service instance
notification_service = NotificationService()
