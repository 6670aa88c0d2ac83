"""Celery background tasks.

This module contains the background tasks for:
- Booking notification delivery (webhook, confirmation email)
- Blane expiration sweep
- Legacy vendor id backfill
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.config import settings
from app.core.exceptions import IntegrationFailure
from app.services.blane_service import blane_service
from app.services.notification_service import NotificationService
from app.services.vendor_resolution import backfill_legacy_vendor_ids
from app.worker import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== NOTIFICATION TASKS ====================


async def _deliver(method: str, *args, **kwargs) -> bool:
    """Send through a short-lived service; each task runs its own event loop."""
    service = NotificationService()
    try:
        return await getattr(service, method)(*args, **kwargs)
    finally:
        await service.close()


@celery_app.task(bind=True, max_retries=3)
def send_booking_webhook(self, payload: dict):
    """Deliver a new-booking webhook, retrying on downstream failure."""
    try:
        sent = run_async(_deliver("send_webhook", payload))
        return {"status": "sent" if sent else "skipped", "id": payload.get("id")}
    except IntegrationFailure as exc:
        logger.warning(f"Webhook delivery failed for {payload.get('id')}: {exc.detail}")
        raise self.retry(exc=exc, countdown=60)


@celery_app.task(bind=True, max_retries=3)
def send_booking_confirmation_email(self, message: dict):
    """Deliver a booking confirmation email."""
    try:
        sent = run_async(_deliver("send_email", **message))
        return {"status": "sent" if sent else "skipped", "to": message.get("to_email")}
    except IntegrationFailure as exc:
        logger.warning(f"Confirmation email to {message.get('to_email')} failed: {exc.detail}")
        raise self.retry(exc=exc, countdown=120)


# ==================== MAINTENANCE TASKS ====================


async def _in_session(operation):
    """Run ``operation(db)`` and commit on a fresh engine.

    The pooled engine is bound to another event loop.
    """
    engine = create_async_engine(settings.database_url)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_maker() as db:
            result = await operation(db)
            await db.commit()
    finally:
        await engine.dispose()
    return result


@celery_app.task(bind=True, max_retries=3)
def check_blane_expiration(self):
    """Mark past-expiration Blanes as expired (daily at midnight)."""
    try:
        expired = run_async(_in_session(blane_service.expire_blanes))
        return {"status": "success", "expired": len(expired)}
    except Exception as exc:
        logger.exception("Blane expiration sweep failed")
        raise self.retry(exc=exc, countdown=300)


@celery_app.task
def backfill_vendor_ids():
    """Attach vendor ids to rows only known by commerce name (run on demand)."""
    counts = run_async(_in_session(backfill_legacy_vendor_ids))
    return {"status": "success", **counts}
