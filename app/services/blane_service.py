"""Blane lookups, row locking and expiration."""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, StateConflictError
from app.models.blane import Blane

logger = logging.getLogger(__name__)


class BlaneService:
    """Access to Blanes for the booking flows."""

    async def get_blane(self, db: AsyncSession, blane_id: uuid.UUID) -> Blane:
        result = await db.execute(select(Blane).where(Blane.id == blane_id))
        blane = result.scalar_one_or_none()
        if not blane:
            raise NotFoundError("Blane", str(blane_id))
        return blane

    async def get_blane_by_slug(self, db: AsyncSession, slug: str) -> Blane:
        result = await db.execute(select(Blane).where(Blane.slug == slug))
        blane = result.scalar_one_or_none()
        if not blane:
            raise NotFoundError("Blane", slug)
        return blane

    async def lock_blane(self, db: AsyncSession, blane_id: uuid.UUID) -> Blane:
        """Load the Blane with a row lock held until the transaction ends.

        ``populate_existing`` refreshes an instance already in the session so
        capacity counters reflect the locked row.
        """
        result = await db.execute(
            select(Blane)
            .where(Blane.id == blane_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        blane = result.scalar_one_or_none()
        if not blane:
            raise NotFoundError("Blane", str(blane_id))
        return blane

    def assert_bookable(self, blane: Blane, now: datetime | None = None) -> None:
        """Reject Blanes that are inactive or past their expiration date."""
        now = now or datetime.now(UTC)
        expiration = blane.expiration_date
        if expiration is not None and expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=UTC)

        if blane.status == "expired" or (expiration is not None and expiration <= now):
            raise StateConflictError("This blane has expired")
        if blane.status != "active":
            raise StateConflictError("This blane is not available")

    async def expire_blanes(self, db: AsyncSession, now: datetime | None = None) -> list[uuid.UUID]:
        """Mark Blanes whose expiration date has passed as expired.

        Returns:
            IDs of the Blanes that changed status
        """
        now = now or datetime.now(UTC)
        result = await db.execute(
            select(Blane.id).where(
                Blane.expiration_date.is_not(None),
                Blane.expiration_date <= now,
                Blane.status != "expired",
            )
        )
        expired_ids = list(result.scalars().all())
        if not expired_ids:
            logger.info("No expired blanes need a status update")
            return []

        await db.execute(
            update(Blane).where(Blane.id.in_(expired_ids)).values(status="expired")
        )
        logger.info(f"Marked {len(expired_ids)} blane(s) as expired")
        return expired_ids


blane_service = BlaneService()
