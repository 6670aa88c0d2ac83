"""Vendor lookup for Blanes and bookings.

Older rows carry only the vendor's commerce name. The name match lives here
and nowhere else, so it can be retired once ``backfill_legacy_vendor_ids``
has run everywhere.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.blane import Blane
from app.models.booking import Order, Reservation
from app.models.user import User

logger = logging.getLogger(__name__)


async def resolve_vendor(
    db: AsyncSession,
    vendor_id: uuid.UUID | None,
    commerce_name: str | None,
) -> User | None:
    """Find the vendor by id, falling back to the legacy name match."""
    if vendor_id is not None:
        vendor = await db.get(User, vendor_id)
        if vendor is not None:
            return vendor

    if not commerce_name:
        return None

    result = await db.execute(
        select(User)
        .where(User.role == "vendor", User.company_name == commerce_name)
        .limit(1)
    )
    vendor = result.scalar_one_or_none()
    if vendor is not None:
        logger.warning(
            f"Vendor resolved by legacy commerce name '{commerce_name}' -> {vendor.id}"
        )
    else:
        logger.warning(f"No vendor matches legacy commerce name '{commerce_name}'")
    return vendor


async def backfill_legacy_vendor_ids(db: AsyncSession) -> dict[str, int]:
    """Assign vendor_id on Blanes, Orders and Reservations known only by name.

    Returns:
        Number of updated rows per table
    """
    result = await db.execute(
        select(User.id, User.company_name).where(
            User.role == "vendor", User.company_name.is_not(None)
        )
    )
    vendors = {name: vendor_id for vendor_id, name in result.all()}
    counts = {"blanes": 0, "orders": 0, "reservations": 0}

    for name, vendor_id in vendors.items():
        blane_result = await db.execute(
            update(Blane)
            .where(Blane.vendor_id.is_(None), Blane.commerce_name == name)
            .values(vendor_id=vendor_id)
        )
        counts["blanes"] += blane_result.rowcount or 0

    for model, key in ((Order, "orders"), (Reservation, "reservations")):
        rows = await db.execute(
            select(model.id, Blane.vendor_id)
            .join(Blane, Blane.id == model.blane_id)
            .where(model.vendor_id.is_(None), Blane.vendor_id.is_not(None))
        )
        for booking_id, vendor_id in rows.all():
            await db.execute(
                update(model).where(model.id == booking_id).values(vendor_id=vendor_id)
            )
            counts[key] += 1

    await db.flush()
    logger.info(f"Legacy vendor backfill: {counts}")
    return counts
