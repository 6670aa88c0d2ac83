"""Booking code and invoice number generation utilities."""

import random
import secrets
import string
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from app.config import settings
from app.core.exceptions import PersistenceFailure

ORDER_PREFIX = "ORDER"
RESERVATION_PREFIX = "RES"
SUBSCRIPTION_PREFIX = "SUB"


def format_booking_code(prefix: str) -> str:
    """Build a code like 'ORDER-KQ004213': 2 letters and 6 zero-padded digits."""
    letters = "".join(random.choices(string.ascii_uppercase, k=2))
    number = random.randint(0, 999999)
    return f"{prefix}-{letters}{number:06d}"


async def generate_booking_code(
    db: AsyncSession,
    column: InstrumentedAttribute,
    prefix: str,
) -> str:
    """Generate a booking code that does not exist yet in ``column``.

    Args:
        db: Database session for uniqueness check
        column: Unique code column, e.g. ``Order.NUM_ORD``
        prefix: Code prefix (ORDER, RES)

    Returns:
        str: Unique booking code

    Raises:
        PersistenceFailure: If no free code was found within the retry budget
    """
    for _ in range(settings.booking_code_max_attempts):
        code = format_booking_code(prefix)
        result = await db.execute(select(column).where(column == code).limit(1))
        if result.scalar_one_or_none() is None:
            return code

    raise PersistenceFailure(f"Could not allocate a unique {prefix} code")


def generate_invoice_number(year: int, month: int, vendor_id: uuid.UUID) -> str:
    """Generate an invoice number.

    Returns:
        str: Invoice number like 'INV-202501-3FA8-9C01B2'
    """
    vendor_part = vendor_id.hex[:4].upper()
    return f"INV-{year}{month:02d}-{vendor_part}-{secrets.token_hex(3).upper()}"
