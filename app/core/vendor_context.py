"""Explicit vendor scope passed into vendor-facing services."""

import uuid
from dataclasses import dataclass

from app.core.exceptions import AuthorizationError


@dataclass(frozen=True)
class VendorContext:
    """Which vendor a request acts for, and who is acting.

    ``company_name`` is only used for the legacy commerce-name fallback.
    """

    vendor_id: uuid.UUID
    actor_id: uuid.UUID
    company_name: str | None = None
    is_admin: bool = False

    def assert_owns(self, vendor_id: uuid.UUID | None, commerce_name: str | None = None) -> None:
        """Raise unless the resource belongs to this vendor."""
        if vendor_id is not None:
            if vendor_id != self.vendor_id:
                raise AuthorizationError("Resource belongs to another vendor")
            return
        if commerce_name and self.company_name and commerce_name == self.company_name:
            return
        raise AuthorizationError("Resource belongs to another vendor")
