"""API dependencies for authentication and vendor scoping."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from app.core.security import verify_token
from app.core.vendor_context import VendorContext
from app.database import get_db
from app.models.user import User

__all__ = [
    "get_current_admin",
    "get_current_user",
    "get_current_vendor",
    "get_db",
    "get_vendor_context",
]

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials, token_type="access")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are an admin."""
    if current_user.role != "admin":
        raise AuthorizationError("Admin access required")
    return current_user


async def get_current_vendor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are a vendor (or an admin)."""
    if current_user.role not in ("vendor", "admin"):
        raise AuthorizationError("Vendor access required")
    return current_user


async def get_vendor_context(
    current_user: Annotated[User, Depends(get_current_vendor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    vendor_id: UUID | None = Query(default=None, description="Admins only: act for this vendor"),
) -> VendorContext:
    """Build the vendor scope for the request.

    Vendors always act for themselves; admins must name the vendor.
    """
    if current_user.role == "vendor":
        if vendor_id is not None and vendor_id != current_user.id:
            raise AuthorizationError("Vendors can only access their own data")
        return VendorContext(
            vendor_id=current_user.id,
            actor_id=current_user.id,
            company_name=current_user.company_name,
        )

    if vendor_id is None:
        raise ValidationError("Validation failed", errors={"vendor_id": "required for admin access"})

    vendor = await db.get(User, vendor_id)
    if vendor is None or vendor.role != "vendor":
        raise NotFoundError("Vendor", str(vendor_id))
    return VendorContext(
        vendor_id=vendor.id,
        actor_id=current_user.id,
        company_name=vendor.company_name,
        is_admin=True,
    )
