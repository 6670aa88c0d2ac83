"""Admin endpoints for commission configuration."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.models.blane import Category
from app.models.commission import VendorCommission
from app.models.user import User
from app.schemas.commission import (
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    VendorCommissionCreate,
    VendorCommissionResponse,
)
from app.services.commission_service import CommissionConfig, commission_service

router = APIRouter()


def _settings_response(config: CommissionConfig) -> CommissionSettingsResponse:
    return CommissionSettingsResponse(
        partial_payment_commission_rate=config.partial_payment_commission_rate,
        vat_rate=config.vat_rate,
        transfer_processing_day=config.transfer_processing_day,
        daba_blane_account_iban=config.daba_blane_account_iban,
    )


@router.get("/settings", response_model=CommissionSettingsResponse)
async def get_commission_settings(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CommissionSettingsResponse:
    return _settings_response(await commission_service.load_settings(db))


@router.put("/settings", response_model=CommissionSettingsResponse)
async def update_commission_settings(
    settings_data: CommissionSettingsUpdate,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CommissionSettingsResponse:
    """Update global settings; the engine picks them up immediately."""
    config = await commission_service.update_settings(db, **settings_data.model_dump())
    return _settings_response(config)


@router.post(
    "/vendor-rates",
    response_model=VendorCommissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_vendor_rate(
    rate_data: VendorCommissionCreate,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> VendorCommission:
    """Add a category rate, optionally for a single vendor."""
    if await db.get(Category, rate_data.category_id) is None:
        raise NotFoundError("Category", str(rate_data.category_id))
    if rate_data.vendor_id is not None:
        vendor = await db.get(User, rate_data.vendor_id)
        if vendor is None:
            raise NotFoundError("Vendor", str(rate_data.vendor_id))
        if vendor.role != "vendor":
            raise ValidationError("Validation failed", errors={"vendor_id": "user is not a vendor"})

    rate = VendorCommission(**rate_data.model_dump())
    db.add(rate)
    await db.flush()
    return rate
