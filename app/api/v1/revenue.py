"""Vendor revenue reporting endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_vendor_context
from app.core.vendor_context import VendorContext
from app.schemas.reporting import (
    ExpectedReimbursement,
    InvoiceDetailResponse,
    VendorOverview,
    VendorStatistics,
)
from app.schemas.vendor_payment import VendorPaymentResponse
from app.services.accounting_export_service import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    accounting_export_service,
)
from app.services.revenue_service import revenue_service
from app.utils.dates import local_today

router = APIRouter()

PaymentTypeFilter = Annotated[str | None, Query(pattern="^(full|partial)$")]


@router.get("/overview", response_model=VendorOverview)
async def get_overview(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    week_start: date | None = None,
) -> dict:
    return await revenue_service.get_vendor_overview(db, ctx, week_start)


@router.get("/transactions", response_model=list[VendorPaymentResponse])
async def get_transactions(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    months: int = Query(default=6, ge=1, le=36),
):
    return await revenue_service.get_vendor_transactions(db, ctx, months)


@router.get("/expected-reimbursement", response_model=ExpectedReimbursement)
async def get_expected_reimbursement(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    week_start: date | None = None,
) -> dict:
    return await revenue_service.get_expected_reimbursement(db, ctx, week_start)


@router.get("/statistics", response_model=VendorStatistics)
async def get_statistics(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    return await revenue_service.get_vendor_statistics(db, ctx)


@router.post(
    "/invoices/{year}/{month}",
    response_model=InvoiceDetailResponse,
    status_code=status.HTTP_200_OK,
)
async def create_invoice(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
) -> dict:
    """Monthly commission invoice; repeated calls return the same invoice."""
    return await revenue_service.create_monthly_invoice(db, ctx, year, month)


@router.get("/invoices/{year}/{month}/pdf")
async def download_invoice(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
) -> Response:
    """Monthly commission invoice as PDF; generates the invoice on first request."""
    number, content = await accounting_export_service.monthly_invoice_pdf(db, ctx, year, month)
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=invoice_{number}.pdf"},
    )


@router.get("/export")
async def export_transactions(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    months: int = Query(default=6, ge=1, le=36),
    payment_type: PaymentTypeFilter = None,
) -> Response:
    content = await accounting_export_service.export_vendor_transactions_csv(
        db, ctx, months, payment_type
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=revenue_{local_today().isoformat()}.csv"
        },
    )


@router.get("/export/excel")
async def export_transactions_excel(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    months: int = Query(default=6, ge=1, le=36),
    payment_type: PaymentTypeFilter = None,
) -> Response:
    content = await accounting_export_service.export_vendor_transactions_xlsx(
        db, ctx, months, payment_type
    )
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=vendor_transactions_{local_today().isoformat()}.xlsx"
        },
    )


@router.get("/export/pdf")
async def export_transactions_pdf(
    ctx: Annotated[VendorContext, Depends(get_vendor_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    months: int = Query(default=6, ge=1, le=36),
    payment_type: PaymentTypeFilter = None,
) -> Response:
    content = await accounting_export_service.export_vendor_transactions_pdf(
        db, ctx, months, payment_type
    )
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=vendor_transactions_{local_today().isoformat()}.pdf"
        },
    )
