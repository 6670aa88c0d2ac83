"""Admin endpoints for the vendor payment ledger."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db
from app.models.user import User
from app.schemas.vendor_payment import (
    BankingReportResponse,
    MarkProcessedRequest,
    MarkProcessedResponse,
    RevertRequest,
    VendorPaymentListResponse,
    VendorPaymentLogResponse,
    VendorPaymentResponse,
    VendorPaymentUpdate,
    WeeklyPaymentsResponse,
)
from app.services.accounting_export_service import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    accounting_export_service,
)
from app.services.vendor_payment_service import LedgerFilters, vendor_payment_service
from app.utils.dates import local_today

router = APIRouter()


def ledger_filters(
    vendor_id: UUID | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    payment_type: str | None = Query(default=None, pattern="^(full|partial)$"),
    start_date: date | None = None,
    end_date: date | None = None,
    week_start: date | None = None,
) -> LedgerFilters:
    return LedgerFilters(
        vendor_id=vendor_id,
        status=status_filter,
        payment_type=payment_type,
        start_date=start_date,
        end_date=end_date,
        week_start=week_start,
    )


@router.get("", response_model=VendorPaymentListResponse)
async def list_vendor_payments(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    filters: Annotated[LedgerFilters, Depends(ledger_filters)],
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> VendorPaymentListResponse:
    payments, total = await vendor_payment_service.list_payments(db, filters, page, limit)
    return VendorPaymentListResponse(
        items=[VendorPaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/weekly", response_model=WeeklyPaymentsResponse)
async def get_weekly_payments(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    week_start: date | None = None,
) -> dict:
    """Payments of one week grouped by vendor (defaults to this week)."""
    return await vendor_payment_service.get_weekly_payments(db, week_start or local_today())


@router.get("/banking-report", response_model=BankingReportResponse)
async def get_banking_report(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    filters: Annotated[LedgerFilters, Depends(ledger_filters)],
) -> dict:
    return await vendor_payment_service.generate_banking_report(db, filters)


@router.get("/export")
async def export_vendor_payments(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    filters: Annotated[LedgerFilters, Depends(ledger_filters)],
) -> Response:
    """Download the filtered ledger as CSV."""
    content = await accounting_export_service.export_vendor_payments_csv(db, filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=vendor_payments_{local_today().isoformat()}.csv"
        },
    )


@router.get("/export/excel")
async def export_vendor_payments_excel(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    filters: Annotated[LedgerFilters, Depends(ledger_filters)],
) -> Response:
    """Download the filtered ledger as an Excel workbook."""
    content = await accounting_export_service.export_vendor_payments_xlsx(db, filters)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=vendor_payments_{local_today().isoformat()}.xlsx"
        },
    )


@router.get("/export/pdf")
async def export_vendor_payments_pdf(
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    filters: Annotated[LedgerFilters, Depends(ledger_filters)],
) -> Response:
    """Download the filtered ledger as a printable PDF report."""
    content = await accounting_export_service.export_vendor_payments_pdf(db, filters)
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=vendor_payments_{local_today().isoformat()}.pdf"
        },
    )


@router.post("/mark-processed", response_model=MarkProcessedResponse)
async def mark_payments_processed(
    request_data: MarkProcessedRequest,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkProcessedResponse:
    """Mark pending payments as transferred; other rows are skipped."""
    payments = await vendor_payment_service.mark_as_processed(
        db,
        request_data.ids,
        current_user.id,
        note=request_data.note,
        transfer_date=request_data.transfer_date,
    )
    return MarkProcessedResponse(
        affected_rows=len(payments),
        payments=[VendorPaymentResponse.model_validate(p) for p in payments],
    )


@router.post("/{payment_id}/revert", response_model=VendorPaymentResponse)
async def revert_payment(
    payment_id: UUID,
    request_data: RevertRequest,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vendor_payment_service.revert_to_pending(
        db, payment_id, current_user.id, request_data.note
    )


@router.patch("/{payment_id}/status", response_model=VendorPaymentResponse)
async def update_payment_status(
    payment_id: UUID,
    request_data: VendorPaymentUpdate,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Change the transfer status and/or correct the row's banking data."""
    return await vendor_payment_service.update_payment_status(
        db,
        payment_id,
        request_data.status,
        current_user.id,
        note=request_data.note,
        edits=request_data.model_dump(exclude_unset=True, exclude={"status", "note"}),
    )


@router.get("/{payment_id}/logs", response_model=list[VendorPaymentLogResponse])
async def get_payment_logs(
    payment_id: UUID,
    current_user: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vendor_payment_service.get_logs(db, payment_id)
