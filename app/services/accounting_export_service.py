"""Ledger exports: CSV, Excel workbooks and PDF reports.

Excel sheets keep amounts numeric and dates as dates so accountants can
sum and filter them; the PDF reports are for printing and archiving.
"""

import csv
import io
from datetime import UTC, datetime
from decimal import Decimal
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.vendor_context import VendorContext
from app.models.vendor_payment import VendorPayment
from app.services.revenue_service import revenue_service
from app.services.vendor_payment_service import LedgerFilters, vendor_payment_service

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_COLOR = "2D5A87"
AMOUNT_FORMAT = "#,##0.00"

# Columns of the printable ledger; the full set does not fit a page
PDF_LEDGER_HEADER = [
    "Payment Date",
    "Booking",
    "Type",
    "Total TTC",
    "Rate %",
    "Commission TTC",
    "Net TTC",
    "Status",
    "Transfer Date",
    "Credit Account",
]


def _money(value: Decimal | None) -> str:
    return f"{Decimal(value or 0):.2f}"


def _total(payments: list[VendorPayment], attr: str) -> Decimal:
    return sum((getattr(p, attr) for p in payments), Decimal("0"))


class AccountingExportService:
    """Generate spreadsheet and printable ledger exports."""

    LEDGER_HEADER = [
        "Payment ID",
        "Vendor ID",
        "Booking Type",
        "Booking ID",
        "Payment Type",
        "Payment Date",
        "Week Start",
        "Week End",
        "Total TTC",
        "Commission Rate",
        "Commission Excl. VAT",
        "Commission VAT",
        "Commission Incl. VAT",
        "Net Amount TTC",
        "Transfer Status",
        "Transfer Date",
        "Debit Account",
        "Credit Account",
        "Reason",
    ]
    # 1-based positions of the Decimal columns
    AMOUNT_COLUMNS = range(9, 15)
    COLUMN_WIDTHS = [38, 38, 12, 38, 12, 13, 13, 13, 12, 15, 18, 15, 18, 15, 14, 13, 40, 28, 50]

    def _values(self, payment: VendorPayment) -> list:
        return [
            str(payment.id),
            str(payment.vendor_id),
            payment.booking_reference,
            str(payment.order_id or payment.reservation_id),
            payment.payment_type,
            payment.payment_date,
            payment.week_start,
            payment.week_end,
            payment.total_amount_ttc,
            payment.commission_rate_applied,
            payment.commission_amount_excl_vat,
            payment.commission_vat,
            payment.commission_amount_incl_vat,
            payment.net_amount_ttc,
            payment.transfer_status,
            payment.transfer_date,
            payment.debit_account or "",
            payment.credit_account or "",
            payment.reason or "",
        ]

    def _row(self, payment: VendorPayment) -> list[str]:
        row = []
        for value in self._values(payment):
            if value is None:
                row.append("")
            elif isinstance(value, Decimal):
                row.append(f"{value:.2f}")
            elif hasattr(value, "isoformat"):
                row.append(value.isoformat())
            else:
                row.append(value)
        return row

    # ==================== CSV ====================

    def _write(self, payments: list[VendorPayment]) -> str:
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(self.LEDGER_HEADER)
        for payment in payments:
            writer.writerow(self._row(payment))
        return output.getvalue()

    async def export_vendor_payments_csv(self, db: AsyncSession, filters: LedgerFilters) -> str:
        """Admin export of the ledger, filtered like the listing."""
        return self._write(await vendor_payment_service.all_payments(db, filters))

    async def export_vendor_transactions_csv(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        months: int = 6,
        payment_type: str | None = None,
    ) -> str:
        """Vendor export of their own recent payments."""
        return self._write(await self._vendor_payments(db, ctx, months, payment_type))

    # ==================== EXCEL ====================

    def _workbook(self, payments: list[VendorPayment], title: str) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = title[:31]

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

        for col, header in enumerate(self.LEDGER_HEADER, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border

        for row_num, payment in enumerate(payments, 2):
            for col, value in enumerate(self._values(payment), 1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = thin_border
                if col in self.AMOUNT_COLUMNS:
                    cell.number_format = AMOUNT_FORMAT

        if payments:
            total_row = len(payments) + 2
            ws.cell(row=total_row, column=1, value="Total").font = Font(bold=True)
            for col in self.AMOUNT_COLUMNS:
                if self.LEDGER_HEADER[col - 1] == "Commission Rate":
                    continue
                letter = get_column_letter(col)
                cell = ws.cell(row=total_row, column=col, value=f"=SUM({letter}2:{letter}{total_row - 1})")
                cell.font = Font(bold=True)
                cell.number_format = AMOUNT_FORMAT

        for col, width in enumerate(self.COLUMN_WIDTHS, 1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = "A2"

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()

    async def export_vendor_payments_xlsx(self, db: AsyncSession, filters: LedgerFilters) -> bytes:
        payments = await vendor_payment_service.all_payments(db, filters)
        return self._workbook(payments, "Vendor Payments")

    async def export_vendor_transactions_xlsx(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        months: int = 6,
        payment_type: str | None = None,
    ) -> bytes:
        payments = await self._vendor_payments(db, ctx, months, payment_type)
        return self._workbook(payments, "Transactions")

    # ==================== PDF ====================

    def _table(self, rows: list[list[str]], right_aligned: tuple[int, int] | None = None) -> Table:
        table = Table(rows, repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{HEADER_COLOR}")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 7),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        if right_aligned and len(rows) > 1:
            first, last = right_aligned
            style.append(("ALIGN", (first, 1), (last, -1), "RIGHT"))
        table.setStyle(TableStyle(style))
        return table

    def _ledger_rows(self, payments: list[VendorPayment]) -> list[list[str]]:
        rows = [list(PDF_LEDGER_HEADER)]
        for p in payments:
            rows.append([
                p.payment_date.isoformat(),
                p.booking_reference,
                p.payment_type,
                _money(p.total_amount_ttc),
                _money(p.commission_rate_applied),
                _money(p.commission_amount_incl_vat),
                _money(p.net_amount_ttc),
                p.transfer_status,
                p.transfer_date.isoformat() if p.transfer_date else "",
                p.credit_account or "",
            ])
        rows.append([
            "Total", "", "",
            _money(_total(payments, "total_amount_ttc")),
            "",
            _money(_total(payments, "commission_amount_incl_vat")),
            _money(_total(payments, "net_amount_ttc")),
            "", "", "",
        ])
        return rows

    def _render(self, title: str, story: list) -> bytes:
        output = io.BytesIO()
        doc = SimpleDocTemplate(output, pagesize=landscape(A4), title=title)
        doc.build(story)
        return output.getvalue()

    def _ledger_pdf(self, payments: list[VendorPayment], title: str, subtitle: str) -> bytes:
        styles = getSampleStyleSheet()
        generated = datetime.now(UTC).strftime("%Y-%m-%d %H:%M UTC")
        story = [
            Paragraph(escape(title), styles["Title"]),
            Paragraph(escape(subtitle), styles["Normal"]),
            Paragraph(f"Generated {generated}, {len(payments)} payment(s)", styles["Normal"]),
            Spacer(1, 12),
            self._table(self._ledger_rows(payments), right_aligned=(3, 6)),
        ]
        return self._render(title, story)

    async def export_vendor_payments_pdf(self, db: AsyncSession, filters: LedgerFilters) -> bytes:
        payments = await vendor_payment_service.all_payments(db, filters)
        applied = [
            f"{name}={value}" for name, value in vars(filters).items() if value is not None
        ]
        return self._ledger_pdf(
            payments,
            "Vendor Payments",
            f"Filters: {', '.join(applied)}" if applied else "All payments",
        )

    async def export_vendor_transactions_pdf(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        months: int = 6,
        payment_type: str | None = None,
    ) -> bytes:
        payments = await self._vendor_payments(db, ctx, months, payment_type)
        return self._ledger_pdf(
            payments,
            f"Transactions, {ctx.company_name or ctx.vendor_id}",
            f"Last {months} month(s)" + (f", {payment_type} payments" if payment_type else ""),
        )

    async def monthly_invoice_pdf(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        year: int,
        month: int,
    ) -> tuple[str, bytes]:
        """Render the month's commission invoice, generating it first if needed.

        Returns:
            The invoice number and the PDF bytes
        """
        detail = await revenue_service.create_monthly_invoice(db, ctx, year, month)
        invoice = detail["invoice"]
        summary = detail["summary"]
        commission = summary["total_commission_deducted"]
        styles = getSampleStyleSheet()

        totals = [
            ["", "Amount"],
            ["Total revenue earned (TTC)", _money(summary["total_revenue_earned"])],
            ["Commission excl. VAT", _money(commission["excl_vat"])],
            ["Commission VAT", _money(commission["vat"])],
            ["Commission incl. VAT", _money(commission["incl_vat"])],
            ["Net amount received (TTC)", _money(summary["net_amount_received"])],
        ]
        breakdown = [["Payment type", "Count", "Revenue", "Commission", "Net"]]
        for label, group in (
            ("Full", detail["breakdown"]["full_payments"]),
            ("Partial", detail["breakdown"]["partial_payments"]),
        ):
            breakdown.append([
                label,
                str(group["count"]),
                _money(group["total_revenue"]),
                _money(group["commission_deducted"]),
                _money(group["net_amount"]),
            ])
        lines = [["Date", "Type", "Total TTC", "Rate %", "Commission", "Net", "Status"]]
        for row in detail["transactions"]:
            lines.append([
                row["payment_date"].isoformat(),
                row["payment_type"],
                _money(row["total_amount_ttc"]),
                _money(row["commission_rate"]),
                _money(row["commission_deducted"]),
                _money(row["net_amount"]),
                row["transfer_status"],
            ])

        period = detail["period"]
        story = [
            Paragraph(f"Invoice {escape(invoice.invoice_number)}", styles["Title"]),
            Paragraph(escape(ctx.company_name or str(ctx.vendor_id)), styles["Heading2"]),
            Paragraph(
                f"{detail['month_name']}: {period['start_date'].isoformat()} "
                f"to {period['end_date'].isoformat()}",
                styles["Normal"],
            ),
            Spacer(1, 12),
            self._table(totals, right_aligned=(1, 1)),
            Spacer(1, 12),
            self._table(breakdown, right_aligned=(1, 4)),
            Spacer(1, 12),
            self._table(lines, right_aligned=(2, 5)),
        ]
        return invoice.invoice_number, self._render(f"Invoice {invoice.invoice_number}", story)

    # ==================== HELPERS ====================

    async def _vendor_payments(
        self,
        db: AsyncSession,
        ctx: VendorContext,
        months: int,
        payment_type: str | None,
    ) -> list[VendorPayment]:
        payments = await revenue_service.get_vendor_transactions(db, ctx, months)
        if payment_type:
            payments = [p for p in payments if p.payment_type == payment_type]
        return payments


accounting_export_service = AccountingExportService()
