import io
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import status
from openpyxl import load_workbook
from sqlalchemy import select

from app.core.exceptions import ValidationError
from app.domain.capacity import week_bounds
from app.models.vendor_payment import VendorPayment, VendorPaymentLog
from app.services.vendor_payment_service import REIMBURSEMENT_REASON, vendor_payment_service
from app.utils.dates import local_today

BASE_URL = "/api/v1/vendor-payments"


@pytest.fixture
def paid_payment(db, order_blane, order_factory):
    """Create a paid online order and its ledger row."""

    async def create(quantity: int = 1) -> VendorPayment:
        order = await order_factory(order_blane, quantity=quantity, status="paid")
        payment = await vendor_payment_service.create_for_booking(db, order)
        await db.commit()
        return payment

    return create


async def test_create_for_booking_is_idempotent(db, order_blane, order_factory):
    order = await order_factory(order_blane, quantity=2, status="paid")

    first = await vendor_payment_service.create_for_booking(db, order)
    second = await vendor_payment_service.create_for_booking(db, order)

    assert first.id == second.id
    assert first.total_amount_ttc == Decimal("200.00")
    assert first.net_amount_ttc == Decimal("176.00")
    assert first.debit_account.endswith("MA64011519000001205000534921")
    assert (first.week_start, first.week_end) == week_bounds(local_today())


async def test_cash_booking_rejected(db, order_blane, order_factory):
    order = await order_factory(order_blane, payment_method="cash", status="paid")

    with pytest.raises(ValidationError):
        await vendor_payment_service.create_for_booking(db, order)


async def test_mark_processed_logs_each_row_and_bulk(
    client, db, paid_payment, admin_user, admin_headers
):
    first = await paid_payment()
    second = await paid_payment(quantity=2)
    ids = [str(first.id), str(second.id)]

    response = await client.post(
        f"{BASE_URL}/mark-processed",
        json={"ids": ids, "note": "Virement du 22/01"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["affected_rows"] == 2
    assert {p["transfer_status"] for p in body["payments"]} == {"processed"}
    assert all(p["processed_by"] == str(admin_user.id) for p in body["payments"])

    logs = (await db.execute(select(VendorPaymentLog))).scalars().all()
    assert sorted(log.action for log in logs) == [
        "bulk_mark_processed", "mark_processed", "mark_processed",
    ]
    bulk = next(log for log in logs if log.action == "bulk_mark_processed")
    assert bulk.vendor_payment_id is None
    assert bulk.affected_rows == 2

    # Rows already processed are skipped
    response = await client.post(
        f"{BASE_URL}/mark-processed", json={"ids": ids}, headers=admin_headers
    )
    assert response.json()["affected_rows"] == 0


async def test_mark_processed_requires_ids(client, admin_headers):
    response = await client.post(f"{BASE_URL}/mark-processed", json={"ids": []}, headers=admin_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "ids" in response.json()["errors"]


async def test_revert_requires_note(client, db, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = str(payment.id)
    await client.post(f"{BASE_URL}/mark-processed", json={"ids": [payment_id]}, headers=admin_headers)

    response = await client.post(f"{BASE_URL}/{payment_id}/revert", json={"note": ""}, headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = await client.post(
        f"{BASE_URL}/{payment_id}/revert",
        json={"note": "Transfer bounced"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["transfer_status"] == "pending"
    assert body["transfer_date"] is None
    assert body["processed_by"] is None
    assert body["note"] == "Transfer bounced"

    response = await client.get(f"{BASE_URL}/{payment_id}/logs", headers=admin_headers)
    revert = next(log for log in response.json() if log["action"] == "revert_to_pending")
    assert revert["previous_status"] == "processed"
    assert revert["new_status"] == "pending"
    assert revert["admin_note"] == "Transfer bounced"


async def test_revert_pending_payment_is_conflict(client, paid_payment, admin_headers):
    payment = await paid_payment()

    response = await client.post(
        f"{BASE_URL}/{payment.id}/revert", json={"note": "oops"}, headers=admin_headers
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_update_status(client, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = str(payment.id)

    response = await client.patch(
        f"{BASE_URL}/{payment_id}/status", json={"status": "complete"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["transfer_status"] == "complete"
    assert response.json()["transfer_date"] == local_today().isoformat()

    # Same status with nothing to change
    response = await client.patch(
        f"{BASE_URL}/{payment_id}/status", json={"status": "complete"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = await client.patch(
        f"{BASE_URL}/{payment_id}/status", json={"status": "refunded"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "status" in response.json()["errors"]


async def test_mark_processed_with_transfer_date(client, db, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = payment.id

    response = await client.post(
        f"{BASE_URL}/mark-processed",
        json={"ids": [str(payment_id)], "transfer_date": "2025-01-22"},
        headers=admin_headers,
    )

    assert response.json()["payments"][0]["transfer_date"] == "2025-01-22"
    entry = (
        await db.execute(
            select(VendorPaymentLog).where(VendorPaymentLog.vendor_payment_id == payment_id)
        )
    ).scalar_one()
    assert entry.changes["transfer_status"] == {"from": "pending", "to": "processed"}
    assert entry.changes["transfer_date"] == {"from": None, "to": "2025-01-22"}


async def test_same_status_edit_is_logged_as_payment_updated(client, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = str(payment.id)
    paid_on = local_today() - timedelta(days=14)

    response = await client.patch(
        f"{BASE_URL}/{payment_id}/status",
        json={
            "credit_account": "011780000099999999999999",
            "reason": "Reimbursement, corrected RIB",
            "payment_date": paid_on.isoformat(),
        },
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["transfer_status"] == "pending"
    assert body["credit_account"] == "011780000099999999999999"
    assert body["week_start"] == week_bounds(paid_on)[0].isoformat()

    response = await client.get(f"{BASE_URL}/{payment_id}/logs", headers=admin_headers)
    (entry,) = response.json()
    assert entry["action"] == "payment_updated"
    assert entry["previous_status"] == entry["new_status"] == "pending"
    assert set(entry["changes"]) == {"credit_account", "reason", "payment_date"}
    assert entry["changes"]["credit_account"] == {
        "from": "011780000012345678901234",
        "to": "011780000099999999999999",
    }
    assert entry["changes"]["reason"]["from"] == REIMBURSEMENT_REASON


async def test_status_change_with_explicit_transfer_date(client, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = str(payment.id)

    response = await client.patch(
        f"{BASE_URL}/{payment_id}/status",
        json={"status": "processed", "transfer_date": "2025-01-20", "debit_account": "BMCE 0001"},
        headers=admin_headers,
    )

    body = response.json()
    assert body["transfer_status"] == "processed"
    assert body["transfer_date"] == "2025-01-20"
    assert body["debit_account"] == "BMCE 0001"

    response = await client.get(f"{BASE_URL}/{payment_id}/logs", headers=admin_headers)
    (entry,) = response.json()
    assert entry["action"] == "status_update"
    assert set(entry["changes"]) == {"transfer_status", "transfer_date", "debit_account"}


async def test_transfer_date_rejected_on_pending_payment(client, paid_payment, admin_headers):
    payment = await paid_payment()

    response = await client.patch(
        f"{BASE_URL}/{payment.id}/status",
        json={"transfer_date": "2025-01-20"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "transfer_date" in response.json()["errors"]


async def test_service_rejects_non_editable_fields(db, paid_payment, admin_user):
    payment = await paid_payment()

    with pytest.raises(ValidationError) as exc_info:
        await vendor_payment_service.update_payment_status(
            db, payment.id, None, admin_user.id, edits={"net_amount_ttc": Decimal("1.00")}
        )

    assert exc_info.value.errors == {"net_amount_ttc": "not editable"}



async def test_unknown_payment_is_not_found(client, admin_headers):
    response = await client.patch(
        f"{BASE_URL}/00000000-0000-0000-0000-000000000000/status",
        json={"status": "processed"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_list_and_filter(client, paid_payment, admin_headers, vendor_user):
    first = await paid_payment()
    await paid_payment()
    await client.post(
        f"{BASE_URL}/mark-processed", json={"ids": [str(first.id)]}, headers=admin_headers
    )

    response = await client.get(BASE_URL, headers=admin_headers)
    assert response.json()["total"] == 2

    response = await client.get(
        BASE_URL,
        params={"status": "pending", "vendor_id": str(vendor_user.id)},
        headers=admin_headers,
    )
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["transfer_status"] == "pending"
    assert body["items"][0]["booking_reference"] == "order"


async def test_weekly_payments_grouped_by_vendor(client, paid_payment, admin_headers, vendor_user):
    await paid_payment()
    await paid_payment(quantity=3)

    response = await client.get(f"{BASE_URL}/weekly", headers=admin_headers)

    body = response.json()
    assert body["week_start"] == week_bounds(local_today())[0].isoformat()
    assert len(body["payments"]) == 2
    assert len(body["vendors"]) == 1
    summary = body["vendors"][0]
    assert summary["vendor_name"] == "Riad Atlas"
    assert summary["count"] == 2
    assert Decimal(summary["total_ttc"]) == Decimal("400.00")
    assert Decimal(summary["total_net"]) == Decimal(body["total_net"])


async def test_banking_report_totals_by_status(client, paid_payment, admin_headers):
    first = await paid_payment()
    await paid_payment()
    await client.post(
        f"{BASE_URL}/mark-processed", json={"ids": [str(first.id)]}, headers=admin_headers
    )

    response = await client.get(f"{BASE_URL}/banking-report", headers=admin_headers)

    body = response.json()
    assert body["count"] == 2
    totals = body["totals_by_status"]
    assert totals["pending"]["count"] == 1
    assert totals["processed"]["count"] == 1
    assert totals["complete"]["count"] == 0
    assert Decimal(totals["processed"]["net"]) == Decimal("88.00")
    assert Decimal(body["total_net"]) == Decimal("176.00")
    assert body["rows"][0]["credit_account"] == "011780000012345678901234"


async def test_export_csv(client, paid_payment, admin_headers):
    payment = await paid_payment()

    response = await client.get(f"{BASE_URL}/export", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("Payment ID,Vendor ID,Booking Type")
    assert len(lines) == 2
    assert lines[1].startswith(str(payment.id))
    assert ",88.00," in lines[1]


async def test_export_excel(client, paid_payment, admin_headers):
    payment = await paid_payment()
    payment_id = str(payment.id)

    response = await client.get(f"{BASE_URL}/export/excel", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    sheet = load_workbook(io.BytesIO(response.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][:3] == ("Payment ID", "Vendor ID", "Booking Type")
    assert rows[1][0] == payment_id
    assert rows[1][5].date() == local_today()
    assert Decimal(str(rows[1][13])) == Decimal("88.00")
    assert rows[2][0] == "Total"
    assert rows[2][13] == "=SUM(N2:N2)"


async def test_export_pdf(client, paid_payment, admin_headers):
    await paid_payment()

    response = await client.get(
        f"{BASE_URL}/export/pdf", params={"status": "pending"}, headers=admin_headers
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF-")
    assert "vendor_payments_" in response.headers["content-disposition"]


async def test_ledger_is_admin_only(client, vendor_headers):
    response = await client.get(BASE_URL, headers=vendor_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
