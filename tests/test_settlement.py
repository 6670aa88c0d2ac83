from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import status
from sqlalchemy import func, select

from app.gateways.cmi import cmi_gateway
from app.models.payment import Transaction
from app.models.vendor_payment import VendorPayment
from app.schemas.booking import OrderCreate, ReservationCreate
from app.services.admission_service import admission_service
from app.services.settlement_service import FAILURE, POSTAUTH
from app.utils.dates import local_today

CALLBACK_URL = "/api/v1/payments/cmi/callback"


def signed_callback(oid: str, transid: str | None = "25012312345", amount="200.00", **overrides):
    fields = {
        "oid": oid,
        "ProcReturnCode": "00",
        "Response": "Approved",
        "AuthCode": "P12345",
        "amount": amount,
        "currency": "504",
        "EXTRA.TRXDATE": "20250123 10:15:00",
        "clientid": "600000000",
    }
    if transid is not None:
        fields["TransId"] = transid
    fields.update(overrides)
    return {**fields, "HASH": cmi_gateway.generate_callback_hash(fields)}


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
async def online_order(db, order_blane, customer_data):
    result = await admission_service.create_order(
        db,
        OrderCreate(blane_id=order_blane.id, quantity=2, payment_method="online", **customer_data),
    )
    return result.booking


async def test_callback_settles_order(client, db, online_order, vendor_user, enqueued):
    response = await client.post(CALLBACK_URL, data=signed_callback(online_order.NUM_ORD))

    assert response.status_code == status.HTTP_200_OK
    assert response.text == POSTAUTH
    assert online_order.status == "paid"

    transaction = (await db.execute(select(Transaction))).scalar_one()
    assert transaction.order_id == online_order.id
    assert transaction.transid == "25012312345"
    assert transaction.auth_code == "P12345"
    assert transaction.gateway_response["oid"] == online_order.NUM_ORD

    payment = (await db.execute(select(VendorPayment))).scalar_one()
    assert payment.vendor_id == vendor_user.id
    assert payment.order_id == online_order.id
    assert payment.payment_type == "full"
    assert payment.total_amount_ttc == Decimal("200.00")
    assert payment.commission_rate_applied == Decimal("10.00")
    assert payment.commission_amount_excl_vat == Decimal("20.00")
    assert payment.commission_vat == Decimal("4.00")
    assert payment.commission_amount_incl_vat == Decimal("24.00")
    assert payment.net_amount_ttc == Decimal("176.00")
    assert payment.transfer_status == "pending"
    assert payment.credit_account == vendor_user.rib_account

    assert "app.tasks.send_booking_confirmation_email" in [name for name, _ in enqueued]


async def test_duplicate_callback_is_noop(client, db, online_order):
    fields = signed_callback(online_order.NUM_ORD)

    first = await client.post(CALLBACK_URL, data=fields)
    second = await client.post(CALLBACK_URL, data=fields)

    assert first.text == POSTAUTH
    assert second.text == POSTAUTH
    assert await count(db, Transaction) == 1
    assert await count(db, VendorPayment) == 1


async def test_second_transaction_for_paid_booking_fails(client, db, online_order):
    await client.post(CALLBACK_URL, data=signed_callback(online_order.NUM_ORD, "T-1"))

    response = await client.post(CALLBACK_URL, data=signed_callback(online_order.NUM_ORD, "T-2"))

    assert response.text == FAILURE
    assert await count(db, Transaction) == 1


async def test_invalid_hash_fails(client, db, online_order):
    fields = signed_callback(online_order.NUM_ORD)
    fields["amount"] = "1.00"

    response = await client.post(CALLBACK_URL, data=fields)

    assert response.status_code == status.HTTP_200_OK
    assert response.text == FAILURE
    assert online_order.status == "pending"
    assert await count(db, Transaction) == 0


async def test_declined_payment_leaves_status(client, db, online_order):
    response = await client.post(
        CALLBACK_URL,
        data=signed_callback(online_order.NUM_ORD, ProcReturnCode="05", Response="Declined"),
    )

    assert response.text == FAILURE
    assert online_order.status == "pending"
    assert await count(db, Transaction) == 0


@pytest.mark.parametrize("oid", ["SUB-AB123456", "INV-2025", ""])
async def test_unsupported_oid_fails(client, oid):
    response = await client.post(CALLBACK_URL, data=signed_callback(oid))
    assert response.text == FAILURE


async def test_missing_transaction_id_fails(client, db, online_order):
    response = await client.post(CALLBACK_URL, data=signed_callback(online_order.NUM_ORD, None))

    assert response.text == FAILURE
    assert online_order.status == "pending"


async def test_unsigned_callback_with_superscript_field_fails(client, db, online_order):
    response = await client.post(
        CALLBACK_URL, data={"oid": online_order.NUM_ORD, "m²": "1", "HASH": "x"}
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.text == FAILURE
    assert await count(db, Transaction) == 0


async def test_signed_callback_with_superscript_field_settles(client, db, online_order):
    response = await client.post(
        CALLBACK_URL, data=signed_callback(online_order.NUM_ORD, **{"surface_m²": "40"})
    )

    assert response.text == POSTAUTH
    assert await count(db, Transaction) == 1


async def test_unexpected_verification_error_fails(client, online_order, monkeypatch):
    def broken(fields):
        raise RuntimeError("digest backend unavailable")

    monkeypatch.setattr(cmi_gateway, "verify_callback", broken)

    response = await client.post(CALLBACK_URL, data=signed_callback(online_order.NUM_ORD))

    assert response.status_code == status.HTTP_200_OK
    assert response.text == FAILURE


async def test_unknown_booking_fails(client):
    response = await client.post(CALLBACK_URL, data=signed_callback("ORDER-XX000000"))
    assert response.text == FAILURE


async def test_cash_booking_never_creates_vendor_payment(
    client, db, order_blane, customer_data
):
    result = await admission_service.create_order(
        db,
        OrderCreate(blane_id=order_blane.id, quantity=1, payment_method="cash", **customer_data),
    )

    response = await client.post(CALLBACK_URL, data=signed_callback(result.booking.NUM_ORD))

    assert response.text == POSTAUTH
    assert result.booking.status == "paid"
    assert await count(db, Transaction) == 1
    assert await count(db, VendorPayment) == 0


async def test_partial_reservation_uses_partial_rate(
    client, db, reservation_blane, customer_data
):
    result = await admission_service.create_reservation(
        db,
        ReservationCreate(
            blane_id=reservation_blane.id,
            date=local_today() + timedelta(days=3),
            quantity=2,
            number_persons=2,
            payment_method="partiel",
            partiel_price=Decimal("50.00"),
            **customer_data,
        ),
    )
    reservation = result.booking

    response = await client.post(
        CALLBACK_URL, data=signed_callback(reservation.NUM_RES, amount="50.00")
    )

    assert response.text == POSTAUTH
    payment = (await db.execute(select(VendorPayment))).scalar_one()
    assert payment.reservation_id == reservation.id
    assert payment.payment_type == "partial"
    # 3.5 is below the 10% base rate, so it replaces it
    assert payment.commission_rate_applied == Decimal("3.5")
    assert payment.total_amount_ttc == Decimal("50.00")
    assert payment.net_amount_ttc + payment.commission_amount_incl_vat == Decimal("50.00")


async def test_payment_settles_without_resolvable_vendor(
    client, db, blane_factory, customer_data
):
    """Ledger failures are logged; the capture itself still succeeds."""
    blane = await blane_factory(vendor_id=None, commerce_name="Unknown Shop")
    result = await admission_service.create_order(
        db,
        OrderCreate(blane_id=blane.id, quantity=1, payment_method="online", **customer_data),
    )

    response = await client.post(CALLBACK_URL, data=signed_callback(result.booking.NUM_ORD))

    assert response.text == POSTAUTH
    assert result.booking.status == "paid"
    assert await count(db, Transaction) == 1
    assert await count(db, VendorPayment) == 0


async def test_initiate_payment(client, online_order):
    code = online_order.NUM_ORD

    response = await client.post("/api/v1/payments/cmi/initiate", json={"number": code})

    assert response.status_code == status.HTTP_200_OK
    inputs = response.json()["inputs"]
    assert inputs["oid"] == code
    assert inputs["amount"] == "200.00"

    await client.post(CALLBACK_URL, data=signed_callback(code))
    response = await client.post("/api/v1/payments/cmi/initiate", json={"number": code})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_payment_landing_pages(client, online_order):
    code = online_order.NUM_ORD

    response = await client.get(f"/api/v1/payments/cmi/fail/{code}")
    assert response.json() == {"oid": code, "result": "failure", "status": "pending", "paid": False}

    await client.post(CALLBACK_URL, data=signed_callback(code))
    response = await client.get(f"/api/v1/payments/cmi/ok/{code}")
    assert response.json()["paid"] is True
