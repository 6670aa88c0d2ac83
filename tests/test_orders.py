import re
from decimal import Decimal

from fastapi import status
from sqlalchemy import select

from app.gateways.cmi import cmi_gateway
from app.models.booking import Order
from app.utils.booking_number import format_booking_code


def order_payload(blane, customer_data, **overrides) -> dict:
    payload = {
        "blane_id": str(blane.id),
        "quantity": 1,
        "payment_method": "cash",
        **customer_data,
    }
    payload.update(overrides)
    return payload


async def test_create_cash_order(client, db, order_blane, customer_data, enqueued):
    """Cash order is admitted, stock decremented, notifications queued."""
    response = await client.post(
        "/api/v1/orders", json=order_payload(order_blane, customer_data, quantity=2)
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    order = data["order"]
    assert order["NUM_ORD"].startswith("ORDER-")
    assert order["status"] == "pending"
    assert Decimal(order["total_price"]) == Decimal("200.00")
    assert data["payment_info"] is None
    assert data["cancellation"]["id"] == order["NUM_ORD"]
    assert len(data["cancellation"]["token"]) == 64

    assert order_blane.stock == 8
    queued = [name for name, _ in enqueued]
    assert "app.tasks.send_booking_webhook" in queued
    assert "app.tasks.send_booking_confirmation_email" in queued


async def test_create_online_order_returns_signed_payment_form(
    client, order_blane, customer_data, enqueued
):
    response = await client.post(
        "/api/v1/orders",
        json=order_payload(order_blane, customer_data, quantity=2, payment_method="online"),
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    inputs = data["payment_info"]["inputs"]
    assert inputs["oid"] == data["order"]["NUM_ORD"]
    assert inputs["amount"] == "200.00"
    assert inputs["clientid"] == "600000000"
    assert inputs["hash"] == cmi_gateway.generate_hash(inputs)

    # Confirmation waits for the payment capture
    queued = [name for name, _ in enqueued]
    assert queued == ["app.tasks.send_booking_webhook"]


async def test_partial_order_charges_deposit(client, order_blane, customer_data):
    response = await client.post(
        "/api/v1/orders",
        json=order_payload(
            order_blane, customer_data, payment_method="partiel", partiel_price="30.00"
        ),
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["payment_info"]["inputs"]["amount"] == "30.00"


async def test_partial_order_requires_deposit_below_total(client, order_blane, customer_data):
    response = await client.post(
        "/api/v1/orders",
        json=order_payload(
            order_blane, customer_data, payment_method="partiel", partiel_price="150.00"
        ),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "partiel_price" in response.json()["errors"]


async def test_daily_order_limit(client, blane_factory, order_factory, customer_data):
    """Limit 5 with 4 already booked: 2 is rejected with remaining 1, then 1 is admitted."""
    blane = await blane_factory(availability_per_day=5)
    await order_factory(blane, quantity=3)
    await order_factory(blane, quantity=1)
    two = order_payload(blane, customer_data, quantity=2)
    one = order_payload(blane, customer_data, quantity=1)

    response = await client.post("/api/v1/orders", json=two)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    body = response.json()
    assert body["ceiling"] == "daily"
    assert body["remaining"] == 1
    assert body["detail"] == "Daily order limit reached. Only 1 orders available for today."

    response = await client.post("/api/v1/orders", json=one)
    assert response.status_code == status.HTTP_201_CREATED

    response = await client.post("/api/v1/orders", json=one)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["remaining"] == 0


async def test_order_over_stock_rejected(client, db, order_blane, customer_data):
    response = await client.post(
        "/api/v1/orders", json=order_payload(order_blane, customer_data, quantity=11)
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["ceiling"] == "stock"
    await db.refresh(order_blane)
    assert order_blane.stock == 10
    result = await db.execute(select(Order))
    assert result.scalars().all() == []


async def test_order_over_max_orders_rejected(client, blane_factory, customer_data):
    blane = await blane_factory(max_orders=2)
    response = await client.post(
        "/api/v1/orders", json=order_payload(blane, customer_data, quantity=3)
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["ceiling"] == "max_orders"


async def test_physical_order_requires_delivery_fields(client, blane_factory, customer_data):
    blane = await blane_factory(is_digital=False)
    payload = order_payload(blane, customer_data)
    payload.pop("city")

    response = await client.post("/api/v1/orders", json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    errors = response.json()["errors"]
    assert set(errors) == {"delivery_address", "city"}


async def test_physical_order_adds_delivery_fee(client, blane_factory, customer_data):
    blane = await blane_factory(
        is_digital=False,
        livraison_in_city=Decimal("20.00"),
        livraison_out_city=Decimal("45.00"),
    )

    in_city = await client.post(
        "/api/v1/orders",
        json=order_payload(blane, customer_data, delivery_address="12 Rue Bab Agnaou"),
    )
    out_city = await client.post(
        "/api/v1/orders",
        json=order_payload(
            blane, {**customer_data, "city": "Rabat"}, delivery_address="3 Avenue Hassan II"
        ),
    )

    assert Decimal(in_city.json()["order"]["total_price"]) == Decimal("120.00")
    assert Decimal(out_city.json()["order"]["total_price"]) == Decimal("145.00")


async def test_client_total_is_recomputed(client, order_blane, customer_data):
    response = await client.post(
        "/api/v1/orders",
        json=order_payload(order_blane, customer_data, total_price="1.00"),
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert Decimal(response.json()["order"]["total_price"]) == Decimal("100.00")


async def test_order_on_inactive_blane(client, blane_factory, customer_data):
    blane = await blane_factory(status="inactive")
    response = await client.post("/api/v1/orders", json=order_payload(blane, customer_data))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "This blane is not available"


async def test_order_schema_errors_are_per_field(client, order_blane, customer_data):
    response = await client.post(
        "/api/v1/orders",
        json=order_payload(order_blane, customer_data, quantity=0, email="not-an-email"),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    errors = response.json()["errors"]
    assert "quantity" in errors
    assert "email" in errors


async def test_get_order_and_update_status(client, order_blane, customer_data):
    created = await client.post("/api/v1/orders", json=order_payload(order_blane, customer_data))
    code = created.json()["order"]["NUM_ORD"]

    response = await client.get(f"/api/v1/orders/{code}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["NUM_ORD"] == code

    response = await client.patch(f"/api/v1/orders/{code}/status", json={"status": "failed"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "failed"

    # failed is terminal
    response = await client.patch(f"/api/v1/orders/{code}/status", json={"status": "pending"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_status_update_rejects_paid(client, order_blane, customer_data):
    created = await client.post("/api/v1/orders", json=order_payload(order_blane, customer_data))
    code = created.json()["order"]["NUM_ORD"]

    response = await client.patch(f"/api/v1/orders/{code}/status", json={"status": "paid"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "status" in response.json()["errors"]


async def test_get_unknown_order(client):
    response = await client.get("/api/v1/orders/ORDER-XX000000")
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = await client.get("/api/v1/orders/RES-XX000000")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_booking_codes_draw_letters_with_replacement():
    codes = [format_booking_code("ORDER") for _ in range(2000)]

    assert all(re.fullmatch(r"ORDER-[A-Z]{2}\d{6}", code) for code in codes)
    # 676 letter pairs, 26 of them doubled
    assert any(code[6] == code[7] for code in codes)
