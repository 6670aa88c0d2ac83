from datetime import timedelta

import pytest
from fastapi import status

from app.core.exceptions import AuthorizationError, StateConflictError
from app.core.security import sign_cancel_request
from app.schemas.booking import OrderCreate
from app.services.admission_service import admission_service
from app.services.cancellation_service import cancellation_service
from app.utils.dates import local_today


async def create_order(client, blane, customer_data, quantity=2) -> dict:
    response = await client.post(
        "/api/v1/orders",
        json={
            "blane_id": str(blane.id),
            "quantity": quantity,
            "payment_method": "cash",
            **customer_data,
        },
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


async def test_cancel_order_restores_stock_once(client, db, order_blane, customer_data):
    """Second cancel with the same token is a state conflict; stock restored once."""
    created = await create_order(client, order_blane, customer_data, quantity=3)
    assert order_blane.stock == 7

    response = await client.post("/api/v1/orders/cancel", json=created["cancellation"])
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "cancelled"
    assert order_blane.stock == 10

    response = await client.post("/api/v1/orders/cancel", json=created["cancellation"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    await db.refresh(order_blane)
    assert order_blane.stock == 10


async def test_cancel_with_wrong_token(client, order_blane, customer_data):
    created = await create_order(client, order_blane, customer_data)
    params = {**created["cancellation"], "token": "0" * 64}

    response = await client.post("/api/v1/orders/cancel", json=params)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Invalid cancellation token"


async def test_cancel_reservation_restores_remaining(client, reservation_blane, customer_data):
    day = local_today() + timedelta(days=2)
    created = await client.post(
        "/api/v1/reservations",
        json={
            "blane_id": str(reservation_blane.id),
            "date": day.isoformat(),
            "quantity": 2,
            "number_persons": 2,
            "payment_method": "cash",
            **customer_data,
        },
    )
    assert reservation_blane.nombre_max_reservation == 98

    response = await client.post(
        "/api/v1/reservations/cancel", json=created.json()["cancellation"]
    )

    assert response.status_code == status.HTTP_200_OK
    assert reservation_blane.nombre_max_reservation == 100


async def test_cancel_endpoint_checks_code_prefix(client, reservation_blane, customer_data):
    response = await client.post(
        "/api/v1/orders/cancel", json={"id": "RES-AB123456", "token": "x", "timestamp": 0}
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.fixture
async def order(db, order_blane, customer_data):
    result = await admission_service.create_order(
        db,
        OrderCreate(blane_id=order_blane.id, quantity=1, payment_method="cash", **customer_data),
    )
    return result.booking


async def test_request_older_than_window_rejected(db, order):
    """A correctly signed request is refused once its timestamp is over 900 seconds old."""
    issued = order.cancel_token_created_at
    timestamp = int(issued.timestamp())
    token = sign_cancel_request(order.cancel_token, timestamp)

    with pytest.raises(AuthorizationError, match="request has expired"):
        await cancellation_service.cancel(
            db, order.NUM_ORD, token, timestamp, now=issued + timedelta(seconds=901)
        )

    # Inside the window the same request succeeds
    cancelled = await cancellation_service.cancel(
        db, order.NUM_ORD, token, timestamp, now=issued + timedelta(seconds=899)
    )
    assert cancelled.status == "cancelled"


async def test_token_older_than_one_hour_rejected(db, order):
    """A fresh, correctly signed request is refused once the token is over an hour old."""
    now = order.cancel_token_created_at + timedelta(seconds=3601)
    timestamp = int(now.timestamp())
    token = sign_cancel_request(order.cancel_token, timestamp)

    with pytest.raises(AuthorizationError, match="token has expired"):
        await cancellation_service.cancel(db, order.NUM_ORD, token, timestamp, now=now)

    assert order.status == "pending"


async def test_cancel_paid_order_is_state_conflict(db, order):
    order.status = "paid"
    await db.commit()
    issued = order.cancel_token_created_at
    timestamp = int(issued.timestamp())
    token = sign_cancel_request(order.cancel_token, timestamp)

    with pytest.raises(StateConflictError):
        await cancellation_service.cancel(db, order.NUM_ORD, token, timestamp, now=issued)
