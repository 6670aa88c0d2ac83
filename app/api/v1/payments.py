"""CMI payment gateway endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.schemas.payment import (
    PaymentInitiateRequest,
    PaymentRedirectResponse,
    PaymentResultResponse,
)
from app.services.settlement_service import FAILURE, settlement_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/cmi/callback", response_class=PlainTextResponse)
async def cmi_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PlainTextResponse:
    """Server-to-server payment notification.

    Always answers 200; the body tells the gateway whether to capture.
    """
    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"Unreadable CMI callback body: {e}")
        return PlainTextResponse(FAILURE)

    fields = {key: str(value) for key, value in form.items()}
    answer = await settlement_service.handle_callback(db, fields)
    return PlainTextResponse(answer)


@router.post("/cmi/initiate", response_model=PaymentRedirectResponse)
async def initiate_payment(
    payment_data: PaymentInitiateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Rebuild the gateway form for a booking still awaiting payment."""
    return await settlement_service.initiate_payment(db, payment_data.number)


@router.get("/cmi/ok/{oid}", response_model=PaymentResultResponse)
async def payment_ok(
    oid: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    return await settlement_service.payment_result(db, oid, "success")


@router.get("/cmi/fail/{oid}", response_model=PaymentResultResponse)
async def payment_fail(
    oid: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    return await settlement_service.payment_result(db, oid, "failure")
