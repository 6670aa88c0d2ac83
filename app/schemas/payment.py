"""Payment gateway Pydantic schemas."""

from pydantic import BaseModel, Field


class PaymentInitiateRequest(BaseModel):
    """Schema for restarting the online payment of a booking."""

    number: str = Field(..., min_length=1, description="ORDER- or RES- booking code")


class PaymentRedirectResponse(BaseModel):
    """Form the client posts to the hosted payment page."""

    payment_url: str
    method: str = "post"
    inputs: dict[str, str]


class PaymentResultResponse(BaseModel):
    """Schema for the gateway ok/fail landing."""

    oid: str
    result: str
    status: str
    paid: bool
