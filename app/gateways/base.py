"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only the signed handshake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    CMI = "cmi"


@dataclass
class PaymentRequest:
    """Data needed to start a hosted payment for one booking."""

    oid: str
    amount: Decimal
    email: str = ""
    name: str = ""
    tel: str = ""
    company: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""


@dataclass
class PaymentRedirect:
    """Form the client must POST to the gateway."""

    payment_url: str
    inputs: dict[str, str]
    method: str = "post"

    def as_dict(self) -> dict:
        return {"payment_url": self.payment_url, "method": self.method, "inputs": self.inputs}


@dataclass
class CallbackResult:
    """Outcome of verifying a gateway callback."""

    hash_valid: bool
    approved: bool
    oid: str | None = None
    transaction_id: str | None = None
    proc_return_code: str | None = None
    response: str | None = None
    auth_code: str | None = None
    transaction_date: str | None = None
    raw: dict[str, str] = field(default_factory=dict)

    @property
    def captured(self) -> bool:
        return self.hash_valid and self.approved


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""

    @abstractmethod
    def build_payment_request(self, request: PaymentRequest) -> PaymentRedirect:
        """Build the signed parameters for a hosted payment page.

        Args:
            request: Booking payment details

        Returns:
            PaymentRedirect with gateway URL and signed inputs
        """

    @abstractmethod
    def verify_callback(self, fields: dict[str, str]) -> CallbackResult:
        """Verify a callback signature and parse the capture outcome.

        Args:
            fields: Form fields posted by the gateway

        Returns:
            CallbackResult; ``captured`` is True only for a valid, approved payment
        """
