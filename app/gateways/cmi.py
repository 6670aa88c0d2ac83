"""CMI payment gateway adapter.

3D Pay Hosting integration. The hash is SHA-512 over the natural,
case-insensitive key order of all fields except ``hash`` and ``encoding``,
with each value escaped and pipe-terminated, followed by the escaped store
key; the raw digest is base64 encoded.
"""

import base64
import hashlib
import html
import hmac
import logging
import re
import secrets
from decimal import ROUND_HALF_UP, Decimal

from app.config import settings
from app.gateways.base import (
    CallbackResult,
    GatewayType,
    PaymentGateway,
    PaymentRedirect,
    PaymentRequest,
)

logger = logging.getLogger(__name__)

EXCLUDED_HASH_FIELDS = {"hash", "encoding"}
APPROVED_RETURN_CODE = "00"
APPROVED_RESPONSE = "Approved"


def natural_key(value: str) -> list:
    """Sort key equivalent to a natural, case-insensitive ordering."""
    # Captured digit runs land on odd indices
    return [
        int(part) if i % 2 else part.lower()
        for i, part in enumerate(re.split(r"(\d+)", value))
    ]


def escape_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("|", "\\|")


def normalize_callback_value(value: str) -> str:
    """Strip one trailing newline then decode HTML entities."""
    if value.endswith("\n"):
        value = value[:-1]
    return html.unescape(value)


def compute_hash(params: dict[str, str], store_key: str, callback: bool = False) -> str:
    """Compute the CMI hash for a parameter map.

    Args:
        params: Field map (outbound request or inbound callback)
        store_key: Shared secret
        callback: Use inbound normalization instead of trimming

    Returns:
        str: base64 of the raw SHA-512 digest
    """
    parts: list[str] = []
    for key in sorted(params, key=natural_key):
        if key.lower() in EXCLUDED_HASH_FIELDS:
            continue
        raw = "" if params[key] is None else str(params[key])
        value = normalize_callback_value(raw) if callback else raw.strip()
        parts.append(escape_value(value) + "|")

    plain = "".join(parts) + escape_value(store_key)
    digest = hashlib.sha512(plain.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def format_amount(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class CmiGateway(PaymentGateway):
    """CMI payment gateway implementation."""

    def __init__(
        self,
        client_id: str | None = None,
        store_key: str | None = None,
        base_uri: str | None = None,
    ) -> None:
        self.client_id = client_id if client_id is not None else settings.cmi_client_id
        self.store_key = store_key if store_key is not None else settings.cmi_store_key
        self.base_uri = base_uri or settings.cmi_base_uri

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.CMI

    def generate_hash(self, params: dict[str, str]) -> str:
        return compute_hash(params, self.store_key)

    def generate_callback_hash(self, params: dict[str, str]) -> str:
        return compute_hash(params, self.store_key, callback=True)

    def build_payment_request(self, request: PaymentRequest) -> PaymentRedirect:
        """Build signed 3D Pay Hosting form inputs."""
        base = settings.cmi_ok_fail_url.rstrip("/")
        params = {
            "clientid": self.client_id,
            "storetype": settings.cmi_store_type,
            "trantype": settings.cmi_tran_type,
            "amount": format_amount(request.amount),
            "currency": settings.cmi_currency,
            "oid": request.oid,
            "okUrl": f"{base}/{request.oid}/{settings.cmi_ok_url}",
            "failUrl": f"{base}/{request.oid}/{settings.cmi_fail_url}",
            "lang": settings.cmi_lang,
            "email": request.email,
            "BillToName": request.name,
            "BillToCompany": request.company,
            "BillToStreet1": request.street,
            "BillToCity": request.city,
            "BillToStateProv": request.state,
            "BillToPostalCode": request.postal_code,
            "tel": request.tel,
            "rnd": secrets.token_hex(10),
            "hashAlgorithm": settings.cmi_hash_algorithm,
            "callbackUrl": settings.cmi_callback_url,
            "encoding": "UTF-8",
            "CallbackResponse": "true",
        }
        # Values are sent exactly as hashed
        params = {key: (value or "").strip() for key, value in params.items()}
        params["hash"] = self.generate_hash(params)

        return PaymentRedirect(payment_url=self.base_uri, inputs=params)

    def verify_callback(self, fields: dict[str, str]) -> CallbackResult:
        """Verify the callback HASH and the approval fields."""
        received = fields.get("HASH", "")
        signed = {key: value for key, value in fields.items() if key != "HASH"}
        expected = self.generate_callback_hash(signed)
        hash_valid = bool(received) and hmac.compare_digest(
            expected.encode("utf-8"), received.encode("utf-8")
        )

        if not hash_valid:
            logger.warning(f"CMI callback hash mismatch for oid={fields.get('oid')}")

        approved = (
            fields.get("ProcReturnCode") == APPROVED_RETURN_CODE
            and fields.get("Response") == APPROVED_RESPONSE
        )

        return CallbackResult(
            hash_valid=hash_valid,
            approved=approved,
            oid=fields.get("oid"),
            transaction_id=fields.get("TransId"),
            proc_return_code=fields.get("ProcReturnCode"),
            response=fields.get("Response"),
            auth_code=fields.get("AuthCode"),
            transaction_date=fields.get("EXTRA.TRXDATE"),
            raw=dict(fields),
        )


cmi_gateway = CmiGateway()
