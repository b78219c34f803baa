"""
Paystack adapter.

Endpoints:
    POST /transaction/initialize
    GET  /transaction/verify/{reference}

Amounts travel in kobo (1 NGN = 100 kobo). Webhooks are signed with
HMAC-SHA512 of the raw body keyed by the secret key, sent in the
X-Paystack-Signature header.

Configuration (via settings):
- PAYSTACK_SECRET_KEY: Secret API key (also the webhook signing key)
- PAYSTACK_BASE_URL: API base URL (default: https://api.paystack.co)
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

from django.conf import settings

from payments.adapters.base import (
    HttpGatewayAdapter,
    InitializationResult,
    InitializePaymentParams,
    VerificationResult,
)
from payments.adapters.signatures import hmac_hex_digest, signatures_match
from payments.state_machines import PaymentGateway

KOBO_PER_NAIRA = Decimal(100)


def to_kobo(amount: Decimal) -> int:
    return int((amount * KOBO_PER_NAIRA).to_integral_value())


def from_kobo(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return (Decimal(str(value)) / KOBO_PER_NAIRA).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


class PaystackAdapter(HttpGatewayAdapter):
    """Paystack hosted checkout."""

    gateway = PaymentGateway.PAYSTACK
    signature_header = "X-Paystack-Signature"
    notification_reference_field = "reference"

    def default_secret_key(self) -> str:
        return settings.PAYSTACK_SECRET_KEY

    def default_base_url(self) -> str:
        return settings.PAYSTACK_BASE_URL

    def initialize(self, params: InitializePaymentParams) -> InitializationResult:
        body = self._request(
            "POST",
            "/transaction/initialize",
            operation="initialize",
            reference=params.reference,
            json_body={
                "email": params.payer_email,
                "amount": to_kobo(params.amount),
                "currency": params.currency,
                "reference": params.reference,
                "callback_url": params.callback_url or None,
                "metadata": params.metadata,
            },
        )
        data = self._data(body)
        return InitializationResult(
            authorization_url=data.get("authorization_url"),
            gateway_reference=data.get("reference") or params.reference,
            raw_response=body,
        )

    def verify(self, reference: str) -> VerificationResult:
        body = self._request(
            "GET",
            f"/transaction/verify/{quote(reference, safe='')}",
            operation="verify",
            reference=reference,
        )
        data = self._data(body)
        status = str(data.get("status") or "unknown")
        return VerificationResult(
            succeeded=status == "success",
            status=status,
            amount=from_kobo(data.get("amount")),
            gateway_reference=str(data["id"]) if data.get("id") is not None else None,
            raw_response=body,
        )

    def verify_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        if not self.secret_key:
            return False
        expected = hmac_hex_digest(self.secret_key, raw_payload)
        return signatures_match(expected, signature.lower() if signature else signature)

    def _is_accepted(self, body: Any) -> bool:
        return isinstance(body, dict) and body.get("status") is True
