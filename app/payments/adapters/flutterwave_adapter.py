"""
Flutterwave adapter.

Endpoints:
    POST /payments
    GET  /transactions/verify_by_reference?tx_ref={reference}

Amounts travel in major units. Webhooks carry an HMAC-SHA256 of the raw
body keyed by the dashboard secret hash, base64 encoded, in the
flutterwave-signature header.

Configuration (via settings):
- FLUTTERWAVE_SECRET_KEY: Secret API key
- FLUTTERWAVE_SECRET_HASH: Webhook signing secret
- FLUTTERWAVE_BASE_URL: API base URL (default: https://api.flutterwave.com/v3)
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings

from payments.adapters.base import (
    HttpGatewayAdapter,
    InitializationResult,
    InitializePaymentParams,
    VerificationResult,
)
from payments.adapters.signatures import hmac_base64_digest, signatures_match
from payments.state_machines import PaymentGateway


def to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


class FlutterwaveAdapter(HttpGatewayAdapter):
    """Flutterwave Standard hosted checkout."""

    gateway = PaymentGateway.FLUTTERWAVE
    signature_header = "flutterwave-signature"
    notification_reference_field = "tx_ref"

    def __init__(self, secret_hash: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.secret_hash = (
            secret_hash if secret_hash is not None else settings.FLUTTERWAVE_SECRET_HASH
        )

    def default_secret_key(self) -> str:
        return settings.FLUTTERWAVE_SECRET_KEY

    def default_base_url(self) -> str:
        return settings.FLUTTERWAVE_BASE_URL

    def initialize(self, params: InitializePaymentParams) -> InitializationResult:
        body = self._request(
            "POST",
            "/payments",
            operation="initialize",
            reference=params.reference,
            json_body={
                "tx_ref": params.reference,
                "amount": str(params.amount),
                "currency": params.currency,
                "redirect_url": params.callback_url or None,
                "customer": {"email": params.payer_email},
                "customizations": {
                    "title": settings.PAYMENT_CHECKOUT_TITLE,
                    "description": f"Payment {params.reference}",
                },
                "meta": params.metadata,
            },
        )
        data = self._data(body)
        return InitializationResult(
            authorization_url=data.get("link"),
            gateway_reference=params.reference,
            raw_response=body,
        )

    def verify(self, reference: str) -> VerificationResult:
        body = self._request(
            "GET",
            "/transactions/verify_by_reference",
            operation="verify",
            reference=reference,
            params={"tx_ref": reference},
        )
        data = self._data(body)
        status = str(data.get("status") or "unknown")
        return VerificationResult(
            succeeded=status == "successful",
            status=status,
            amount=to_decimal(data.get("amount")),
            gateway_reference=str(data["id"]) if data.get("id") is not None else None,
            raw_response=body,
        )

    def verify_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        if not self.secret_hash:
            return False
        expected = hmac_base64_digest(self.secret_hash, raw_payload)
        return signatures_match(expected, signature)

    def _is_accepted(self, body: Any) -> bool:
        return isinstance(body, dict) and body.get("status") == "success"
