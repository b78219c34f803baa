"""
Pytest fixtures for webhook tests.

Provides a request factory, gateway secrets and signed notification
builders. Signatures are computed with the real adapters' algorithms so
the view is exercised end to end up to the gateway verify call.
"""

import json
from decimal import Decimal

import pytest
from django.test import RequestFactory

from payments.adapters import FlutterwaveAdapter, PaystackAdapter, VerificationResult
from payments.adapters.signatures import hmac_base64_digest, hmac_hex_digest

PAYSTACK_SECRET = "sk_test_webhook_paystack"
FLUTTERWAVE_HASH = "webhook-secret-hash"


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


@pytest.fixture(autouse=True)
def gateway_secrets(settings):
    settings.PAYSTACK_SECRET_KEY = PAYSTACK_SECRET
    settings.FLUTTERWAVE_SECRET_HASH = FLUTTERWAVE_HASH


@pytest.fixture
def paystack_notification():
    """Build a signed Paystack charge.success body and its signature."""

    def _build(reference: str, secret: str = PAYSTACK_SECRET):
        body = json.dumps(
            {
                "event": "charge.success",
                "data": {"reference": reference, "amount": 5000000, "status": "success"},
            }
        ).encode()
        return body, hmac_hex_digest(secret, body)

    return _build


@pytest.fixture
def flutterwave_notification():
    """Build a signed Flutterwave charge.completed body and its signature."""

    def _build(reference: str, secret: str = FLUTTERWAVE_HASH):
        body = json.dumps(
            {
                "event": "charge.completed",
                "data": {"id": 288200108, "tx_ref": reference, "status": "successful"},
            }
        ).encode()
        return body, hmac_base64_digest(secret, body)

    return _build


@pytest.fixture
def gateway_confirms_payment(mocker):
    """
    Make both HTTP gateways report a successful 50,000.00 payment.

    Signature checks stay real; only the outbound verify call is replaced.
    """
    result = VerificationResult(
        succeeded=True,
        status="success",
        amount=Decimal("50000.00"),
        gateway_reference="4099260516",
        raw_response={"status": True},
    )
    return {
        "paystack": mocker.patch.object(PaystackAdapter, "verify", return_value=result),
        "flutterwave": mocker.patch.object(FlutterwaveAdapter, "verify", return_value=result),
    }
