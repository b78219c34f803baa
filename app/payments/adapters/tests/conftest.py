"""
Pytest fixtures for gateway adapter tests.

Adapters take a requests session, so tests hand them a MagicMock session
and script its responses instead of patching requests globally.

Sections:
    - Response Builders
    - Adapter Fixtures
"""

import json
from unittest.mock import MagicMock

import pytest

from payments.adapters import FlutterwaveAdapter, PaystackAdapter


# =============================================================================
# Response Builders
# =============================================================================


def gateway_response(status_code: int = 200, body=None, text: str | None = None):
    """
    Build a mock requests.Response.

    Pass text instead of body for a response that is not JSON.
    """
    response = MagicMock()
    response.status_code = status_code
    if text is not None:
        response.text = text
        response.json.side_effect = json.JSONDecodeError("Expecting value", text, 0)
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def mock_session():
    """A requests.Session double; set request.return_value per test."""
    return MagicMock()


# =============================================================================
# Adapter Fixtures
# =============================================================================


@pytest.fixture
def paystack(mock_session):
    return PaystackAdapter(
        secret_key="sk_test_paystack",
        base_url="https://api.paystack.test",
        timeout=5,
        session=mock_session,
    )


@pytest.fixture
def flutterwave(mock_session):
    return FlutterwaveAdapter(
        secret_key="FLWSECK_TEST-flutterwave",
        secret_hash="flutterwave-webhook-hash",
        base_url="https://api.flutterwave.test/v3/",
        timeout=5,
        session=mock_session,
    )
