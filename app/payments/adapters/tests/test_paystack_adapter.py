"""
Tests for PaystackAdapter.

Covers request mapping (kobo amounts, bearer auth), response mapping,
error translation, the circuit breaker and webhook signatures.
"""

import json
from decimal import Decimal

import pytest
import requests

from payments.adapters import InitializePaymentParams, PaystackAdapter
from payments.adapters.paystack_adapter import from_kobo, to_kobo
from payments.adapters.signatures import hmac_hex_digest
from payments.adapters.tests.conftest import gateway_response
from payments.exceptions import GatewayRejectedError, GatewayUnavailableError

REFERENCE = "PMT-1700000000000-ABCDEF01"


@pytest.fixture
def params():
    return InitializePaymentParams(
        reference=REFERENCE,
        amount=Decimal("50000.00"),
        payer_email="member@example.com",
        callback_url="https://pensions.example.com/payments/callback",
        metadata={"payment_reference": REFERENCE},
    )


def verify_body(status="success", amount=5000000, transaction_id=4099260516):
    return {
        "status": True,
        "message": "Verification successful",
        "data": {
            "id": transaction_id,
            "status": status,
            "reference": REFERENCE,
            "amount": amount,
            "currency": "NGN",
        },
    }


class TestKoboConversion:
    @pytest.mark.parametrize(
        "amount,kobo",
        [("50000.00", 5000000), ("0.01", 1), ("1234.56", 123456)],
    )
    def test_to_kobo(self, amount, kobo):
        assert to_kobo(Decimal(amount)) == kobo

    def test_from_kobo(self):
        assert from_kobo(5000000) == Decimal("50000.00")
        assert from_kobo("123456") == Decimal("1234.56")
        assert from_kobo(None) is None

    @pytest.mark.parametrize("value", ["12,000", "abc", ""])
    def test_from_kobo_rejects_non_numeric(self, value):
        assert from_kobo(value) is None


class TestInitialize:
    def test_request(self, paystack, mock_session, params):
        mock_session.request.return_value = gateway_response(
            body={
                "status": True,
                "data": {
                    "authorization_url": "https://checkout.paystack.com/0peioxfhpn",
                    "access_code": "0peioxfhpn",
                    "reference": REFERENCE,
                },
            }
        )

        paystack.initialize(params)

        args, kwargs = mock_session.request.call_args
        assert args == ("POST", "https://api.paystack.test/transaction/initialize")
        assert kwargs["headers"]["Authorization"] == "Bearer sk_test_paystack"
        assert kwargs["timeout"] == 5
        assert kwargs["json"] == {
            "email": "member@example.com",
            "amount": 5000000,
            "currency": "NGN",
            "reference": REFERENCE,
            "callback_url": "https://pensions.example.com/payments/callback",
            "metadata": {"payment_reference": REFERENCE},
        }

    def test_result(self, paystack, mock_session, params):
        body = {
            "status": True,
            "data": {
                "authorization_url": "https://checkout.paystack.com/0peioxfhpn",
                "reference": REFERENCE,
            },
        }
        mock_session.request.return_value = gateway_response(body=body)

        result = paystack.initialize(params)

        assert result.authorization_url == "https://checkout.paystack.com/0peioxfhpn"
        assert result.gateway_reference == REFERENCE
        assert result.raw_response == body

    def test_rejected(self, paystack, mock_session, params):
        mock_session.request.return_value = gateway_response(
            400, {"status": False, "message": "Invalid Email Address Passed"}
        )

        with pytest.raises(GatewayRejectedError) as exc_info:
            paystack.initialize(params)

        assert "Invalid Email Address Passed" in exc_info.value.message
        assert exc_info.value.is_retryable is False
        assert exc_info.value.details["http_status"] == 400

    def test_status_false_on_200_is_rejected(self, paystack, mock_session, params):
        mock_session.request.return_value = gateway_response(
            200, {"status": False, "message": "Duplicate Transaction Reference"}
        )

        with pytest.raises(GatewayRejectedError):
            paystack.initialize(params)


class TestVerify:
    def test_successful_payment(self, paystack, mock_session):
        mock_session.request.return_value = gateway_response(body=verify_body())

        result = paystack.verify(REFERENCE)

        args, kwargs = mock_session.request.call_args
        assert args == ("GET", f"https://api.paystack.test/transaction/verify/{REFERENCE}")
        assert result.succeeded is True
        assert result.status == "success"
        assert result.amount == Decimal("50000.00")
        assert result.gateway_reference == "4099260516"
        assert result.raw_response == verify_body()

    @pytest.mark.parametrize("status", ["abandoned", "failed", "reversed", None])
    def test_unsuccessful_payment(self, paystack, mock_session, status):
        mock_session.request.return_value = gateway_response(body=verify_body(status=status))

        result = paystack.verify(REFERENCE)

        assert result.succeeded is False
        assert result.status == (status or "unknown")

    def test_missing_amount(self, paystack, mock_session):
        mock_session.request.return_value = gateway_response(body=verify_body(amount=None))

        assert paystack.verify(REFERENCE).amount is None

    def test_non_numeric_amount_is_reported_missing(self, paystack, mock_session):
        mock_session.request.return_value = gateway_response(body=verify_body(amount="5,000,000"))

        result = paystack.verify(REFERENCE)

        assert result.succeeded is True
        assert result.amount is None

    def test_reference_is_url_quoted(self, paystack, mock_session):
        mock_session.request.return_value = gateway_response(body=verify_body())

        paystack.verify("PMT/../1")

        assert mock_session.request.call_args[0][1].endswith("/transaction/verify/PMT%2F..%2F1")


class TestErrorTranslation:
    @pytest.mark.parametrize(
        "error",
        [requests.Timeout("read timed out"), requests.ConnectionError("refused")],
    )
    def test_transport_errors_are_unavailable(self, paystack, mock_session, error):
        mock_session.request.side_effect = error

        with pytest.raises(GatewayUnavailableError) as exc_info:
            paystack.verify(REFERENCE)

        assert exc_info.value.is_retryable is True
        assert exc_info.value.gateway == "paystack"

    def test_timeout_message(self, paystack, mock_session):
        mock_session.request.side_effect = requests.Timeout()

        with pytest.raises(GatewayUnavailableError, match="timed out after 5s"):
            paystack.verify(REFERENCE)

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_server_errors_are_unavailable(self, paystack, mock_session, status_code):
        mock_session.request.return_value = gateway_response(status_code, {"status": False})

        with pytest.raises(GatewayUnavailableError):
            paystack.verify(REFERENCE)

    def test_unreadable_body_is_unavailable(self, paystack, mock_session):
        mock_session.request.return_value = gateway_response(200, text="<html>Bad Gateway</html>")

        with pytest.raises(GatewayUnavailableError, match="unreadable"):
            paystack.verify(REFERENCE)


class TestCircuitBreaker:
    """The circuit is shared per gateway through the cache."""

    def test_opens_after_threshold(self, mock_session, settings):
        settings.PAYMENT_GATEWAY_CIRCUIT_FAILURE_THRESHOLD = 2
        adapter = PaystackAdapter(secret_key="sk_test", session=mock_session)
        mock_session.request.side_effect = requests.ConnectionError()

        for _ in range(2):
            with pytest.raises(GatewayUnavailableError):
                adapter.verify(REFERENCE)

        with pytest.raises(GatewayUnavailableError) as exc_info:
            adapter.verify(REFERENCE)

        assert exc_info.value.details["circuit"] == "open"
        assert mock_session.request.call_count == 2

    def test_server_errors_open_circuit(self, mock_session, settings):
        settings.PAYMENT_GATEWAY_CIRCUIT_FAILURE_THRESHOLD = 2
        adapter = PaystackAdapter(secret_key="sk_test", session=mock_session)
        mock_session.request.return_value = gateway_response(503, text="Service Unavailable")

        for _ in range(2):
            with pytest.raises(GatewayUnavailableError, match="HTTP 503"):
                adapter.verify(REFERENCE)

        assert adapter.circuit.is_available() is False

    def test_rejections_do_not_open_circuit(self, mock_session, settings):
        settings.PAYMENT_GATEWAY_CIRCUIT_FAILURE_THRESHOLD = 2
        adapter = PaystackAdapter(secret_key="sk_test", session=mock_session)
        mock_session.request.return_value = gateway_response(
            404, {"status": False, "message": "Transaction reference not found"}
        )

        for _ in range(3):
            with pytest.raises(GatewayRejectedError):
                adapter.verify(REFERENCE)

        assert mock_session.request.call_count == 3


class TestWebhooks:
    PAYLOAD = json.dumps(
        {"event": "charge.success", "data": {"reference": REFERENCE, "amount": 5000000}}
    ).encode()

    def test_valid_signature(self, paystack):
        signature = hmac_hex_digest("sk_test_paystack", self.PAYLOAD)

        assert paystack.verify_signature(self.PAYLOAD, signature)

    def test_signature_case_insensitive(self, paystack):
        signature = hmac_hex_digest("sk_test_paystack", self.PAYLOAD).upper()

        assert paystack.verify_signature(self.PAYLOAD, signature)

    def test_tampered_payload(self, paystack):
        signature = hmac_hex_digest("sk_test_paystack", self.PAYLOAD)
        tampered = self.PAYLOAD.replace(b"5000000", b"5000001")

        assert not paystack.verify_signature(tampered, signature)

    def test_wrong_secret(self, paystack):
        signature = hmac_hex_digest("sk_test_other", self.PAYLOAD)

        assert not paystack.verify_signature(self.PAYLOAD, signature)

    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature(self, paystack, signature):
        assert not paystack.verify_signature(self.PAYLOAD, signature)

    def test_unconfigured_secret_rejects_everything(self, mock_session):
        adapter = PaystackAdapter(secret_key="", session=mock_session)

        assert not adapter.verify_signature(self.PAYLOAD, hmac_hex_digest("", self.PAYLOAD))

    def test_extract_reference(self, paystack):
        assert paystack.extract_reference_from_notification(self.PAYLOAD) == REFERENCE

    @pytest.mark.parametrize(
        "payload",
        [b"not json", b"[]", b'{"event": "charge.success"}', b'{"data": []}', b'{"data": {"reference": 42}}'],
    )
    def test_extract_reference_from_unusable_payload(self, paystack, payload):
        assert paystack.extract_reference_from_notification(payload) is None
