"""
Tests for the gateway webhook view.

Tests cover:
- Signature verification per gateway
- Settlement through the shared verification path
- Identical 200 acknowledgement for every outcome
"""

import json

import pytest
from django.urls import reverse

from payments.models import PaymentRecord
from payments.state_machines import PaymentGateway, PaymentStatus
from payments.tests.factories import PaymentRecordFactory
from payments.webhooks.views import gateway_webhook


def post(rf, provider, body, headers=None):
    request = rf.post(
        f"/api/v1/payments/webhook/{provider}/",
        data=body,
        content_type="application/json",
        headers=headers or {},
    )
    return gateway_webhook(request, provider)


@pytest.mark.django_db
class TestPaystackWebhook:
    def test_valid_signature_settles_payment(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, signature = paystack_notification(pending_payment.reference)

        response = post(rf, "paystack", body, {"X-Paystack-Signature": signature})

        assert response.status_code == 200
        assert json.loads(response.content) == {"status": "received"}
        gateway_confirms_payment["paystack"].assert_called_once_with(pending_payment.reference)
        record = PaymentRecord.objects.get(pk=pending_payment.pk)
        assert record.status == PaymentStatus.SUCCEEDED
        assert record.contribution.status == "completed"

    def test_tampered_body_is_ignored(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, signature = paystack_notification(pending_payment.reference)
        tampered = body.replace(b"5000000", b"1")

        response = post(rf, "paystack", tampered, {"X-Paystack-Signature": signature})

        assert response.status_code == 200
        gateway_confirms_payment["paystack"].assert_not_called()
        assert PaymentRecord.objects.get(pk=pending_payment.pk).status == PaymentStatus.PENDING

    def test_forged_signature_is_ignored(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, signature = paystack_notification(pending_payment.reference, secret="guessed")

        post(rf, "paystack", body, {"X-Paystack-Signature": signature})

        gateway_confirms_payment["paystack"].assert_not_called()

    def test_missing_signature_is_ignored(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, _ = paystack_notification(pending_payment.reference)

        response = post(rf, "paystack", body)

        assert response.status_code == 200
        gateway_confirms_payment["paystack"].assert_not_called()

    def test_redelivery_is_idempotent(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, signature = paystack_notification(pending_payment.reference)

        post(rf, "paystack", body, {"X-Paystack-Signature": signature})
        post(rf, "paystack", body, {"X-Paystack-Signature": signature})

        assert gateway_confirms_payment["paystack"].call_count == 1
        assert (
            PaymentRecord.objects.filter(
                contribution=pending_payment.contribution,
                status=PaymentStatus.SUCCEEDED,
            ).count()
            == 1
        )


@pytest.mark.django_db
class TestFlutterwaveWebhook:
    def test_valid_signature_settles_payment(
        self, rf, flutterwave_notification, gateway_confirms_payment
    ):
        payment = PaymentRecordFactory(gateway=PaymentGateway.FLUTTERWAVE)
        body, signature = flutterwave_notification(payment.reference)

        response = post(rf, "flutterwave", body, {"flutterwave-signature": signature})

        assert response.status_code == 200
        assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentStatus.SUCCEEDED

    def test_paystack_style_signature_rejected(
        self, rf, paystack_notification, gateway_confirms_payment
    ):
        payment = PaymentRecordFactory(gateway=PaymentGateway.FLUTTERWAVE)
        body, signature = paystack_notification(payment.reference)

        post(rf, "flutterwave", body, {"flutterwave-signature": signature})

        gateway_confirms_payment["flutterwave"].assert_not_called()


@pytest.mark.django_db
class TestAcknowledgement:
    """Every outcome gets the same answer so forgeries learn nothing."""

    def test_identical_response_for_every_outcome(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        body, signature = paystack_notification(pending_payment.reference)
        unknown_body, unknown_signature = paystack_notification("PMT-UNKNOWN")

        responses = [
            post(rf, "paystack", body, {"X-Paystack-Signature": signature}),
            post(rf, "paystack", body, {"X-Paystack-Signature": "0" * 128}),
            post(rf, "paystack", unknown_body, {"X-Paystack-Signature": unknown_signature}),
            post(rf, "paystack", b"not json", {"X-Paystack-Signature": "abc"}),
            post(rf, "unknown-gateway", body),
            post(rf, "manual", body),
        ]

        assert {r.status_code for r in responses} == {200}
        assert {r.content for r in responses} == {responses[0].content}

    def test_gateway_error_still_acknowledged(
        self, rf, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        from payments.exceptions import GatewayUnavailableError

        gateway_confirms_payment["paystack"].side_effect = GatewayUnavailableError(
            "Could not reach paystack", gateway="paystack"
        )
        body, signature = paystack_notification(pending_payment.reference)

        response = post(rf, "paystack", body, {"X-Paystack-Signature": signature})

        assert response.status_code == 200
        assert PaymentRecord.objects.get(pk=pending_payment.pk).status == PaymentStatus.FAILED

    def test_only_post_allowed(self, client):
        response = client.get(reverse("payments:gateway_webhook", args=["paystack"]))

        assert response.status_code == 405

    def test_routed_without_csrf_or_auth(
        self, pending_payment, paystack_notification, gateway_confirms_payment
    ):
        from django.test import Client

        client = Client(enforce_csrf_checks=True)
        body, signature = paystack_notification(pending_payment.reference)

        response = client.post(
            reverse("payments:gateway_webhook", args=["paystack"]),
            data=body,
            content_type="application/json",
            headers={"X-Paystack-Signature": signature},
        )

        assert response.status_code == 200
        assert PaymentRecord.objects.get(pk=pending_payment.pk).status == PaymentStatus.SUCCEEDED
