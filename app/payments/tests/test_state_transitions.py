"""
Tests for PaymentRecord state transitions using django-fsm.

Tests valid and invalid transitions, the gateway-session condition on
re-verification and the timestamps each transition stamps.
"""

import pytest
from django_fsm import TransitionNotAllowed, can_proceed

from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentRecordFactory


@pytest.mark.django_db
class TestPaymentRecordTransitions:
    """Tests for PaymentRecord state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_initiated_to_pending(self):
        """Should record the checkout session."""
        payment = PaymentRecordFactory(
            status=PaymentStatus.INITIATED,
            authorization_url="",
            gateway_reference="",
        )

        payment.mark_pending(
            authorization_url="https://checkout.paystack.com/abc",
            gateway_reference="abc",
            raw_response={"status": True},
        )

        assert payment.status == PaymentStatus.PENDING
        assert payment.authorization_url == "https://checkout.paystack.com/abc"
        assert payment.gateway_reference == "abc"
        assert payment.gateway_response == {"status": True}

    def test_initiated_to_failed(self):
        """Gateway initialization failure fails the attempt."""
        payment = PaymentRecordFactory(status=PaymentStatus.INITIATED)

        payment.fail("Gateway initialization failed: timeout")

        assert payment.status == PaymentStatus.FAILED
        assert payment.failed_at is not None
        assert payment.failure_reason == "Gateway initialization failed: timeout"

    def test_pending_to_processing(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PENDING)

        payment.begin_verification()

        assert payment.status == PaymentStatus.PROCESSING

    def test_processing_to_succeeded(self):
        """Should stamp verification and payment time and clear failures."""
        payment = PaymentRecordFactory(
            status=PaymentStatus.PROCESSING,
            failure_reason="Payment was not successful",
        )

        payment.succeed(raw_response={"data": {"status": "success"}})

        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.verified_at is not None
        assert payment.paid_at == payment.verified_at
        assert payment.failure_reason == ""
        assert payment.gateway_response == {"data": {"status": "success"}}

    def test_processing_to_failed(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PROCESSING)

        payment.fail("Payment was not successful", raw_response={"data": {}})

        assert payment.status == PaymentStatus.FAILED
        assert payment.gateway_response == {"data": {}}

    def test_failed_with_gateway_session_can_be_reverified(self):
        """The gateway is the source of truth; a failed check can be repeated."""
        payment = PaymentRecordFactory(
            status=PaymentStatus.FAILED,
            failure_reason="Verification error: timeout",
        )

        assert can_proceed(payment.begin_verification)
        payment.begin_verification()

        assert payment.status == PaymentStatus.PROCESSING

    def test_pending_to_cancelled(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PENDING)

        payment.cancel()

        assert payment.status == PaymentStatus.CANCELLED
        assert payment.cancelled_at is not None

    def test_pending_to_expired(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PENDING)

        payment.expire()

        assert payment.status == PaymentStatus.EXPIRED
        assert payment.expired_at is not None

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_failed_without_gateway_session_cannot_be_verified(self):
        """A payment the gateway never saw cannot be verified."""
        payment = PaymentRecordFactory(initialization_failed=True)

        assert not can_proceed(payment.begin_verification)
        with pytest.raises(TransitionNotAllowed):
            payment.begin_verification()

    def test_manual_payment_cannot_be_verified(self):
        payment = PaymentRecordFactory(manual=True)

        assert not can_proceed(payment.begin_verification)

    def test_initiated_cannot_be_verified(self):
        payment = PaymentRecordFactory(status=PaymentStatus.INITIATED)

        with pytest.raises(TransitionNotAllowed):
            payment.begin_verification()

    def test_pending_cannot_succeed_without_verification(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PENDING)

        with pytest.raises(TransitionNotAllowed):
            payment.succeed()

    def test_processing_cannot_be_claimed_twice(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PROCESSING)

        with pytest.raises(TransitionNotAllowed):
            payment.begin_verification()

    @pytest.mark.parametrize(
        "terminal_status",
        [PaymentStatus.SUCCEEDED, PaymentStatus.CANCELLED, PaymentStatus.EXPIRED],
    )
    def test_terminal_states_allow_no_transitions(self, terminal_status):
        payment = PaymentRecordFactory(status=terminal_status)

        for transition in (
            payment.begin_verification,
            payment.fail,
            payment.succeed,
            payment.cancel,
            payment.expire,
        ):
            assert not can_proceed(transition)

    def test_failed_cannot_be_cancelled_or_expired(self):
        payment = PaymentRecordFactory(status=PaymentStatus.FAILED)

        assert not can_proceed(payment.cancel)
        assert not can_proceed(payment.expire)
