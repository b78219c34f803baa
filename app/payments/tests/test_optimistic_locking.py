"""
Tests for compare-and-set writes on PaymentRecord.

Every status change is persisted with commit_transition(), which only
writes if the row still has the status and version the instance loaded.
Two instances loaded from the same row model the callback and the
webhook racing on one payment.
"""

import pytest

from payments.exceptions import StaleRecordError
from payments.models import PaymentRecord
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentRecordFactory


@pytest.mark.django_db
class TestCommitTransition:
    """Tests for PaymentRecord.commit_transition."""

    def test_persists_status_and_fields(self, pending_payment):
        previous = pending_payment.status
        pending_payment.fail("Payment was not successful")
        pending_payment.commit_transition(previous)

        stored = PaymentRecord.objects.get(pk=pending_payment.pk)
        assert stored.status == PaymentStatus.FAILED
        assert stored.failure_reason == "Payment was not successful"
        assert stored.failed_at is not None

    def test_increments_version(self, pending_payment):
        version = pending_payment.version

        pending_payment.begin_verification()
        pending_payment.commit_transition(PaymentStatus.PENDING)

        assert pending_payment.version == version + 1
        assert PaymentRecord.objects.get(pk=pending_payment.pk).version == version + 1

    def test_second_writer_is_rejected(self, pending_payment):
        """Only one of two concurrent claims may win."""
        callback_copy = PaymentRecord.objects.get(pk=pending_payment.pk)
        webhook_copy = PaymentRecord.objects.get(pk=pending_payment.pk)

        callback_copy.begin_verification()
        callback_copy.commit_transition(PaymentStatus.PENDING)

        webhook_copy.begin_verification()
        with pytest.raises(StaleRecordError) as exc_info:
            webhook_copy.commit_transition(PaymentStatus.PENDING)

        assert exc_info.value.details["reference"] == pending_payment.reference
        assert exc_info.value.details["expected_status"] == PaymentStatus.PENDING
        assert PaymentRecord.objects.get(pk=pending_payment.pk).status == PaymentStatus.PROCESSING

    def test_stale_instance_cannot_overwrite_success(self, pending_payment):
        """An instance loaded before settlement must not downgrade it."""
        stale = PaymentRecord.objects.get(pk=pending_payment.pk)

        pending_payment.begin_verification()
        pending_payment.commit_transition(PaymentStatus.PENDING)
        pending_payment.succeed()
        pending_payment.commit_transition(PaymentStatus.PROCESSING)

        stale.expire()
        with pytest.raises(StaleRecordError):
            stale.commit_transition(PaymentStatus.PENDING)

        assert PaymentRecord.objects.get(pk=pending_payment.pk).status == PaymentStatus.SUCCEEDED


@pytest.mark.django_db
class TestVersionFieldBehavior:
    """Tests for the version column maintained by OptimisticLockMixin."""

    def test_new_record_starts_at_version_one(self):
        payment = PaymentRecordFactory()

        assert payment.version == 1

    def test_save_increments_version(self):
        payment = PaymentRecordFactory()

        payment.payer_email = "changed@example.com"
        payment.save()

        assert payment.version == 2

    def test_mark_contribution_synced_requires_succeeded(self):
        payment = PaymentRecordFactory(status=PaymentStatus.PENDING)

        assert payment.mark_contribution_synced() is False
        assert PaymentRecord.objects.get(pk=payment.pk).contribution_synced_at is None

    def test_mark_contribution_synced_stamps_time(self):
        payment = PaymentRecordFactory(status=PaymentStatus.SUCCEEDED)

        assert payment.mark_contribution_synced() is True
        assert PaymentRecord.objects.get(pk=payment.pk).contribution_synced_at is not None
