"""
Celery tasks for payment maintenance.

This module provides async tasks for:
- Expiring payments left pending past the expiry window
- Recovering payments left processing by a crashed verifier
- Retrying the contribution mark-paid signal after a sync failure
- Periodic reconciliation of succeeded payments not yet synced

Usage:
    from payments.tasks import retry_contribution_sync

    # Queue a contribution sync for a succeeded payment
    retry_contribution_sync.delay(reference)

    # Periodic tasks are scheduled via celery-beat
    # (see migrations/0002_add_payment_maintenance_schedules.py)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings

from payments.exceptions import ContributionSyncError
from payments.models import PaymentRecord
from payments.services import PaymentOrchestrator

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_SYNC_RETRIES = 5
RECONCILE_BATCH_SIZE = 100


# =============================================================================
# Expiry and Recovery Tasks
# =============================================================================


@shared_task
def expire_stale_payments(minutes: int | None = None) -> dict:
    """
    Periodic task to expire abandoned checkouts.

    Moves PENDING payments older than the window to EXPIRED. Scheduled
    via celery-beat every 15 minutes.

    Args:
        minutes: Override for PAYMENT_PENDING_EXPIRY_MINUTES

    Returns:
        Dict with count of payments expired
    """
    window = timedelta(minutes=minutes or settings.PAYMENT_PENDING_EXPIRY_MINUTES)
    result = PaymentOrchestrator.expire_stale_payments(older_than=window)

    if result.data:
        logger.info(
            f"Expired {result.data} stale payments",
            extra={"expired_count": result.data},
        )

    return {"expired_count": result.data}


@shared_task
def recover_stuck_verifications(minutes: int | None = None) -> dict:
    """
    Periodic task to reset payments stuck in PROCESSING.

    Handles workers that crashed between claiming a payment and recording
    the gateway answer.

    Returns:
        Dict with count of payments recovered
    """
    window = timedelta(minutes=minutes or settings.PAYMENT_STUCK_VERIFICATION_MINUTES)
    result = PaymentOrchestrator.recover_stuck_verifications(older_than=window)

    if result.data:
        logger.warning(
            f"Recovered {result.data} stuck verifications",
            extra={"recovered_count": result.data},
        )

    return {"recovered_count": result.data}


# =============================================================================
# Contribution Sync Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(ContributionSyncError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_kwargs={"max_retries": MAX_SYNC_RETRIES},
    acks_late=True,
)
def retry_contribution_sync(self, reference: str) -> dict:
    """
    Mark the contribution of a succeeded payment as paid.

    Queued when the mark-paid signal failed during verification. Transient
    failures are retried with backoff; permanent rejections are logged and
    left for an operator.

    Args:
        reference: PaymentRecord reference

    Returns:
        Dict with sync result status

    Raises:
        ContributionSyncError: Re-raised to trigger Celery retry
    """
    logger.info(
        "Syncing contribution for payment",
        extra={"reference": reference, "attempt": self.request.retries + 1},
    )

    result = PaymentOrchestrator.sync_contribution(reference)

    if result.success:
        return {"status": "synced", "reference": reference}

    if result.error_code == ContributionSyncError.default_error_code:
        raise ContributionSyncError(result.error, details={"reference": reference})

    logger.warning(
        f"Contribution sync not possible: {result.error}",
        extra={"reference": reference, "error_code": result.error_code},
    )
    return {
        "status": "rejected",
        "reference": reference,
        "error_code": result.error_code,
    }


@shared_task
def reconcile_unsynced_payments() -> dict:
    """
    Periodic task to queue contribution syncs that never landed.

    Finds SUCCEEDED payments without contribution_synced_at and queues
    retry_contribution_sync for each. Catches payments whose retry was
    never queued (broker down) or exhausted its retries.

    Returns:
        Dict with count of syncs queued
    """
    references = list(
        PaymentRecord.objects.awaiting_contribution_sync()
        .order_by("paid_at")
        .values_list("reference", flat=True)[:RECONCILE_BATCH_SIZE]
    )

    queued_count = 0
    for reference in references:
        try:
            retry_contribution_sync.delay(reference)
            queued_count += 1
        except Exception as e:
            logger.error(
                f"Failed to queue contribution sync: {e}",
                extra={"reference": reference},
            )

    if queued_count:
        logger.info(
            f"Queued {queued_count} contribution syncs",
            extra={"queued_count": queued_count},
        )

    return {"queued_count": queued_count}
