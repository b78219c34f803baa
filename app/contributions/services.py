"""
Contribution service consumed by the payments app.

Implements core.protocols.ContributionSynchronizer:
- lookup_contribution: snapshot of amount due and settlement status
- mark_contribution_paid: idempotent settlement signal

Usage:
    from contributions.services import ContributionService

    snapshot = ContributionService.lookup_contribution(contribution_id)
    ContributionService.mark_contribution_paid(contribution_id, "PMT-...")
"""

from __future__ import annotations

from decimal import Decimal

from django.utils import timezone

from contributions.models import Contribution, ContributionStatus
from core.exceptions import ExternalServiceError
from core.protocols import ContributionSnapshot
from core.services import BaseService


class ContributionSyncRejected(ExternalServiceError):
    """Raised when a contribution cannot be marked paid."""

    default_error_code = "CONTRIBUTION_SYNC_REJECTED"


class ContributionService(BaseService):
    """Contribution lookups and settlement for payment orchestration."""

    @classmethod
    def lookup_contribution(cls, contribution_id) -> ContributionSnapshot | None:
        contribution = Contribution.objects.filter(pk=contribution_id).first()
        if contribution is None:
            return None

        return ContributionSnapshot(
            id=contribution.pk,
            outstanding_amount=(
                Decimal("0.00") if contribution.is_settled else contribution.amount
            ),
            status=contribution.status,
            is_settled=contribution.is_settled,
        )

    @classmethod
    def mark_contribution_paid(cls, contribution_id, payment_reference: str) -> None:
        """
        Mark a contribution COMPLETED by the given payment.

        Repeating the call with the same payment reference is a no-op.

        Raises:
            ContributionSyncRejected: If the contribution is missing or was
                already settled by a different payment
        """
        logger = cls.get_logger()

        with cls.atomic():
            contribution = (
                Contribution.objects.select_for_update()
                .filter(pk=contribution_id)
                .first()
            )
            if contribution is None:
                raise ContributionSyncRejected(
                    f"Contribution {contribution_id} not found",
                    details={"contribution_id": contribution_id},
                )

            if contribution.is_settled:
                if contribution.payment_reference == payment_reference:
                    logger.info(
                        "Contribution already marked paid",
                        extra={
                            "contribution_id": contribution.pk,
                            "payment_reference": payment_reference,
                        },
                    )
                    return
                raise ContributionSyncRejected(
                    f"Contribution {contribution_id} already settled by "
                    f"{contribution.payment_reference}",
                    details={
                        "contribution_id": contribution.pk,
                        "settled_by": contribution.payment_reference,
                        "payment_reference": payment_reference,
                    },
                )

            contribution.status = ContributionStatus.COMPLETED
            contribution.payment_reference = payment_reference
            contribution.processed_at = timezone.now()
            contribution.save(
                update_fields=["status", "payment_reference", "processed_at", "updated_at"]
            )

        logger.info(
            "Contribution marked paid",
            extra={
                "contribution_id": contribution.pk,
                "payment_reference": payment_reference,
            },
        )
