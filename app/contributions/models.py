"""
Contribution model.

A contribution is an amount a member (or their employer) owes into a
pension scheme for a period. Payments settle contributions; once a
contribution is COMPLETED no further payment is accepted for it.

Usage:
    from contributions.models import Contribution, ContributionStatus

    contribution = Contribution.objects.create(
        reference_number="CON-2026-000123",
        member_number="MEM-0042",
        amount=Decimal("50000.00"),
    )
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel


class ContributionStatus(models.TextChoices):
    """
    Settlement status of a contribution.

    Flow:
        PENDING -> COMPLETED (a payment succeeded)
        PENDING -> FAILED (collection abandoned)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class ContributionType(models.TextChoices):
    """Who the contribution is made by."""

    MANDATORY = "mandatory", "Mandatory"
    VOLUNTARY = "voluntary", "Voluntary"
    EMPLOYER = "employer", "Employer"


class Contribution(BaseModel):
    """
    Amount owed into a member's retirement savings account.

    Fields:
        reference_number: Human-shareable contribution reference
        member_number: Member the contribution belongs to
        amount: Amount due (Decimal, 2 places)
        status: Settlement status
        payment_reference: Reference of the payment that settled it
        processed_at: When it was settled
    """

    reference_number = models.CharField(
        max_length=64,
        unique=True,
        help_text="Human-shareable contribution reference",
    )
    member_number = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Pension member number",
    )
    contribution_type = models.CharField(
        max_length=20,
        choices=ContributionType.choices,
        default=ContributionType.MANDATORY,
        help_text="Mandatory, voluntary or employer contribution",
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        help_text="Amount due for this contribution",
    )
    status = models.CharField(
        max_length=20,
        choices=ContributionStatus.choices,
        default=ContributionStatus.PENDING,
        db_index=True,
        help_text="Settlement status",
    )
    payment_reference = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Reference of the payment that settled this contribution",
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the contribution was settled",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Contribution"
        verbose_name_plural = "Contributions"

    def __str__(self) -> str:
        return f"Contribution {self.reference_number} ({self.status})"

    @property
    def is_settled(self) -> bool:
        return self.status == ContributionStatus.COMPLETED
