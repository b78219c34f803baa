"""
PaymentRecord model for contribution payment attempts.

A PaymentRecord is one attempt to collect money for one contribution
through one gateway. It is created when the attempt is initialized and
never deleted: once terminal it is an audit artifact.

Usage:
    from payments.models import PaymentRecord
    from payments.state_machines import PaymentGateway, PaymentStatus

    record = PaymentRecord.objects.create(
        reference=PaymentRecord.generate_reference(),
        contribution=contribution,
        amount=contribution.amount,
        gateway=PaymentGateway.PAYSTACK,
        payer_email="member@example.com",
    )

    # State transitions using django-fsm, persisted with compare-and-set
    previous = record.status
    record.mark_pending(authorization_url=url, gateway_reference=ref)
    record.commit_transition(previous)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import OptimisticLockMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.exceptions import StaleRecordError
from payments.state_machines import PaymentGateway, PaymentStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any


class PaymentRecordQuerySet(models.QuerySet):
    """Query helpers for background jobs."""

    def stale_pending(self, cutoff: datetime) -> PaymentRecordQuerySet:
        """Pending payments created before the cutoff."""
        return self.filter(status=PaymentStatus.PENDING, created_at__lt=cutoff)

    def awaiting_contribution_sync(self) -> PaymentRecordQuerySet:
        """Succeeded payments the contribution side has not acknowledged."""
        return self.filter(
            status=PaymentStatus.SUCCEEDED,
            contribution_synced_at__isnull=True,
        )


class PaymentRecord(UUIDPrimaryKeyMixin, OptimisticLockMixin, BaseModel):
    """
    One attempt to pay one contribution.

    Uses django-fsm for the lifecycle and the OptimisticLockMixin version
    column so every status write is a compare-and-set against the status
    and version that were loaded.

    State Flow:
        INITIATED -> PENDING -> PROCESSING -> SUCCEEDED

    Failure Flow:
        INITIATED/PENDING/PROCESSING -> FAILED
        FAILED -> PROCESSING (re-verification with a gateway session)

    External Flow:
        PENDING -> CANCELLED / EXPIRED

    Fields:
        reference: System-generated idempotency key (PMT-<millis>-<hex>)
        contribution: Contribution being paid
        amount: Amount due at initialization (never changes)
        gateway: Provider the payment goes through
        status: Current FSM state
        metadata: Caller-supplied pairs, forwarded to the gateway
        gateway_reference / authorization_url: Provider checkout session
        gateway_response: Last raw provider payload
        failure_reason: Why the attempt failed
        *_at timestamps: When each transition happened
        contribution_synced_at: When the contribution acknowledged payment

    Note:
        Only status and the gateway and timestamp fields change after
        creation. reference, contribution, amount, gateway and metadata
        are immutable.
    """

    REFERENCE_PREFIX = "PMT"

    # Written by commit_transition() alongside status
    TRANSITION_FIELDS = (
        "gateway_reference",
        "authorization_url",
        "gateway_response",
        "failure_reason",
        "verified_at",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "expired_at",
    )

    # ==========================================================================
    # Identity
    # ==========================================================================

    reference = models.CharField(
        max_length=64,
        unique=True,
        editable=False,
        help_text="System-generated payment reference, shared with the gateway",
    )

    contribution = models.ForeignKey(
        "contributions.Contribution",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Contribution this payment settles",
    )

    # ==========================================================================
    # Amount & Gateway
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        editable=False,
        help_text="Amount due at initialization",
    )

    currency = models.CharField(
        max_length=3,
        default="NGN",
        help_text="ISO 4217 currency code",
    )

    gateway = models.CharField(
        max_length=20,
        choices=PaymentGateway.choices,
        editable=False,
        help_text="Payment provider",
    )

    status = FSMField(
        default=PaymentStatus.INITIATED,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    # ==========================================================================
    # Payer
    # ==========================================================================

    payer_email = models.EmailField(
        help_text="Payer contact sent to the gateway",
    )

    callback_url = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Where the gateway redirects the payer after checkout",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Caller-supplied key-value pairs, also sent to the gateway",
    )

    # ==========================================================================
    # Gateway Session
    # ==========================================================================

    gateway_reference = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Provider-side transaction identifier",
    )

    authorization_url = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Hosted checkout URL returned by the gateway",
    )

    gateway_response = models.JSONField(
        default=dict,
        blank=True,
        help_text="Last raw payload received from the gateway",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Why this attempt failed",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    verified_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the gateway confirmed the payment",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment reached SUCCEEDED",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment last failed",
    )

    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment was cancelled",
    )

    expired_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment expired",
    )

    contribution_synced_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the contribution was marked paid by this payment",
    )

    objects = PaymentRecordQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Record"
        verbose_name_plural = "Payment Records"
        indexes = [
            models.Index(
                fields=["contribution", "status"],
                name="payments_pa_contrib_6b1f0e_idx",
            ),
            models.Index(
                fields=["status", "created_at"],
                name="payments_pa_status_2c9d4a_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentRecord {self.reference} ({self.status})"

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @classmethod
    def generate_reference(cls) -> str:
        """
        Generate a new payment reference.

        Format: PMT-<epoch milliseconds>-<8 uppercase hex characters>
        """
        millis = int(timezone.now().timestamp() * 1000)
        return f"{cls.REFERENCE_PREFIX}-{millis}-{uuid.uuid4().hex[:8].upper()}"

    def has_gateway_session(self) -> bool:
        """Whether the provider knows about this payment and can verify it."""
        return self.gateway != PaymentGateway.MANUAL and bool(
            self.gateway_reference or self.authorization_url
        )

    def commit_transition(self, previous_status: str) -> None:
        """
        Persist the current status and transition fields atomically.

        The write only happens if the row still has previous_status and
        the version this instance loaded.

        Raises:
            StaleRecordError: If another process changed the row first
        """
        values: dict[str, Any] = {
            name: getattr(self, name) for name in self.TRANSITION_FIELDS
        }
        values["status"] = self.status
        values["updated_at"] = timezone.now()

        if not self.conditional_update({"status": previous_status}, **values):
            raise StaleRecordError(
                f"PaymentRecord {self.reference} was modified by another process",
                details={
                    "reference": self.reference,
                    "expected_status": previous_status,
                    "version": self.version,
                },
            )

    def mark_contribution_synced(self) -> bool:
        """
        Stamp contribution_synced_at.

        Returns:
            False if the row changed since it was loaded
        """
        now = timezone.now()
        return self.conditional_update(
            {"status": PaymentStatus.SUCCEEDED},
            contribution_synced_at=now,
            updated_at=now,
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.INITIATED,
        target=PaymentStatus.PENDING,
    )
    def mark_pending(
        self,
        authorization_url: str | None = None,
        gateway_reference: str | None = None,
        raw_response: dict | None = None,
    ):
        """
        Record the gateway checkout session.

        Transition: INITIATED -> PENDING

        Called when the gateway accepted the initialization. Manual
        payments have no URL and wait for operator confirmation.
        """
        self.authorization_url = authorization_url or ""
        self.gateway_reference = gateway_reference or ""
        if raw_response is not None:
            self.gateway_response = raw_response

    @transition(
        field=status,
        source=[
            PaymentStatus.INITIATED,
            PaymentStatus.PENDING,
            PaymentStatus.PROCESSING,
        ],
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str, raw_response: dict | None = None):
        """
        Mark the attempt as failed.

        Transition: INITIATED/PENDING/PROCESSING -> FAILED

        Args:
            reason: Failure reason kept for audit and support
            raw_response: Provider payload, if one was received
        """
        self.failed_at = timezone.now()
        self.failure_reason = reason
        if raw_response is not None:
            self.gateway_response = raw_response

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.PROCESSING,
        conditions=[has_gateway_session],
    )
    def begin_verification(self):
        """
        Claim the payment for verification with the gateway.

        Transition: PENDING/FAILED -> PROCESSING

        FAILED is only a valid source when the gateway knows the payment,
        so an attempt whose initialization failed can never be verified.
        """
        pass

    @transition(
        field=status,
        source=PaymentStatus.PROCESSING,
        target=PaymentStatus.SUCCEEDED,
    )
    def succeed(self, raw_response: dict | None = None):
        """
        Mark payment as received.

        Transition: PROCESSING -> SUCCEEDED (terminal)
        """
        now = timezone.now()
        self.verified_at = now
        self.paid_at = now
        self.failure_reason = ""
        if raw_response is not None:
            self.gateway_response = raw_response

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.CANCELLED,
    )
    def cancel(self):
        """
        Cancel a payment the payer has not completed.

        Transition: PENDING -> CANCELLED (terminal)
        """
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.EXPIRED,
    )
    def expire(self):
        """
        Expire a payment left pending past the expiry window.

        Transition: PENDING -> EXPIRED (terminal)
        """
        self.expired_at = timezone.now()
