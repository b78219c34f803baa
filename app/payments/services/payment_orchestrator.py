"""
Payment orchestrator service for contribution payments.

This module provides the PaymentOrchestrator class, the only writer of
PaymentRecord status. It coordinates the contribution collaborator, the
gateway adapters and the payment state machine.

The orchestrator:
- Validates a payment against the contribution before anything is persisted
- Opens a checkout session with the chosen gateway
- Verifies payments from the callback redirect and from webhooks,
  serialized per reference so a payment is settled exactly once
- Signals the contribution collaborator when money is received

Every operation returns a ServiceResult. Named failures (error_code) are
expected outcomes; database or Redis outages propagate as exceptions.

Usage:
    from payments.services import PaymentOrchestrator, InitializePaymentRequest

    result = PaymentOrchestrator.initialize_payment(
        InitializePaymentRequest(
            contribution_id=contribution.id,
            amount=Decimal("50000.00"),
            gateway=PaymentGateway.PAYSTACK,
            payer_email="member@example.com",
            callback_url="https://pensions.example.com/payments/callback",
        )
    )

    if result.success:
        redirect_to = result.data.authorization_url

    # Later, from the callback or a webhook
    result = PaymentOrchestrator.verify_payment(reference)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError
from django.utils import timezone
from django_fsm import can_proceed

from contributions.services import ContributionService
from core.services import BaseService, ServiceResult

from payments.adapters import (
    FlutterwaveAdapter,
    InitializePaymentParams,
    ManualAdapter,
    PaystackAdapter,
)
from payments.exceptions import (
    AlreadyPaidError,
    AmountMismatchError,
    ContributionNotFoundError,
    ContributionSyncError,
    GatewayError,
    InvalidStateTransitionError,
    LockAcquisitionError,
    PaymentError,
    PaymentNotFoundError,
    StaleRecordError,
    VerificationFailedError,
)
from payments.locks import DistributedLock
from payments.models import PaymentRecord
from payments.state_machines import PaymentGateway, PaymentStatus

if TYPE_CHECKING:
    from core.protocols import ContributionSnapshot, ContributionSynchronizer
    from payments.adapters import PaymentGatewayAdapter


# =============================================================================
# Parameter and Result Types
# =============================================================================


@dataclass
class InitializePaymentRequest:
    """
    Parameters for initializing a contribution payment.

    Attributes:
        contribution_id: Contribution being paid
        amount: Amount the payer intends to pay (must equal the amount due)
        gateway: PaymentGateway value
        payer_email: Payer contact sent to the gateway
        callback_url: Where the gateway sends the payer back
        metadata: Extra key-value pairs stored on the record and passed
            through to the gateway
    """

    contribution_id: Any
    amount: Decimal
    gateway: str
    payer_email: str
    callback_url: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not isinstance(self.amount, Decimal):
            try:
                self.amount = Decimal(str(self.amount))
            except InvalidOperation as e:
                raise ValueError(f"amount is not a decimal: {self.amount!r}") from e
        if self.gateway not in PaymentGateway.values:
            supported = ", ".join(PaymentGateway.values)
            raise ValueError(f"Unknown gateway: {self.gateway}. Supported: {supported}")
        if not self.payer_email:
            raise ValueError("payer_email is required")
        if not isinstance(self.metadata, dict):
            raise ValueError("metadata must be a mapping")


@dataclass
class VerificationOutcome:
    """
    Result of a verification attempt.

    Attributes:
        payment: The PaymentRecord as it stands after verification
        changed: Whether this call transitioned the payment
        reconciliation_warning: Set when the payment succeeded but the
            contribution could not be marked paid
    """

    payment: PaymentRecord
    changed: bool = False
    reconciliation_warning: str | None = None


# =============================================================================
# Payment Orchestrator
# =============================================================================


class PaymentOrchestrator(BaseService):
    """
    Central coordinator for contribution payments.

    Adapter Registry:
        - PAYSTACK: PaystackAdapter
        - FLUTTERWAVE: FlutterwaveAdapter
        - MANUAL: ManualAdapter

    All methods are class methods - no instance state is maintained.

    Usage:
        result = PaymentOrchestrator.initialize_payment(request)
        result = PaymentOrchestrator.verify_payment(reference)
        PaymentOrchestrator.handle_webhook(body, signature, "paystack")
        result = PaymentOrchestrator.get_payment(reference)
    """

    # Adapter registry - closed set of supported gateways
    ADAPTERS: dict[str, type[PaymentGatewayAdapter]] = {
        PaymentGateway.PAYSTACK: PaystackAdapter,
        PaymentGateway.FLUTTERWAVE: FlutterwaveAdapter,
        PaymentGateway.MANUAL: ManualAdapter,
    }

    # Contribution collaborator (core.protocols.ContributionSynchronizer)
    contribution_synchronizer: ContributionSynchronizer = ContributionService

    REFERENCE_ATTEMPTS = 3
    EXPIRY_BATCH_SIZE = 500

    @classmethod
    def get_adapter(cls, gateway: str) -> PaymentGatewayAdapter:
        """
        Get an adapter instance for the given gateway.

        Raises:
            ValueError: If the gateway is not registered
        """
        adapter_class = cls.ADAPTERS.get(gateway)
        if not adapter_class:
            supported = ", ".join(cls.ADAPTERS.keys())
            raise ValueError(f"Unknown gateway: {gateway}. Supported: {supported}")
        return adapter_class()

    # =========================================================================
    # Initialization
    # =========================================================================

    @classmethod
    def initialize_payment(
        cls, request: InitializePaymentRequest
    ) -> ServiceResult[PaymentRecord]:
        """
        Start a payment for a contribution.

        Nothing is persisted unless the contribution exists, is unsettled
        and the amount matches exactly. After that the INITIATED record is
        kept even if the gateway call fails, so the attempt stays auditable.

        Returns:
            ServiceResult with the PENDING PaymentRecord, or one of
            CONTRIBUTION_NOT_FOUND, ALREADY_PAID, AMOUNT_MISMATCH,
            INVALID_PARAMETERS, GATEWAY_UNAVAILABLE, GATEWAY_REJECTED
        """
        logger = cls.get_logger()
        log_context = {
            "contribution_id": str(request.contribution_id),
            "amount": str(request.amount),
            "gateway": request.gateway,
        }
        logger.info("Initializing payment", extra=log_context)

        try:
            adapter = cls.get_adapter(request.gateway)
            snapshot = cls._load_payable_contribution(request)
            record = cls._create_record(request, snapshot)
        except ValueError as e:
            logger.warning(f"Invalid payment parameters: {e}", extra=log_context)
            return ServiceResult.failure(str(e), error_code="INVALID_PARAMETERS")
        except PaymentError as e:
            return cls.handle_exception(
                e, "Payment initialization refused", logging.WARNING, log_context
            )

        log_context["reference"] = record.reference

        try:
            session = adapter.initialize(
                InitializePaymentParams(
                    reference=record.reference,
                    amount=record.amount,
                    payer_email=record.payer_email,
                    callback_url=record.callback_url,
                    currency=record.currency,
                    metadata={
                        **record.metadata,
                        "payment_reference": record.reference,
                        "contribution_id": str(record.contribution_id),
                    },
                )
            )
        except GatewayError as e:
            cls._fail(record, f"Gateway initialization failed: {e.message}")
            return cls.handle_exception(
                e, "Gateway initialization failed", logging.WARNING, log_context
            )
        except Exception as e:
            cls._fail(record, f"Gateway initialization failed: {type(e).__name__}")
            logger.error(
                "Unexpected error initializing payment with gateway",
                extra=log_context,
                exc_info=True,
            )
            raise

        previous = record.status
        record.mark_pending(
            authorization_url=session.authorization_url,
            gateway_reference=session.gateway_reference,
            raw_response=session.raw_response,
        )
        record.commit_transition(previous)

        logger.info(
            "Payment initialized",
            extra={**log_context, "has_authorization_url": bool(record.authorization_url)},
        )
        return ServiceResult.success(record)

    @classmethod
    def _load_payable_contribution(
        cls, request: InitializePaymentRequest
    ) -> ContributionSnapshot:
        snapshot = cls.contribution_synchronizer.lookup_contribution(request.contribution_id)
        if snapshot is None:
            raise ContributionNotFoundError(
                f"Contribution {request.contribution_id} not found",
                details={"contribution_id": str(request.contribution_id)},
            )

        if snapshot.is_settled or snapshot.outstanding_amount <= 0:
            raise AlreadyPaidError(
                f"Contribution {request.contribution_id} is already paid",
                details={"contribution_id": str(request.contribution_id)},
            )

        if request.amount != snapshot.outstanding_amount:
            raise AmountMismatchError(
                f"Amount {request.amount} does not match the amount due "
                f"({snapshot.outstanding_amount})",
                details={
                    "expected": str(snapshot.outstanding_amount),
                    "received": str(request.amount),
                },
            )

        return snapshot

    @classmethod
    def _create_record(
        cls,
        request: InitializePaymentRequest,
        snapshot: ContributionSnapshot,
    ) -> PaymentRecord:
        """Persist an INITIATED record under a fresh, unique reference."""
        for attempt in range(1, cls.REFERENCE_ATTEMPTS + 1):
            reference = PaymentRecord.generate_reference()
            try:
                with cls.atomic():
                    return PaymentRecord.objects.create(
                        reference=reference,
                        contribution_id=snapshot.id,
                        amount=snapshot.outstanding_amount,
                        currency=settings.PAYMENT_CURRENCY,
                        gateway=request.gateway,
                        payer_email=request.payer_email,
                        callback_url=request.callback_url,
                        metadata=request.metadata,
                    )
            except IntegrityError:
                if attempt == cls.REFERENCE_ATTEMPTS:
                    raise
                cls.get_logger().warning(
                    "Payment reference collision, regenerating",
                    extra={"reference": reference, "attempt": attempt},
                )
        raise AssertionError("unreachable")

    # =========================================================================
    # Verification
    # =========================================================================

    @classmethod
    def verify_payment(cls, reference: str) -> ServiceResult[VerificationOutcome]:
        """
        Verify a payment with its gateway and settle it.

        Callback and webhook verifications of the same reference are
        serialized by a per-reference lock. A payment that already
        SUCCEEDED is returned as-is without calling the gateway.

        Returns:
            ServiceResult with a VerificationOutcome, or one of
            PAYMENT_NOT_FOUND, VERIFICATION_FAILED, VERIFICATION_IN_PROGRESS
        """
        try:
            with DistributedLock.for_payment(reference):
                record = PaymentRecord.objects.filter(reference=reference).first()
                if record is None:
                    raise PaymentNotFoundError(
                        f"Payment {reference} not found",
                        details={"reference": reference},
                    )
                outcome = cls._verify_record(record)
        except (LockAcquisitionError, StaleRecordError):
            cls.get_logger().warning(
                "Verification already in progress",
                extra={"reference": reference},
            )
            return ServiceResult.failure(
                "Payment verification is already in progress, try again shortly",
                error_code="VERIFICATION_IN_PROGRESS",
            )
        except PaymentError as e:
            return cls.handle_exception(
                e, "Payment verification failed", logging.WARNING, {"reference": reference}
            )

        return ServiceResult.success(outcome)

    @classmethod
    def _verify_record(cls, record: PaymentRecord) -> VerificationOutcome:
        """
        Drive one loaded record through verification.

        Every status write is a compare-and-set against the status and
        version loaded here, so a stale instance can never settle a
        payment twice.

        Raises:
            VerificationFailedError: The gateway could not be queried
        """
        logger = cls.get_logger()
        log_context = {"reference": record.reference, "gateway": record.gateway}

        if record.status == PaymentStatus.SUCCEEDED:
            logger.info("Payment already succeeded, skipping gateway", extra=log_context)
            return VerificationOutcome(payment=record)

        adapter = cls.get_adapter(record.gateway)
        if not adapter.supports_verification or not can_proceed(record.begin_verification):
            logger.info(
                "Payment not eligible for verification",
                extra={**log_context, "status": record.status},
            )
            return VerificationOutcome(payment=record)

        previous = record.status
        record.begin_verification()
        try:
            record.commit_transition(previous)
        except StaleRecordError:
            record.refresh_from_db()
            logger.info(
                "Payment changed concurrently, not verifying",
                extra={**log_context, "status": record.status},
            )
            return VerificationOutcome(payment=record)

        try:
            result = adapter.verify(record.reference)
        except GatewayError as e:
            reason = f"Verification error: {e.message}"
            cls._fail(record, reason)
            raise VerificationFailedError(reason, details=log_context) from e
        except Exception as e:
            reason = f"Verification error: {type(e).__name__}"
            logger.error(
                "Unexpected error verifying payment",
                extra=log_context,
                exc_info=True,
            )
            cls._fail(record, reason)
            raise VerificationFailedError(reason, details=log_context) from e

        if not result.succeeded:
            cls._fail(record, "Payment was not successful", result.raw_response)
            logger.info(
                "Gateway reported payment not successful",
                extra={**log_context, "gateway_status": result.status},
            )
            return VerificationOutcome(payment=record, changed=True)

        if result.amount != record.amount:
            cls._fail(
                record,
                f"Amount mismatch: expected {record.amount}, gateway reported {result.amount}",
                result.raw_response,
            )
            logger.error(
                "Gateway amount does not match payment amount",
                extra={
                    **log_context,
                    "expected": str(record.amount),
                    "reported": str(result.amount),
                },
            )
            return VerificationOutcome(payment=record, changed=True)

        settlement_lock = DistributedLock(
            f"contribution:{record.contribution_id}:settlement",
            ttl=settings.PAYMENT_LOCK_TTL_SECONDS,
            timeout=settings.PAYMENT_LOCK_TIMEOUT_SECONDS,
        )
        try:
            settlement_lock.acquire()
        except LockAcquisitionError:
            # FAILED with a gateway session can be verified again
            cls._fail(
                record,
                "Settlement deferred: contribution is being settled by another payment",
                result.raw_response,
            )
            logger.warning("Settlement lock busy", extra=log_context)
            return VerificationOutcome(payment=record, changed=True)

        try:
            settled_by = (
                PaymentRecord.objects.filter(
                    contribution_id=record.contribution_id,
                    status=PaymentStatus.SUCCEEDED,
                )
                .exclude(pk=record.pk)
                .values_list("reference", flat=True)
                .first()
            )
            if settled_by:
                cls._fail(
                    record,
                    f"Duplicate payment: contribution already settled by {settled_by}",
                    result.raw_response,
                )
                logger.error(
                    "Duplicate payment received for settled contribution",
                    extra={**log_context, "settled_by": settled_by},
                )
                return VerificationOutcome(payment=record, changed=True)

            previous = record.status
            record.succeed(raw_response=result.raw_response)
            if result.gateway_reference:
                record.gateway_reference = result.gateway_reference
            record.commit_transition(previous)
        finally:
            settlement_lock.release()

        logger.info("Payment succeeded", extra={**log_context, "amount": str(record.amount)})

        warning = cls._notify_contribution_paid(record)
        return VerificationOutcome(payment=record, changed=True, reconciliation_warning=warning)

    @classmethod
    def _notify_contribution_paid(cls, record: PaymentRecord) -> str | None:
        """
        Tell the contribution collaborator the payment succeeded.

        Returns:
            None on success, otherwise a reconciliation warning. The payment
            stays SUCCEEDED either way.
        """
        logger = cls.get_logger()
        log_context = {
            "reference": record.reference,
            "contribution_id": str(record.contribution_id),
        }

        try:
            cls.contribution_synchronizer.mark_contribution_paid(
                record.contribution_id, record.reference
            )
        except Exception as e:
            retryable = getattr(e, "is_retryable", True)
            logger.error(
                "Payment succeeded but contribution was not marked paid",
                extra={**log_context, "retryable": retryable},
                exc_info=True,
            )
            if retryable:
                cls._queue_contribution_sync(record.reference)
            return (
                f"Payment {record.reference} succeeded but contribution "
                f"{record.contribution_id} was not updated; queued for reconciliation"
            )

        if not record.mark_contribution_synced():
            logger.warning("Payment changed before sync could be stamped", extra=log_context)
        return None

    @classmethod
    def _queue_contribution_sync(cls, reference: str) -> None:
        from payments.tasks import retry_contribution_sync

        try:
            retry_contribution_sync.delay(reference)
        except Exception:
            # The periodic reconciliation sweep picks it up
            cls.get_logger().error(
                "Failed to queue contribution sync",
                extra={"reference": reference},
                exc_info=True,
            )

    # =========================================================================
    # Webhooks
    # =========================================================================

    @classmethod
    def handle_webhook(
        cls,
        raw_payload: bytes,
        signature: str | None,
        gateway_name: str,
    ) -> None:
        """
        Process a gateway push notification.

        Never raises and returns nothing: callers answer the provider with
        the same response whatever happens here. An invalid signature is
        logged and the payload is not looked at further.
        """
        logger = cls.get_logger()
        log_context = {"gateway": gateway_name, "payload_bytes": len(raw_payload or b"")}

        try:
            try:
                adapter = cls.get_adapter(gateway_name)
            except ValueError:
                logger.warning("Webhook for unknown gateway ignored", extra=log_context)
                return

            if not adapter.verify_signature(raw_payload, signature):
                logger.warning(
                    "Webhook signature verification failed",
                    extra={**log_context, "signature_present": bool(signature)},
                )
                return

            reference = adapter.extract_reference_from_notification(raw_payload)
            if not reference:
                logger.info("Webhook without payment reference ignored", extra=log_context)
                return

            log_context["reference"] = reference
            result = cls.verify_payment(reference)
            if result.success:
                logger.info(
                    "Webhook processed",
                    extra={**log_context, "status": result.data.payment.status},
                )
            else:
                logger.info(
                    "Webhook did not settle payment",
                    extra={**log_context, "error_code": result.error_code},
                )
        except Exception:
            logger.exception("Webhook processing failed", extra=log_context)

    # =========================================================================
    # Queries and Maintenance
    # =========================================================================

    @classmethod
    def get_payment(cls, reference: str) -> ServiceResult[PaymentRecord]:
        """Look up a payment by reference."""
        record = PaymentRecord.objects.filter(reference=reference).first()
        if record is None:
            return ServiceResult.failure(
                f"Payment {reference} not found",
                error_code="PAYMENT_NOT_FOUND",
            )
        return ServiceResult.success(record)

    @classmethod
    def cancel_payment(cls, reference: str) -> ServiceResult[PaymentRecord]:
        """
        Cancel a PENDING payment.

        Returns:
            ServiceResult with the CANCELLED record, or PAYMENT_NOT_FOUND,
            INVALID_STATE_TRANSITION, VERIFICATION_IN_PROGRESS
        """
        try:
            with DistributedLock.for_payment(reference):
                record = PaymentRecord.objects.filter(reference=reference).first()
                if record is None:
                    raise PaymentNotFoundError(
                        f"Payment {reference} not found",
                        details={"reference": reference},
                    )
                if not can_proceed(record.cancel):
                    raise InvalidStateTransitionError(
                        f"Cannot cancel payment in '{record.status}' state",
                        details={"current_state": record.status, "transition": "cancel"},
                    )
                previous = record.status
                record.cancel()
                record.commit_transition(previous)
        except LockAcquisitionError:
            return ServiceResult.failure(
                "Payment verification is already in progress, try again shortly",
                error_code="VERIFICATION_IN_PROGRESS",
            )
        except (PaymentError, InvalidStateTransitionError, StaleRecordError) as e:
            return cls.handle_exception(
                e, "Payment cancellation refused", logging.WARNING, {"reference": reference}
            )

        cls.get_logger().info("Payment cancelled", extra={"reference": reference})
        return ServiceResult.success(record)

    @classmethod
    def expire_stale_payments(
        cls, older_than: timedelta | None = None
    ) -> ServiceResult[int]:
        """
        Expire PENDING payments created before the expiry window.

        Records that changed concurrently (e.g. a verification claimed
        them) are skipped.

        Returns:
            ServiceResult with the number of payments expired
        """
        window = older_than or timedelta(minutes=settings.PAYMENT_PENDING_EXPIRY_MINUTES)
        cutoff = timezone.now() - window

        expired = 0
        skipped = 0
        for record in PaymentRecord.objects.stale_pending(cutoff)[: cls.EXPIRY_BATCH_SIZE]:
            previous = record.status
            record.expire()
            try:
                record.commit_transition(previous)
            except StaleRecordError:
                skipped += 1
                continue
            expired += 1

        cls.get_logger().info(
            "Expired stale payments",
            extra={"expired": expired, "skipped": skipped, "cutoff": cutoff.isoformat()},
        )
        return ServiceResult.success(expired)

    @classmethod
    def recover_stuck_verifications(cls, older_than: timedelta) -> ServiceResult[int]:
        """
        Fail PROCESSING payments whose verifier died mid-flight.

        A worker killed between claiming a payment and recording the
        gateway answer leaves it in PROCESSING. Failing it keeps the
        gateway session, so the next callback or webhook verifies again.

        Returns:
            ServiceResult with the number of payments recovered
        """
        cutoff = timezone.now() - older_than
        stuck = PaymentRecord.objects.filter(
            status=PaymentStatus.PROCESSING,
            updated_at__lt=cutoff,
        )[: cls.EXPIRY_BATCH_SIZE]

        recovered = 0
        for record in stuck:
            try:
                cls._fail(record, "Verification interrupted, awaiting re-verification")
            except StaleRecordError:
                continue
            recovered += 1
            cls.get_logger().warning(
                "Recovered stuck verification",
                extra={
                    "reference": record.reference,
                    "stuck_since": record.updated_at.isoformat(),
                },
            )

        return ServiceResult.success(recovered)

    @classmethod
    def sync_contribution(cls, reference: str) -> ServiceResult[PaymentRecord]:
        """
        Re-send the mark-paid signal for a SUCCEEDED payment.

        Returns:
            ServiceResult with the record, or PAYMENT_NOT_FOUND,
            INVALID_STATE_TRANSITION, CONTRIBUTION_SYNC_FAILED (retryable),
            CONTRIBUTION_SYNC_REJECTED (permanent)
        """
        logger = cls.get_logger()
        record = PaymentRecord.objects.filter(reference=reference).first()
        if record is None:
            return ServiceResult.failure(
                f"Payment {reference} not found",
                error_code="PAYMENT_NOT_FOUND",
            )
        if record.status != PaymentStatus.SUCCEEDED:
            return ServiceResult.failure(
                f"Payment {reference} has not succeeded",
                error_code="INVALID_STATE_TRANSITION",
            )
        if record.contribution_synced_at is not None:
            return ServiceResult.success(record)

        try:
            cls.contribution_synchronizer.mark_contribution_paid(
                record.contribution_id, record.reference
            )
        except Exception as e:
            if getattr(e, "is_retryable", True):
                error = ContributionSyncError(
                    f"Contribution {record.contribution_id} was not updated: {e}",
                    details={"reference": reference},
                )
                return cls.handle_exception(error, "Contribution sync failed")
            return cls.handle_exception(e, "Contribution sync rejected")

        record.mark_contribution_synced()
        logger.info(
            "Contribution synced",
            extra={"reference": reference, "contribution_id": str(record.contribution_id)},
        )
        return ServiceResult.success(record)

    @classmethod
    def _fail(
        cls,
        record: PaymentRecord,
        reason: str,
        raw_response: dict | None = None,
    ) -> None:
        """Transition a record the caller currently owns to FAILED."""
        previous = record.status
        record.fail(reason, raw_response=raw_response)
        record.commit_transition(previous)
        cls.get_logger().info(
            "Payment failed",
            extra={"reference": record.reference, "reason": reason},
        )
