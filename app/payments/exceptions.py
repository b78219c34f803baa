"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - No payment with the given reference
    ├── ContributionNotFoundError - Contribution lookup failed
    ├── AlreadyPaidError - Contribution is already settled
    ├── AmountMismatchError - Amount differs from the amount due
    └── VerificationFailedError - Gateway verification could not complete

    GatewayError (ExternalServiceError) - Base for payment provider failures
    ├── GatewayUnavailableError - Network error, timeout, 5xx (transient)
    └── GatewayRejectedError - Provider refused the request (permanent)

    ContributionSyncError (ExternalServiceError) - Mark-paid signal failed

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

The error_code of each class is the error kind returned to API callers
through ServiceResult.

Usage:
    from payments.exceptions import GatewayUnavailableError

    raise GatewayUnavailableError(
        "Paystack request timed out",
        gateway="paystack",
        details={"operation": "initialize"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment domain errors."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """Raised when no PaymentRecord matches a reference."""

    default_error_code: str = "PAYMENT_NOT_FOUND"


class ContributionNotFoundError(PaymentError):
    """Raised when the contribution being paid does not exist."""

    default_error_code: str = "CONTRIBUTION_NOT_FOUND"


class AlreadyPaidError(PaymentError):
    """
    Raised when a payment is initialized for a settled contribution.

    No PaymentRecord is created.
    """

    default_error_code: str = "ALREADY_PAID"


class AmountMismatchError(PaymentError):
    """
    Raised when a payment amount differs from the amount due.

    Equality is exact Decimal equality; there is no tolerance.
    """

    default_error_code: str = "AMOUNT_MISMATCH"


class VerificationFailedError(PaymentError):
    """
    Raised when verification with the provider could not be completed.

    The payment is recorded as FAILED with the reason. Verification can
    be attempted again later.
    """

    default_error_code: str = "VERIFICATION_FAILED"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(ExternalServiceError):
    """
    Base exception for payment provider errors.

    Attributes:
        gateway: Provider name (paystack, flutterwave, manual)
        is_retryable: Whether the same request may succeed later
    """

    default_error_code: str = "GATEWAY_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        gateway: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway:
            details["gateway"] = gateway
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            is_retryable=self.retryable,
        )
        self.gateway = gateway


class GatewayUnavailableError(GatewayError):
    """
    Provider could not be reached or failed server-side.

    Raised for connection errors, timeouts, 5xx responses and open
    circuits. Transient: safe to retry.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    retryable: bool = True


class GatewayRejectedError(GatewayError):
    """
    Provider refused the request.

    Raised for 4xx responses and explicit `status: false` bodies, e.g. a
    malformed payer email. Permanent: retrying the same request fails again.
    """

    default_error_code: str = "GATEWAY_REJECTED"


class ContributionSyncError(ExternalServiceError):
    """
    Raised when the contribution could not be marked paid.

    The payment itself stays SUCCEEDED; reconciliation retries the signal.
    """

    default_error_code: str = "CONTRIBUTION_SYNC_FAILED"

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("is_retryable", True)
        super().__init__(message, **kwargs)


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when a compare-and-set write finds the row already changed.

    Another process transitioned the payment between our read and our
    write. Callers reload and re-evaluate instead of overwriting.

    Attributes:
        details: Contains reference, expected_status and version
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process is working on the same payment and did not finish
    within the lock timeout.

    Attributes:
        details: Contains key and timeout information
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed in the standard error format.

    Attributes:
        details: Contains current_state and transition
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "ContributionNotFoundError",
    "AlreadyPaidError",
    "AmountMismatchError",
    "VerificationFailedError",
    # Gateways
    "GatewayError",
    "GatewayUnavailableError",
    "GatewayRejectedError",
    "ContributionSyncError",
    # Concurrency control
    "StaleRecordError",
    "LockAcquisitionError",
    "InvalidStateTransitionError",
]
