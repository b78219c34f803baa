"""
Payment services for coordinating payment operations.

This module provides:
- PaymentOrchestrator: Initializes, verifies, cancels and expires payments
- InitializePaymentRequest: Parameters for a new payment
- VerificationOutcome: Result of a verification attempt

Usage:
    from payments.services import InitializePaymentRequest, PaymentOrchestrator

    # Start a payment
    result = PaymentOrchestrator.initialize_payment(
        InitializePaymentRequest(
            contribution_id=contribution.id,
            amount=contribution.amount,
            gateway="paystack",
            payer_email="member@example.com",
        )
    )

    # Settle it from the callback redirect
    result = PaymentOrchestrator.verify_payment(result.data.reference)

    # Expire abandoned checkouts (typically via celery-beat)
    result = PaymentOrchestrator.expire_stale_payments()
"""

from payments.services.payment_orchestrator import (
    InitializePaymentRequest,
    PaymentOrchestrator,
    VerificationOutcome,
)

__all__ = [
    "InitializePaymentRequest",
    "PaymentOrchestrator",
    "VerificationOutcome",
]
