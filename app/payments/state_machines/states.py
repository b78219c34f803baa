"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration;
the transitions themselves are django-fsm methods on PaymentRecord.

PaymentRecord States:
    initiated → pending → processing → succeeded
    initiated/pending → failed (gateway initialization failed)
    processing → failed (verification error, declined, amount mismatch)
    failed → processing (re-verification, only with a gateway session)
    pending → cancelled / expired
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the PaymentRecord lifecycle.

    Terminal states: SUCCEEDED, CANCELLED, EXPIRED
    FAILED is terminal for the attempt only; a new payment is the retry path.

    State Flow:
        INITIATED → PENDING → PROCESSING → SUCCEEDED

    Failure Flow:
        INITIATED/PENDING → FAILED
        PROCESSING → FAILED

    External Flow:
        PENDING → CANCELLED
        PENDING → EXPIRED
    """

    INITIATED = "initiated", "Initiated"
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


class PaymentGateway(models.TextChoices):
    """
    Payment providers a payment can be collected through.

    PAYSTACK and FLUTTERWAVE redirect the payer to a hosted checkout page.
    MANUAL payments (bank transfer, cheque) are confirmed by an operator.
    """

    PAYSTACK = "paystack", "Paystack"
    FLUTTERWAVE = "flutterwave", "Flutterwave"
    MANUAL = "manual", "Manual"
