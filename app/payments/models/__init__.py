"""
Payment domain models.

- PaymentRecord: One attempt to collect money for one contribution
"""

from payments.models.payment_record import PaymentRecord, PaymentRecordQuerySet

__all__ = [
    "PaymentRecord",
    "PaymentRecordQuerySet",
]
