"""
Payment gateway adapters.

Usage:
    from payments.adapters import PaystackAdapter, InitializePaymentParams

    result = PaystackAdapter().initialize(
        InitializePaymentParams(
            reference="PMT-1760000000000-1A2B3C4D",
            amount=Decimal("50000.00"),
            payer_email="member@example.com",
            callback_url="https://pensions.example.com/payments/callback",
        )
    )
"""

from payments.adapters.base import (
    HttpGatewayAdapter,
    InitializationResult,
    InitializePaymentParams,
    PaymentGatewayAdapter,
    VerificationResult,
)
from payments.adapters.flutterwave_adapter import FlutterwaveAdapter
from payments.adapters.manual_adapter import ManualAdapter
from payments.adapters.paystack_adapter import PaystackAdapter

__all__ = [
    "FlutterwaveAdapter",
    "HttpGatewayAdapter",
    "InitializationResult",
    "InitializePaymentParams",
    "ManualAdapter",
    "PaymentGatewayAdapter",
    "PaystackAdapter",
    "VerificationResult",
]
