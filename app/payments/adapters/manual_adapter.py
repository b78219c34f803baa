"""
Manual payments (bank transfer, cheque, cash at branch).

There is no provider to talk to: initialization returns no checkout URL
and the payment waits in PENDING until an operator confirms it outside
the automated flow. Manual payments never accept webhooks.
"""

from __future__ import annotations

from payments.adapters.base import (
    InitializationResult,
    InitializePaymentParams,
    PaymentGatewayAdapter,
    VerificationResult,
)
from payments.state_machines import PaymentGateway


class ManualAdapter(PaymentGatewayAdapter):
    """Pending-manual-confirmation sentinel gateway."""

    gateway = PaymentGateway.MANUAL
    supports_verification = False

    def initialize(self, params: InitializePaymentParams) -> InitializationResult:
        self.get_logger().info(
            "Manual payment awaiting confirmation",
            extra={"reference": params.reference, "amount": str(params.amount)},
        )
        return InitializationResult(
            authorization_url=None,
            gateway_reference=None,
            raw_response={"status": "pending_manual_confirmation"},
        )

    def verify(self, reference: str) -> VerificationResult:
        return VerificationResult(
            succeeded=False,
            status="pending_manual_confirmation",
        )

    def verify_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        return False

    def extract_reference_from_notification(self, raw_payload: bytes) -> str | None:
        return None
