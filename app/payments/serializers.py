"""
DRF serializers for the payments app.

Provides:
- InitializePaymentSerializer: Validate a payment initialization request
- PaymentRecordSerializer: Read-only payment representation
- PaymentVerificationSerializer: Payment plus verification outcome
- PaymentErrorSerializer: Error body shared by every endpoint

Related files:
    - views.py: Payment API views
    - services/payment_orchestrator.py: Business logic behind the views
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from payments.models import PaymentRecord
from payments.services import InitializePaymentRequest
from payments.state_machines import PaymentGateway, PaymentStatus


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Paystack checkout",
            value={
                "contribution_id": 42,
                "amount": "50000.00",
                "gateway": "paystack",
                "payer_email": "member@example.com",
                "callback_url": "https://pensions.example.com/payments/callback",
                "metadata": {"member_number": "MEM-0042"},
            },
            request_only=True,
        ),
    ]
)
class InitializePaymentSerializer(serializers.Serializer):
    """
    Validate a request to start a contribution payment.

    The amount must equal the contribution's amount due; that check
    happens in the orchestrator, not here.

    Usage:
        serializer = InitializePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PaymentOrchestrator.initialize_payment(serializer.to_request())
    """

    contribution_id = serializers.IntegerField(
        min_value=1,
        help_text="Contribution being paid",
    )

    amount = serializers.DecimalField(
        max_digits=15,
        decimal_places=2,
        help_text="Amount to pay, equal to the amount due",
    )

    gateway = serializers.ChoiceField(
        choices=PaymentGateway.choices,
        help_text="Payment provider",
    )

    payer_email = serializers.EmailField(
        help_text="Payer contact sent to the gateway",
    )

    callback_url = serializers.URLField(
        required=False,
        allow_blank=True,
        max_length=500,
        help_text="Where the gateway sends the payer back (defaults to PAYMENT_CALLBACK_URL)",
    )

    metadata = serializers.DictField(
        required=False,
        help_text="Optional key-value pairs stored with the payment and sent to the gateway",
    )

    def to_request(self, default_callback_url: str = "") -> InitializePaymentRequest:
        data = self.validated_data
        return InitializePaymentRequest(
            contribution_id=data["contribution_id"],
            amount=data["amount"],
            gateway=data["gateway"],
            payer_email=data["payer_email"],
            callback_url=data.get("callback_url") or default_callback_url,
            metadata=data.get("metadata") or {},
        )


class PaymentRecordSerializer(serializers.ModelSerializer):
    """Read-only payment representation for API responses."""

    contribution_id = serializers.IntegerField(read_only=True)
    is_completed = serializers.SerializerMethodField()
    can_retry = serializers.SerializerMethodField()

    class Meta:
        model = PaymentRecord
        fields = [
            "reference",
            "contribution_id",
            "amount",
            "currency",
            "gateway",
            "status",
            "authorization_url",
            "gateway_reference",
            "failure_reason",
            "metadata",
            "is_completed",
            "can_retry",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_is_completed(self, obj: PaymentRecord) -> bool:
        return obj.status == PaymentStatus.SUCCEEDED

    def get_can_retry(self, obj: PaymentRecord) -> bool:
        """A new attempt can be initialized once this one is over without payment."""
        return obj.status in (
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
            PaymentStatus.EXPIRED,
        )


class PaymentVerificationSerializer(serializers.Serializer):
    """Payment after verification, with a reconciliation warning if any."""

    payment = PaymentRecordSerializer(read_only=True)
    changed = serializers.BooleanField(read_only=True)
    reconciliation_warning = serializers.CharField(read_only=True, allow_null=True)


class PaymentErrorSerializer(serializers.Serializer):
    """Error body returned with every non-2xx payment response."""

    success = serializers.BooleanField(default=False)
    error = serializers.CharField()
    error_code = serializers.CharField()
    errors = serializers.DictField(required=False)

