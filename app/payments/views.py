"""
DRF views for the payments app.

Endpoints:
    POST /api/v1/payments/initialize/ - Start a contribution payment
    GET /api/v1/payments/<reference>/ - Get payment details
    GET /api/v1/payments/verify/<reference>/ - Verify a payment with its gateway
    POST /api/v1/payments/<reference>/cancel/ - Cancel a pending payment
    GET /api/v1/payments/callback/?reference= - Gateway redirect landing

Webhooks live in payments.webhooks.views.

Related files:
    - services/payment_orchestrator.py: PaymentOrchestrator
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Security:
    - All endpoints require authentication except the gateway callback
      and webhooks
    - The callback only triggers a verification against the gateway; it
      trusts nothing in the query string beyond the reference
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult
from payments.serializers import (
    InitializePaymentSerializer,
    PaymentErrorSerializer,
    PaymentRecordSerializer,
    PaymentVerificationSerializer,
)
from payments.services import PaymentOrchestrator

# HTTP status for each named failure
ERROR_STATUS_CODES = {
    "CONTRIBUTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PAYMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ALREADY_PAID": status.HTTP_409_CONFLICT,
    "VERIFICATION_IN_PROGRESS": status.HTTP_409_CONFLICT,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
    "AMOUNT_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "INVALID_PARAMETERS": status.HTTP_400_BAD_REQUEST,
    "GATEWAY_REJECTED": status.HTTP_400_BAD_REQUEST,
    "GATEWAY_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "VERIFICATION_FAILED": status.HTTP_502_BAD_GATEWAY,
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with its mapped HTTP status."""
    return Response(
        result.to_response(),
        status=ERROR_STATUS_CODES.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def verification_response(result: ServiceResult) -> Response:
    if not result.success:
        return error_response(result)
    return Response(PaymentVerificationSerializer(result.data).data)


class InitializePaymentView(APIView):
    """
    Start a contribution payment.

    POST /api/v1/payments/initialize/

    Authentication:
        Requires valid JWT token.

    Response:
        201 Created: Payment is PENDING; redirect the payer to authorization_url
        400 Bad Request: Validation error, amount mismatch or gateway rejection
        404 Not Found: Contribution doesn't exist
        409 Conflict: Contribution already paid
        503 Service Unavailable: Gateway unreachable
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="initialize_payment",
        summary="Initialize payment",
        description=(
            "Validate the amount against the contribution's amount due and open "
            "a checkout session with the chosen gateway. No payment is recorded "
            "if the contribution is missing, already paid or the amount differs."
        ),
        request=InitializePaymentSerializer,
        responses={
            201: OpenApiResponse(
                response=PaymentRecordSerializer,
                description="Payment initialized",
            ),
            400: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Invalid parameters, amount mismatch or gateway rejection",
            ),
            404: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Contribution not found",
            ),
            409: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Contribution already paid",
            ),
            503: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Gateway unavailable",
            ),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = InitializePaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                ServiceResult.failure(
                    "Invalid payment parameters",
                    error_code="INVALID_PARAMETERS",
                    errors=serializer.errors,
                ).to_response(),
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = PaymentOrchestrator.initialize_payment(
            serializer.to_request(default_callback_url=settings.PAYMENT_CALLBACK_URL)
        )
        if not result.success:
            return error_response(result)

        return Response(
            PaymentRecordSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class PaymentDetailView(APIView):
    """
    Get payment details.

    GET /api/v1/payments/{reference}/

    Response:
        200 OK: Payment details
        404 Not Found: Payment doesn't exist
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_payment",
        summary="Get payment",
        responses={
            200: PaymentRecordSerializer,
            404: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Payment not found",
            ),
        },
        tags=["Payments"],
    )
    def get(self, request, reference):
        result = PaymentOrchestrator.get_payment(reference)
        if not result.success:
            return error_response(result)
        return Response(PaymentRecordSerializer(result.data).data)


class VerifyPaymentView(APIView):
    """
    Verify a payment with its gateway.

    GET /api/v1/payments/verify/{reference}/

    Idempotent: a payment that already succeeded is returned unchanged
    without contacting the gateway.

    Response:
        200 OK: Verification outcome (the payment may be FAILED)
        404 Not Found: Payment doesn't exist
        409 Conflict: Another verification holds the payment
        502 Bad Gateway: Gateway could not be queried
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_payment",
        summary="Verify payment",
        request=None,
        responses={
            200: PaymentVerificationSerializer,
            404: OpenApiResponse(response=PaymentErrorSerializer, description="Payment not found"),
            409: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Verification already in progress",
            ),
            502: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Gateway verification failed",
            ),
        },
        tags=["Payments"],
    )
    def get(self, request, reference):
        return verification_response(PaymentOrchestrator.verify_payment(reference))


class CancelPaymentView(APIView):
    """
    Cancel a pending payment.

    POST /api/v1/payments/{reference}/cancel/

    Response:
        200 OK: Payment cancelled
        404 Not Found: Payment doesn't exist
        409 Conflict: Payment is not PENDING
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="cancel_payment",
        summary="Cancel payment",
        request=None,
        responses={
            200: PaymentRecordSerializer,
            404: OpenApiResponse(response=PaymentErrorSerializer, description="Payment not found"),
            409: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Payment cannot be cancelled in its current state",
            ),
        },
        tags=["Payments"],
    )
    def post(self, request, reference):
        result = PaymentOrchestrator.cancel_payment(reference)
        if not result.success:
            return error_response(result)
        return Response(PaymentRecordSerializer(result.data).data)


class PaymentCallbackView(APIView):
    """
    Landing endpoint for the gateway redirect after checkout.

    GET /api/v1/payments/callback/?reference=PMT-...

    Paystack appends ?reference= and Flutterwave ?tx_ref=; both are
    accepted. The payment is verified with the gateway before the
    outcome is reported.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        operation_id="payment_callback",
        summary="Gateway callback",
        parameters=[
            OpenApiParameter(
                name="reference",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description="Payment reference (Flutterwave sends tx_ref)",
            ),
        ],
        responses={
            200: PaymentVerificationSerializer,
            400: OpenApiResponse(response=PaymentErrorSerializer, description="Missing reference"),
            404: OpenApiResponse(response=PaymentErrorSerializer, description="Payment not found"),
            409: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Verification already in progress",
            ),
            502: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Gateway verification failed",
            ),
        },
        tags=["Payments"],
    )
    def get(self, request):
        reference = request.query_params.get("reference") or request.query_params.get("tx_ref")
        if not reference:
            return Response(
                ServiceResult.failure(
                    "reference query parameter is required",
                    error_code="INVALID_PARAMETERS",
                ).to_response(),
                status=status.HTTP_400_BAD_REQUEST,
            )

        return verification_response(PaymentOrchestrator.verify_payment(reference))
