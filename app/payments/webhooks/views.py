"""
Webhook endpoint view for payment gateways.

One endpoint serves every gateway, selected by the URL:
    POST /api/v1/payments/webhook/paystack/
    POST /api/v1/payments/webhook/flutterwave/

The view hands the raw body and the gateway's signature header to
PaymentOrchestrator.handle_webhook and answers 200 with the same body no
matter what happened. Providers retry anything else, and a differing
answer would tell a prober whether its forged signature was accepted.

Usage:
    # In urls.py
    from payments.webhooks.views import gateway_webhook

    urlpatterns = [
        path("webhook/<str:provider>/", gateway_webhook, name="gateway_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.services import PaymentOrchestrator

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT = {"status": "received"}


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest, provider: str) -> JsonResponse:
    """
    Receive a gateway webhook.

    Security:
    - Signature verification happens in the gateway adapter before the
      payload is read
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - Verification is idempotent per reference; provider retries of a
      settled payment are no-ops

    Returns:
        JsonResponse 200 {"status": "received"}
    """
    signature = ""
    try:
        signature_header = PaymentOrchestrator.get_adapter(provider).signature_header
    except ValueError:
        signature_header = ""
    if signature_header:
        signature = request.headers.get(signature_header, "")

    logger.info(
        f"Received {provider} webhook",
        extra={"gateway": provider, "signature_present": bool(signature)},
    )

    PaymentOrchestrator.handle_webhook(request.body, signature, provider)

    return JsonResponse(ACKNOWLEDGEMENT, status=200)
