"""
URL configuration for the payments app.

Routes:
    - POST /initialize/ - Start a contribution payment
    - GET /verify/<reference>/ - Verify a payment
    - GET /callback/?reference= - Gateway redirect landing
    - POST /webhook/<provider>/ - Gateway webhook endpoint
    - GET /<reference>/ - Payment details
    - POST /<reference>/cancel/ - Cancel a pending payment

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import (
    CancelPaymentView,
    InitializePaymentView,
    PaymentCallbackView,
    PaymentDetailView,
    VerifyPaymentView,
)
from payments.webhooks.views import gateway_webhook

app_name = "payments"

urlpatterns = [
    path("initialize/", InitializePaymentView.as_view(), name="initialize"),
    path("verify/<str:reference>/", VerifyPaymentView.as_view(), name="verify"),
    path("callback/", PaymentCallbackView.as_view(), name="callback"),
    # Webhook endpoints
    path("webhook/<str:provider>/", gateway_webhook, name="gateway_webhook"),
    # Reference routes last so they don't shadow the fixed prefixes above
    path("<str:reference>/", PaymentDetailView.as_view(), name="detail"),
    path("<str:reference>/cancel/", CancelPaymentView.as_view(), name="cancel"),
]
