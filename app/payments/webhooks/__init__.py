"""
Webhook handling for payment gateway notifications.

Notifications are authenticated by the gateway adapter and settled
through PaymentOrchestrator.verify_payment, the same path the callback
redirect uses.

Usage:
    # In urls.py
    from payments.webhooks.views import gateway_webhook

    urlpatterns = [
        path("webhook/<str:provider>/", gateway_webhook, name="gateway_webhook"),
    ]
"""

from payments.webhooks.views import gateway_webhook

__all__ = [
    "gateway_webhook",
]
