"""
Payments app configuration.

This app orchestrates contribution payments:
- PaymentRecord lifecycle (django-fsm)
- Paystack, Flutterwave and manual gateway adapters
- Callback and webhook verification
- Expiry and reconciliation jobs (Celery)
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
