"""
Payments app for pension contribution payments.

This app handles:
- Payment initialization against a contribution's amount due
- Hosted checkout through Paystack and Flutterwave, plus manual payments
- Verification from the gateway callback and from webhooks
- Expiry of abandoned checkouts and contribution sync reconciliation

Related apps:
    - contributions: Contribution lookup and the mark-paid signal

Usage:
    from payments.services import PaymentOrchestrator

    result = PaymentOrchestrator.verify_payment(reference)
"""
