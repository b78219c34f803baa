"""
Payment admin configuration.

PaymentRecords are read-only in the admin. Status changes go through
PaymentOrchestrator via the bulk actions, never through the change form.
"""

from django.contrib import admin, messages

from payments.models import PaymentRecord
from payments.services import PaymentOrchestrator

__all__ = [
    "PaymentRecordAdmin",
]


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentRecord.

    Provides visibility into payment attempts and their states.
    """

    list_display = [
        "reference",
        "contribution",
        "amount_display",
        "gateway",
        "status",
        "paid_at",
        "contribution_synced_at",
        "created_at",
    ]
    list_filter = ["status", "gateway", "currency", "created_at"]
    search_fields = [
        "reference",
        "gateway_reference",
        "payer_email",
        "contribution__reference_number",
    ]
    readonly_fields = [
        "id",
        "reference",
        "contribution",
        "amount",
        "currency",
        "gateway",
        "status",
        "payer_email",
        "callback_url",
        "metadata",
        "gateway_reference",
        "authorization_url",
        "gateway_response",
        "failure_reason",
        "verified_at",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "expired_at",
        "contribution_synced_at",
        "version",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["verify_with_gateway", "cancel_payments", "sync_contributions"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "reference", "contribution", "status"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency", "gateway", "payer_email", "metadata"),
            },
        ),
        (
            "Gateway",
            {
                "fields": (
                    "gateway_reference",
                    "authorization_url",
                    "callback_url",
                    "failure_reason",
                    "gateway_response",
                ),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "verified_at",
                    "paid_at",
                    "failed_at",
                    "cancelled_at",
                    "expired_at",
                    "contribution_synced_at",
                    "created_at",
                    "updated_at",
                    "version",
                ),
            },
        ),
    )

    def amount_display(self, obj: PaymentRecord) -> str:
        """Display the amount with its currency."""
        return f"{obj.amount:,.2f} {obj.currency}"

    amount_display.short_description = "Amount"

    @admin.action(description="Verify selected payments with their gateway")
    def verify_with_gateway(self, request, queryset):
        self._run_per_reference(request, queryset, PaymentOrchestrator.verify_payment, "Verified")

    @admin.action(description="Cancel selected pending payments")
    def cancel_payments(self, request, queryset):
        self._run_per_reference(request, queryset, PaymentOrchestrator.cancel_payment, "Cancelled")

    @admin.action(description="Mark contributions paid for selected payments")
    def sync_contributions(self, request, queryset):
        self._run_per_reference(
            request, queryset, PaymentOrchestrator.sync_contribution, "Synced"
        )

    def _run_per_reference(self, request, queryset, operation, verb: str) -> None:
        done = 0
        for reference in queryset.values_list("reference", flat=True):
            result = operation(reference)
            if result.success:
                done += 1
            else:
                self.message_user(
                    request,
                    f"{reference}: {result.error} ({result.error_code})",
                    level=messages.WARNING,
                )
        self.message_user(request, f"{verb} {done} payment(s).")

    def has_add_permission(self, request) -> bool:
        """Payments are created through the API only."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payment records (audit trail)."""
        return False
