"""Admin configuration for contributions."""

from django.contrib import admin

from contributions.models import Contribution


@admin.register(Contribution)
class ContributionAdmin(admin.ModelAdmin):
    list_display = [
        "reference_number",
        "member_number",
        "contribution_type",
        "amount",
        "status",
        "payment_reference",
        "processed_at",
    ]
    list_filter = ["status", "contribution_type"]
    search_fields = ["reference_number", "member_number", "payment_reference"]
    readonly_fields = ["payment_reference", "processed_at", "created_at", "updated_at"]
