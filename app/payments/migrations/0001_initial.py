import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contributions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Optimistic locking version, incremented on every write",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        editable=False,
                        help_text="System-generated payment reference, shared with the gateway",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        editable=False,
                        help_text="Amount due at initialization",
                        max_digits=15,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="NGN",
                        help_text="ISO 4217 currency code",
                        max_length=3,
                    ),
                ),
                (
                    "gateway",
                    models.CharField(
                        choices=[
                            ("paystack", "Paystack"),
                            ("flutterwave", "Flutterwave"),
                            ("manual", "Manual"),
                        ],
                        editable=False,
                        help_text="Payment provider",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="initiated",
                        help_text="Current state of the payment (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "payer_email",
                    models.EmailField(
                        help_text="Payer contact sent to the gateway",
                        max_length=254,
                    ),
                ),
                (
                    "callback_url",
                    models.URLField(
                        blank=True,
                        default="",
                        help_text="Where the gateway redirects the payer after checkout",
                        max_length=500,
                    ),
                ),
                (
                    "gateway_reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Provider-side transaction identifier",
                        max_length=128,
                    ),
                ),
                (
                    "authorization_url",
                    models.URLField(
                        blank=True,
                        default="",
                        help_text="Hosted checkout URL returned by the gateway",
                        max_length=500,
                    ),
                ),
                (
                    "gateway_response",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Last raw payload received from the gateway",
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Why this attempt failed",
                    ),
                ),
                (
                    "verified_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the gateway confirmed the payment",
                        null=True,
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payment reached SUCCEEDED",
                        null=True,
                    ),
                ),
                (
                    "failed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payment last failed",
                        null=True,
                    ),
                ),
                (
                    "cancelled_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payment was cancelled",
                        null=True,
                    ),
                ),
                (
                    "expired_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payment expired",
                        null=True,
                    ),
                ),
                (
                    "contribution_synced_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the contribution was marked paid by this payment",
                        null=True,
                    ),
                ),
                (
                    "contribution",
                    models.ForeignKey(
                        help_text="Contribution this payment settles",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="contributions.contribution",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Record",
                "verbose_name_plural": "Payment Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["contribution", "status"],
                        name="payments_pa_contrib_6b1f0e_idx",
                    ),
                    models.Index(
                        fields=["status", "created_at"],
                        name="payments_pa_status_2c9d4a_idx",
                    ),
                ],
            },
        ),
    ]
