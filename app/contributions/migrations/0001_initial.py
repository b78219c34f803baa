from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Contribution",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
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
                    "reference_number",
                    models.CharField(
                        help_text="Human-shareable contribution reference",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "member_number",
                    models.CharField(
                        db_index=True,
                        help_text="Pension member number",
                        max_length=32,
                    ),
                ),
                (
                    "contribution_type",
                    models.CharField(
                        choices=[
                            ("mandatory", "Mandatory"),
                            ("voluntary", "Voluntary"),
                            ("employer", "Employer"),
                        ],
                        default="mandatory",
                        help_text="Mandatory, voluntary or employer contribution",
                        max_length=20,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount due for this contribution",
                        max_digits=15,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Settlement status",
                        max_length=20,
                    ),
                ),
                (
                    "payment_reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Reference of the payment that settled this contribution",
                        max_length=64,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the contribution was settled",
                        null=True,
                    ),
                ),
            ],
            options={
                "verbose_name": "Contribution",
                "verbose_name_plural": "Contributions",
                "ordering": ["-created_at"],
            },
        ),
    ]
