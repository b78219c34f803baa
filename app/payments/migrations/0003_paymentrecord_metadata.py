from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0002_add_payment_maintenance_schedules"),
    ]

    operations = [
        migrations.AddField(
            model_name="paymentrecord",
            name="metadata",
            field=models.JSONField(
                blank=True,
                default=dict,
                help_text="Caller-supplied key-value pairs, also sent to the gateway",
            ),
        ),
    ]
