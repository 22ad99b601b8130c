import apps.payments.models
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("payment_links", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "transaction_id",
                    models.CharField(
                        default=apps.payments.models.generate_transaction_id,
                        editable=False,
                        max_length=32,
                        unique=True,
                    ),
                ),
                ("method", models.CharField(max_length=30)),
                ("provider_code", models.CharField(blank=True, default="", max_length=30)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("platform_fee", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("currency", models.CharField(default="SSP", max_length=3)),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("customer_name", models.CharField(max_length=200)),
                ("customer_phone", models.CharField(max_length=32)),
                ("customer_email", models.EmailField(blank=True, default="", max_length=254)),
                ("provider_reference", models.CharField(blank=True, default="", max_length=100)),
                ("provider_message", models.CharField(blank=True, default="", max_length=255)),
                ("instructions", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "payment_link",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="payment_links.paymentlink",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["payment_link", "created_at"], name="txn_link_time_idx"),
                    models.Index(fields=["status", "created_at"], name="txn_status_time_idx"),
                ],
            },
        ),
    ]
