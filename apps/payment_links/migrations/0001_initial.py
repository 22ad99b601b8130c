import apps.payment_links.models
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "link_id",
                    models.CharField(
                        default=apps.payment_links.models.generate_link_id,
                        editable=False,
                        max_length=32,
                        unique=True,
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        default=apps.payment_links.models.generate_link_reference,
                        editable=False,
                        max_length=32,
                        unique=True,
                    ),
                ),
                ("title", models.CharField(max_length=100)),
                ("description", models.CharField(max_length=500)),
                (
                    "amount_kind",
                    models.CharField(choices=[("fixed", "Fixed"), ("range", "Range")], default="fixed", max_length=10),
                ),
                ("amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("min_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("max_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("currency", models.CharField(default="SSP", max_length=3)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("redirect_url", models.URLField(blank=True, default="", max_length=500)),
                ("notes", models.TextField(blank=True, default="")),
                ("collect_customer_info", models.BooleanField(default=False)),
                ("allowed_payment_methods", models.JSONField(blank=True, default=list)),
                ("enabled", models.BooleanField(default=True)),
                ("click_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_links",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["merchant", "created_at"], name="paylink_merchant_time_idx"),
                    models.Index(fields=["expires_at"], name="paylink_expires_idx"),
                ],
            },
        ),
    ]
