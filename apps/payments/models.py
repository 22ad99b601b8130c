"""
Payments models.

EN: Transactions created when a customer pays through a payment link
(pending/processing/succeeded/failed).
"""

from __future__ import annotations

from uuid import uuid4

from django.db import models


def generate_transaction_id() -> str:
    return f"txn_{uuid4().hex[:16]}"


class Transaction(models.Model):
    """Payment attempt against a payment link."""

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_SUCCEEDED = "succeeded"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_SUCCEEDED, "Succeeded"),
        (STATUS_FAILED, "Failed"),
    ]

    transaction_id = models.CharField(max_length=32, unique=True, default=generate_transaction_id, editable=False)
    payment_link = models.ForeignKey(
        "payment_links.PaymentLink", on_delete=models.PROTECT, related_name="transactions"
    )
    method = models.CharField(max_length=30)
    provider_code = models.CharField(max_length=30, blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="SSP")
    description = models.CharField(max_length=500, blank=True, default="")
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=32)
    customer_email = models.EmailField(max_length=254, blank=True, default="")
    provider_reference = models.CharField(max_length=100, blank=True, default="")
    provider_message = models.CharField(max_length=255, blank=True, default="")
    instructions = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["payment_link", "created_at"], name="txn_link_time_idx"),
            models.Index(fields=["status", "created_at"], name="txn_status_time_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_id} - {self.status}"
