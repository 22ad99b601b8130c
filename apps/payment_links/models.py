"""
Payment links.

A merchant-created, shareable request for payment. Amount policy and expiry
are write-once; `enabled` is the only field a merchant may change later.
"""

from __future__ import annotations

from uuid import uuid4

from django.conf import settings
from django.db import models


def generate_link_id() -> str:
    return uuid4().hex[:16]


def generate_link_reference() -> str:
    return uuid4().hex[:12]


class PaymentLink(models.Model):
    AMOUNT_FIXED = "fixed"
    AMOUNT_RANGE = "range"

    AMOUNT_KIND_CHOICES = [
        (AMOUNT_FIXED, "Fixed"),
        (AMOUNT_RANGE, "Range"),
    ]

    link_id = models.CharField(max_length=32, unique=True, default=generate_link_id, editable=False)
    reference = models.CharField(max_length=32, unique=True, default=generate_link_reference, editable=False)
    merchant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payment_links",
    )
    title = models.CharField(max_length=100)
    description = models.CharField(max_length=500)
    amount_kind = models.CharField(max_length=10, choices=AMOUNT_KIND_CHOICES, default=AMOUNT_FIXED)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default="SSP")
    expires_at = models.DateTimeField(null=True, blank=True)
    redirect_url = models.URLField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    collect_customer_info = models.BooleanField(default=False)
    allowed_payment_methods = models.JSONField(default=list, blank=True)
    enabled = models.BooleanField(default=True)
    click_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["merchant", "created_at"], name="paylink_merchant_time_idx"),
            models.Index(fields=["expires_at"], name="paylink_expires_idx"),
        ]

    def __str__(self) -> str:
        return f"PaymentLink(link_id={self.link_id}, merchant_id={self.merchant_id})"
