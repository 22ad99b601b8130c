from __future__ import annotations

from rest_framework import serializers

from apps.payment_links.application.services.link_urls import full_url
from apps.payment_links.domain.amount_policy import describe_amount
from apps.payment_links.domain.types import FixedAmount, PaymentLinkRecord


class CheckoutCustomerSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    phoneNumber = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    email = serializers.CharField(max_length=254, required=False, allow_blank=True, default="")


class ProcessCheckoutSerializer(serializers.Serializer):
    paymentMethod = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    amount = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True, default=None)
    customer = CheckoutCustomerSerializer()


def public_link_payload(link: PaymentLinkRecord) -> dict:
    policy = link.amount_policy
    payload = {
        "linkId": link.link_id,
        "title": link.title,
        "description": link.description,
        "currency": link.currency,
        "allowCustomAmount": not isinstance(policy, FixedAmount),
        "amount": str(policy.amount) if isinstance(policy, FixedAmount) else None,
        "minAmount": None,
        "maxAmount": None,
        "amountDisplay": describe_amount(policy, link.currency),
        "allowedPaymentMethods": [m.value for m in link.allowed_payment_methods],
        "collectCustomerInfo": link.collect_customer_info,
        "expiresAt": link.expires_at.isoformat() if link.expires_at else None,
        "fullUrl": full_url(link.link_id),
        "merchant": {"businessName": link.merchant_name},
    }
    if not isinstance(policy, FixedAmount):
        payload["minAmount"] = str(policy.min_amount) if policy.min_amount is not None else None
        payload["maxAmount"] = str(policy.max_amount) if policy.max_amount is not None else None
    return payload
