from __future__ import annotations

from rest_framework import serializers

from apps.payment_links.application.services.link_urls import full_url, short_url
from apps.payment_links.domain.amount_policy import describe_amount
from apps.payment_links.domain.policies import PaymentLinkForm
from apps.payment_links.domain.types import FixedAmount, LinkStatus, PaymentLinkRecord


class CreatePaymentLinkSerializer(serializers.Serializer):
    """Shape check only; business rules live in the link validator."""

    title = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    allowCustomAmount = serializers.BooleanField(required=False, default=False)
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    minAmount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    maxAmount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    currency = serializers.CharField(required=False, allow_blank=True, default="")
    expiresAt = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    redirectUrl = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    collectCustomerInfo = serializers.BooleanField(required=False, default=False)
    allowedPaymentMethods = serializers.ListField(
        child=serializers.CharField(max_length=30),
        required=False,
        allow_empty=True,
        default=None,
    )

    def to_form(self) -> PaymentLinkForm:
        data = self.validated_data
        return PaymentLinkForm(
            title=data["title"],
            description=data["description"],
            allow_custom_amount=data["allowCustomAmount"],
            amount=data["amount"],
            min_amount=data["minAmount"],
            max_amount=data["maxAmount"],
            currency=data["currency"],
            expires_at=data["expiresAt"],
            redirect_url=data["redirectUrl"] or "",
            notes=data["notes"] or "",
            collect_customer_info=data["collectCustomerInfo"],
            allowed_payment_methods=data["allowedPaymentMethods"],
        )


class SetEnabledSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()


def _money(value) -> str | None:
    return str(value) if value is not None else None


def payment_link_payload(link: PaymentLinkRecord, *, status: LinkStatus) -> dict:
    policy = link.amount_policy
    fixed = isinstance(policy, FixedAmount)
    return {
        "id": link.id,
        "linkId": link.link_id,
        "reference": link.reference,
        "title": link.title,
        "description": link.description,
        "allowCustomAmount": not fixed,
        "amount": _money(policy.amount) if fixed else None,
        "minAmount": None if fixed else _money(policy.min_amount),
        "maxAmount": None if fixed else _money(policy.max_amount),
        "amountDisplay": describe_amount(policy, link.currency),
        "currency": link.currency,
        "expiresAt": link.expires_at.isoformat() if link.expires_at else None,
        "redirectUrl": link.redirect_url or None,
        "notes": link.notes,
        "collectCustomerInfo": link.collect_customer_info,
        "allowedPaymentMethods": [m.value for m in link.allowed_payment_methods],
        "enabled": link.enabled,
        "status": status.value,
        "clickCount": link.click_count,
        "fullUrl": full_url(link.link_id),
        "shortUrl": short_url(link.link_id),
        "createdAt": link.created_at.isoformat(),
    }
