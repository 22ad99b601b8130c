from __future__ import annotations

from django.db.models import F

from apps.payment_links.domain.errors import PaymentLinkNotFoundError
from apps.payment_links.domain.types import (
    AmountRange,
    FixedAmount,
    NormalizedLink,
    PaymentLinkRecord,
    PaymentMethod,
)
from apps.payment_links.models import PaymentLink


def to_record(link: PaymentLink) -> PaymentLinkRecord:
    if link.amount_kind == PaymentLink.AMOUNT_FIXED:
        policy = FixedAmount(amount=link.amount)
    else:
        policy = AmountRange(min_amount=link.min_amount, max_amount=link.max_amount)
    return PaymentLinkRecord(
        id=link.id,
        link_id=link.link_id,
        reference=link.reference,
        merchant_id=link.merchant_id,
        title=link.title,
        description=link.description,
        amount_policy=policy,
        currency=link.currency,
        expires_at=link.expires_at,
        redirect_url=link.redirect_url,
        notes=link.notes,
        collect_customer_info=link.collect_customer_info,
        allowed_payment_methods=tuple(PaymentMethod(m) for m in link.allowed_payment_methods or []),
        enabled=link.enabled,
        click_count=link.click_count,
        created_at=link.created_at,
        merchant_name=merchant_display_name(link.merchant),
    )


def merchant_display_name(user) -> str:
    return (user.get_full_name() or user.get_username()).strip()


class DjangoPaymentLinkRepository:
    def create(self, *, merchant_id: int, draft: NormalizedLink) -> PaymentLinkRecord:
        policy = draft.amount_policy
        fields: dict = {
            "merchant_id": merchant_id,
            "title": draft.title,
            "description": draft.description,
            "currency": draft.currency,
            "expires_at": draft.expires_at,
            "redirect_url": draft.redirect_url,
            "notes": draft.notes,
            "collect_customer_info": draft.collect_customer_info,
            "allowed_payment_methods": [m.value for m in draft.allowed_payment_methods],
        }
        if isinstance(policy, FixedAmount):
            fields.update(amount_kind=PaymentLink.AMOUNT_FIXED, amount=policy.amount)
        else:
            fields.update(
                amount_kind=PaymentLink.AMOUNT_RANGE,
                min_amount=policy.min_amount,
                max_amount=policy.max_amount,
            )
        return to_record(PaymentLink.objects.create(**fields))

    def get_by_link_id(self, link_id: str) -> PaymentLinkRecord:
        link = PaymentLink.objects.select_related("merchant").filter(link_id=(link_id or "").strip()).first()
        if not link:
            raise PaymentLinkNotFoundError()
        return to_record(link)

    def set_enabled(self, *, link_id: str, merchant_id: int, enabled: bool) -> PaymentLinkRecord:
        link = PaymentLink.objects.select_related("merchant").filter(link_id=link_id, merchant_id=merchant_id).first()
        if not link:
            raise PaymentLinkNotFoundError()
        if link.enabled != enabled:
            link.enabled = enabled
            link.save(update_fields=["enabled", "updated_at"])
        return to_record(link)

    def list_for_merchant(self, *, merchant_id: int) -> list[PaymentLinkRecord]:
        return [to_record(link) for link in PaymentLink.objects.select_related("merchant").filter(merchant_id=merchant_id)]

    def record_click(self, link_id: str) -> None:
        PaymentLink.objects.filter(link_id=link_id).update(click_count=F("click_count") + 1)
