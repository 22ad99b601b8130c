from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from apps.payment_links.domain.ports import PaymentLinkRepositoryPort
from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import LinkStatus, PaymentLinkRecord
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository


@dataclass(frozen=True)
class ListPaymentLinksCommand:
    merchant_id: int
    status: LinkStatus | None = None
    now: datetime | None = None


@dataclass(frozen=True)
class PaymentLinkView:
    link: PaymentLinkRecord
    status: LinkStatus


@dataclass(frozen=True)
class PaymentLinkStats:
    total: int
    active: int
    expired: int
    disabled: int
    total_clicks: int


class ListPaymentLinksUseCase:
    @staticmethod
    def execute(
        cmd: ListPaymentLinksCommand,
        *,
        repository: PaymentLinkRepositoryPort | None = None,
    ) -> list[PaymentLinkView]:
        repo = repository or DjangoPaymentLinkRepository()
        now = cmd.now or timezone.now()
        views = [
            PaymentLinkView(link=record, status=LinkStatusResolver.for_record(record, now=now))
            for record in repo.list_for_merchant(merchant_id=cmd.merchant_id)
        ]
        if cmd.status is not None:
            views = [v for v in views if v.status == cmd.status]
        return views

    @staticmethod
    def stats(views: list[PaymentLinkView]) -> PaymentLinkStats:
        counts = {status: 0 for status in LinkStatus}
        for view in views:
            counts[view.status] += 1
        return PaymentLinkStats(
            total=len(views),
            active=counts[LinkStatus.ACTIVE],
            expired=counts[LinkStatus.EXPIRED],
            disabled=counts[LinkStatus.DISABLED],
            total_clicks=sum(v.link.click_count for v in views),
        )
