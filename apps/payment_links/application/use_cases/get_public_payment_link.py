from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from apps.payment_links.domain.errors import PaymentLinkNotFoundError
from apps.payment_links.domain.ports import PaymentLinkRepositoryPort
from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import LinkStatus, PaymentLinkRecord
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository

REASON_NOT_FOUND = "not_found"


@dataclass(frozen=True)
class GetPublicPaymentLinkCommand:
    link_id: str
    viewer_id: int | None = None
    now: datetime | None = None


@dataclass(frozen=True)
class GetPublicPaymentLinkResult:
    link: PaymentLinkRecord | None
    status: LinkStatus | None
    reason: str = ""

    @property
    def available(self) -> bool:
        return self.status == LinkStatus.ACTIVE


class GetPublicPaymentLinkUseCase:
    """Public lookup. Counts a click only when the link can be paid and the viewer is not its owner."""

    @staticmethod
    def execute(
        cmd: GetPublicPaymentLinkCommand,
        *,
        repository: PaymentLinkRepositoryPort | None = None,
    ) -> GetPublicPaymentLinkResult:
        repo = repository or DjangoPaymentLinkRepository()
        try:
            record = repo.get_by_link_id(cmd.link_id)
        except PaymentLinkNotFoundError:
            return GetPublicPaymentLinkResult(link=None, status=None, reason=REASON_NOT_FOUND)

        status = LinkStatusResolver.for_record(record, now=cmd.now or timezone.now())
        if status != LinkStatus.ACTIVE:
            return GetPublicPaymentLinkResult(link=record, status=status, reason=status.value)

        if cmd.viewer_id != record.merchant_id:
            repo.record_click(record.link_id)
        return GetPublicPaymentLinkResult(link=record, status=status)
