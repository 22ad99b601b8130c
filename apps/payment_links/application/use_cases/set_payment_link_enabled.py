from __future__ import annotations

import logging
from dataclasses import dataclass

from apps.payment_links.domain.ports import PaymentLinkRepositoryPort
from apps.payment_links.domain.types import PaymentLinkRecord
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository

logger = logging.getLogger("payssd.payment_links")


@dataclass(frozen=True)
class SetPaymentLinkEnabledCommand:
    merchant_id: int
    link_id: str
    enabled: bool


class SetPaymentLinkEnabledUseCase:
    @staticmethod
    def execute(
        cmd: SetPaymentLinkEnabledCommand,
        *,
        repository: PaymentLinkRepositoryPort | None = None,
    ) -> PaymentLinkRecord:
        repo = repository or DjangoPaymentLinkRepository()
        record = repo.set_enabled(link_id=cmd.link_id, merchant_id=cmd.merchant_id, enabled=cmd.enabled)
        logger.info("payment_link_toggled", extra={"link_id": record.link_id, "enabled": record.enabled})
        return record
