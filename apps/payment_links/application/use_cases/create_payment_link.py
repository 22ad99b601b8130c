from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.payment_links.domain.policies import PaymentLinkForm, validate_payment_link
from apps.payment_links.domain.ports import PaymentLinkRepositoryPort
from apps.payment_links.domain.types import PaymentLinkRecord
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository

logger = logging.getLogger("payssd.payment_links")


@dataclass(frozen=True)
class CreatePaymentLinkCommand:
    merchant_id: int
    form: PaymentLinkForm
    now: datetime | None = None


@dataclass(frozen=True)
class CreatePaymentLinkResult:
    link: PaymentLinkRecord | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.link is not None


class CreatePaymentLinkUseCase:
    @staticmethod
    @transaction.atomic
    def execute(
        cmd: CreatePaymentLinkCommand,
        *,
        repository: PaymentLinkRepositoryPort | None = None,
    ) -> CreatePaymentLinkResult:
        now = cmd.now or timezone.now()
        currencies = tuple(getattr(settings, "PAYSSD_CURRENCIES", ("SSP", "USD")))
        validated = validate_payment_link(cmd.form, now=now, currencies=currencies)
        if not validated.ok:
            return CreatePaymentLinkResult(errors=dict(validated.errors))

        repo = repository or DjangoPaymentLinkRepository()
        record = repo.create(merchant_id=cmd.merchant_id, draft=validated.value)
        logger.info(
            "payment_link_created",
            extra={"link_id": record.link_id, "merchant_id": cmd.merchant_id, "amount_kind": record.amount_policy.kind},
        )
        return CreatePaymentLinkResult(link=record)
