from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from apps.payment_links.domain.types import PaymentLinkRecord

from .types import Customer, PaymentOutcome


class PaymentLinkDirectoryPort(Protocol):
    def fetch_payment_link(self, link_id: str) -> PaymentLinkRecord:
        """Raise PaymentLinkNotFoundError or LinkLookupError on failure."""
        ...


class PaymentInitiatorPort(Protocol):
    def initiate_payment(
        self,
        *,
        link_id: str,
        payment_method: str,
        customer: Customer,
        amount: Decimal,
    ) -> PaymentOutcome:
        """Rejections come back as PaymentOutcome(success=False); unreachable raises PaymentSubmissionError."""
        ...
