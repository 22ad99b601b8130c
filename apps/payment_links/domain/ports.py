from __future__ import annotations

from typing import Protocol

from .types import NormalizedLink, PaymentLinkRecord


class PaymentLinkRepositoryPort(Protocol):
    def create(self, *, merchant_id: int, draft: NormalizedLink) -> PaymentLinkRecord:
        ...

    def get_by_link_id(self, link_id: str) -> PaymentLinkRecord:
        """Raise PaymentLinkNotFoundError when no link matches."""
        ...

    def set_enabled(self, *, link_id: str, merchant_id: int, enabled: bool) -> PaymentLinkRecord:
        ...

    def list_for_merchant(self, *, merchant_id: int) -> list[PaymentLinkRecord]:
        ...

    def record_click(self, link_id: str) -> None:
        ...
