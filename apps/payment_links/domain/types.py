from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class PaymentMethod(StrEnum):
    MTN_MOMO = "mtn_momo"
    DIGICASH = "digicash"


DEFAULT_PAYMENT_METHODS: tuple[PaymentMethod, ...] = (PaymentMethod.MTN_MOMO, PaymentMethod.DIGICASH)


class LinkStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    DISABLED = "disabled"


@dataclass(frozen=True)
class FixedAmount:
    amount: Decimal

    @property
    def kind(self) -> str:
        return "fixed"


@dataclass(frozen=True)
class AmountRange:
    """Customer-chosen amount, optionally bounded on either side."""

    min_amount: Decimal | None = None
    max_amount: Decimal | None = None

    @property
    def kind(self) -> str:
        return "range"


AmountPolicy = Union[FixedAmount, AmountRange]


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    value: T | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class NormalizedLink:
    """Creation draft accepted by the link validator. Built nowhere else."""

    title: str
    description: str
    amount_policy: AmountPolicy
    currency: str
    expires_at: datetime | None
    redirect_url: str
    notes: str
    collect_customer_info: bool
    allowed_payment_methods: tuple[PaymentMethod, ...]


@dataclass(frozen=True)
class PaymentLinkRecord:
    """Canonical persisted link as returned by storage."""

    id: int
    link_id: str
    reference: str
    merchant_id: int
    title: str
    description: str
    amount_policy: AmountPolicy
    currency: str
    expires_at: datetime | None
    redirect_url: str
    notes: str
    collect_customer_info: bool
    allowed_payment_methods: tuple[PaymentMethod, ...]
    enabled: bool
    click_count: int
    created_at: datetime
    merchant_name: str = ""
