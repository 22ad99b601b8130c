from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum


class CheckoutState(StrEnum):
    RESOLVING = "resolving"
    AWAITING_INPUT = "awaiting_input"
    SUBMITTING = "submitting"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


TERMINAL_STATES = frozenset({CheckoutState.PENDING, CheckoutState.SUCCEEDED, CheckoutState.UNAVAILABLE})


@dataclass(frozen=True)
class CheckoutForm:
    """Raw customer input as typed on the checkout page."""

    name: str = ""
    phone_number: str = "+211"
    email: str = ""
    amount: object = None


@dataclass(frozen=True)
class Customer:
    name: str
    phone_number: str
    email: str = ""


@dataclass(frozen=True)
class ValidatedCheckout:
    customer: Customer
    amount: Decimal


@dataclass(frozen=True)
class PaymentOutcome:
    success: bool
    transaction_id: str = ""
    status: str = ""
    message: str = ""
    instructions: dict = field(default_factory=dict)
