from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class ProviderPaymentRequest:
    transaction_id: str
    amount: Decimal
    currency: str
    description: str
    customer_name: str
    phone_number: str
    email: str = ""
    return_url: str = ""


@dataclass(frozen=True)
class ProviderPaymentResult:
    success: bool
    provider_reference: str | None = None
    message: str = ""
    response_code: str = ""
    instructions: dict = field(default_factory=dict)


class PaymentGatewayPort(Protocol):
    code: str
    name: str

    def request_payment(self, request: ProviderPaymentRequest) -> ProviderPaymentResult:
        ...
