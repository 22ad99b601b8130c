from __future__ import annotations

from decimal import Decimal

from apps.checkout.domain.types import Customer, PaymentOutcome
from apps.payment_links.domain.types import PaymentLinkRecord
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository
from apps.payments.application.use_cases.initiate_payment import InitiatePaymentCommand, InitiatePaymentUseCase


class DjangoLinkDirectory:
    def __init__(self, repository: DjangoPaymentLinkRepository | None = None):
        self._repository = repository or DjangoPaymentLinkRepository()

    def fetch_payment_link(self, link_id: str) -> PaymentLinkRecord:
        return self._repository.get_by_link_id(link_id)


class LocalPaymentInitiator:
    """Initiates payments in-process through the payments app."""

    def initiate_payment(
        self,
        *,
        link_id: str,
        payment_method: str,
        customer: Customer,
        amount: Decimal,
    ) -> PaymentOutcome:
        result = InitiatePaymentUseCase.execute(
            InitiatePaymentCommand(
                link_id=link_id,
                payment_method=payment_method,
                amount=amount,
                customer_name=customer.name,
                phone_number=customer.phone_number,
                email=customer.email,
            )
        )
        return PaymentOutcome(
            success=result.success,
            transaction_id=result.transaction_id,
            status=result.status,
            message=result.message,
            instructions=result.instructions,
        )
