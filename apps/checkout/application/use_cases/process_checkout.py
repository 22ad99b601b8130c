from __future__ import annotations

from dataclasses import dataclass

from apps.checkout.domain.errors import PaymentMethodNotAllowedError
from apps.checkout.domain.ports import PaymentInitiatorPort, PaymentLinkDirectoryPort
from apps.checkout.domain.state_machine import CheckoutStateMachine
from apps.checkout.domain.types import CheckoutState
from apps.checkout.infrastructure.collaborators import DjangoLinkDirectory, LocalPaymentInitiator


@dataclass(frozen=True)
class ProcessCheckoutCommand:
    link_id: str
    payment_method: str
    name: str
    phone_number: str
    email: str = ""
    amount: object = None


@dataclass(frozen=True)
class ProcessCheckoutResult:
    session: CheckoutStateMachine
    method_rejected: bool = False

    @property
    def state(self) -> CheckoutState:
        return self.session.state


class ProcessCheckoutUseCase:
    """Run one submission through a fresh checkout session."""

    @staticmethod
    def execute(
        cmd: ProcessCheckoutCommand,
        *,
        directory: PaymentLinkDirectoryPort | None = None,
        initiator: PaymentInitiatorPort | None = None,
    ) -> ProcessCheckoutResult:
        session = CheckoutStateMachine(
            link_id=cmd.link_id,
            directory=directory or DjangoLinkDirectory(),
            initiator=initiator or LocalPaymentInitiator(),
        )
        if session.resolve() != CheckoutState.AWAITING_INPUT:
            return ProcessCheckoutResult(session=session)

        if cmd.payment_method:
            try:
                session.select_method(cmd.payment_method)
            except PaymentMethodNotAllowedError:
                session.close()
                return ProcessCheckoutResult(session=session, method_rejected=True)

        session.update_fields(
            name=cmd.name or "",
            phone_number=cmd.phone_number or "",
            email=cmd.email or "",
            amount=cmd.amount,
        )
        session.submit()
        return ProcessCheckoutResult(session=session)
