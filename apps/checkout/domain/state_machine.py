from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable
from uuid import uuid4

from django.utils import timezone

from apps.payment_links.domain.errors import PaymentLinkNotFoundError
from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import LinkStatus, PaymentLinkRecord, PaymentMethod

from .errors import (
    InvalidCheckoutTransitionError,
    LinkLookupError,
    PaymentMethodNotAllowedError,
    PaymentSubmissionError,
)
from .policies import validate_checkout
from .ports import PaymentInitiatorPort, PaymentLinkDirectoryPort
from .types import TERMINAL_STATES, CheckoutForm, CheckoutState, PaymentOutcome, ValidatedCheckout

logger = logging.getLogger("payssd.checkout")

REASON_NOT_FOUND = "not_found"
REASON_UNREACHABLE = "unreachable"
REASON_NO_METHODS = "no_payment_methods"

UNAVAILABLE_MESSAGES = {
    REASON_NOT_FOUND: "Payment link not found",
    REASON_UNREACHABLE: "Failed to load payment link",
    REASON_NO_METHODS: "This payment link cannot accept payments",
    LinkStatus.EXPIRED.value: "This payment link has expired",
    LinkStatus.DISABLED.value: "This payment link is no longer active",
}

_TRANSITIONS: dict[CheckoutState, frozenset[CheckoutState]] = {
    CheckoutState.RESOLVING: frozenset({CheckoutState.AWAITING_INPUT, CheckoutState.UNAVAILABLE}),
    CheckoutState.AWAITING_INPUT: frozenset({CheckoutState.SUBMITTING}),
    CheckoutState.SUBMITTING: frozenset({CheckoutState.PENDING, CheckoutState.SUCCEEDED, CheckoutState.FAILED}),
    CheckoutState.FAILED: frozenset({CheckoutState.AWAITING_INPUT}),
    CheckoutState.PENDING: frozenset(),
    CheckoutState.SUCCEEDED: frozenset(),
    CheckoutState.UNAVAILABLE: frozenset(),
}

_FORM_FIELD_KEYS = {
    "name": "name",
    "phone_number": "phoneNumber",
    "email": "email",
    "amount": "amount",
}


@dataclass(frozen=True)
class Ticket:
    """Identifies one in-flight collaborator call of one session."""

    session_id: str
    sequence: int
    state: CheckoutState


class CheckoutStateMachine:
    """
    Customer-facing checkout for a single payment link.

    Resolving -> AwaitingInput -> Submitting -> Pending | Succeeded | Failed,
    with Unavailable as the terminal outcome of a failed resolution and
    Failed -> AwaitingInput as the only way back.

    Each collaborator call is split into begin_*/complete_* around a Ticket.
    A completion is applied only while the ticket is the session's current
    in-flight call and the session has not been closed, so late results
    never land on a torn-down or superseded session. resolve() and submit()
    run both halves in one go for synchronous callers.
    """

    def __init__(
        self,
        *,
        link_id: str,
        directory: PaymentLinkDirectoryPort,
        initiator: PaymentInitiatorPort,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_id = uuid4().hex
        self.link_id = link_id
        self._directory = directory
        self._initiator = initiator
        self._clock = clock or timezone.now
        self._state = CheckoutState.RESOLVING
        self._sequence = 0
        self._in_flight: Ticket | None = None
        self._closed = False
        self._validated: ValidatedCheckout | None = None

        self.link: PaymentLinkRecord | None = None
        self.form = CheckoutForm()
        self.selected_method: PaymentMethod | None = None
        self.field_errors: dict[str, str] = {}
        self.unavailable_reason = ""
        self.message = ""
        self.outcome: PaymentOutcome | None = None

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def allowed_methods(self) -> tuple[PaymentMethod, ...]:
        return self.link.allowed_payment_methods if self.link else ()

    @property
    def transaction_id(self) -> str:
        return self.outcome.transaction_id if self.outcome else ""

    def close(self) -> None:
        """Discard the session; results of calls still in flight are dropped."""
        self._closed = True
        self._in_flight = None

    def _transition(self, target: CheckoutState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidCheckoutTransitionError(f"Cannot move checkout from {self._state} to {target}.")
        logger.debug(
            "checkout_transition",
            extra={"session_id": self.session_id, "link_id": self.link_id, "from": self._state.value, "to": target.value},
        )
        self._state = target

    def _issue_ticket(self) -> Ticket:
        self._sequence += 1
        self._in_flight = Ticket(session_id=self.session_id, sequence=self._sequence, state=self._state)
        return self._in_flight

    def _accepts(self, ticket: Ticket) -> bool:
        live = (
            not self._closed
            and self._in_flight is not None
            and ticket == self._in_flight
            and ticket.state == self._state
        )
        if not live:
            logger.info(
                "checkout_stale_result_dropped",
                extra={"session_id": self.session_id, "ticket_session_id": ticket.session_id, "sequence": ticket.sequence},
            )
        return live

    # Resolving

    def begin_resolve(self) -> Ticket | None:
        if self._closed or self._state != CheckoutState.RESOLVING or self._in_flight is not None:
            return None
        return self._issue_ticket()

    def complete_resolve(
        self,
        ticket: Ticket,
        *,
        link: PaymentLinkRecord | None = None,
        error: Exception | None = None,
    ) -> bool:
        if not self._accepts(ticket):
            return False
        self._in_flight = None

        if error is not None or link is None:
            reason = REASON_NOT_FOUND if error is None or isinstance(error, PaymentLinkNotFoundError) else REASON_UNREACHABLE
            self._become_unavailable(reason)
            return True

        status = LinkStatusResolver.for_record(link, now=self._clock())
        if status != LinkStatus.ACTIVE:
            self.link = link
            self._become_unavailable(status.value)
            return True
        if not link.allowed_payment_methods:
            self.link = link
            self._become_unavailable(REASON_NO_METHODS)
            return True

        self.link = link
        self.selected_method = link.allowed_payment_methods[0]
        self._transition(CheckoutState.AWAITING_INPUT)
        return True

    def _become_unavailable(self, reason: str) -> None:
        self.unavailable_reason = reason
        self.message = UNAVAILABLE_MESSAGES.get(reason, UNAVAILABLE_MESSAGES[REASON_NOT_FOUND])
        self._transition(CheckoutState.UNAVAILABLE)
        logger.info("checkout_link_unavailable", extra={"link_id": self.link_id, "reason": reason})

    def resolve(self) -> CheckoutState:
        ticket = self.begin_resolve()
        if ticket is None:
            return self._state
        try:
            record = self._directory.fetch_payment_link(self.link_id)
        except (PaymentLinkNotFoundError, LinkLookupError) as exc:
            self.complete_resolve(ticket, error=exc)
        else:
            self.complete_resolve(ticket, link=record)
        return self._state

    # Awaiting input

    def _ensure_editable(self) -> None:
        if self._closed:
            raise InvalidCheckoutTransitionError("Checkout session is closed.")
        if self._state == CheckoutState.FAILED:
            self._transition(CheckoutState.AWAITING_INPUT)
        elif self._state != CheckoutState.AWAITING_INPUT:
            raise InvalidCheckoutTransitionError(f"Checkout cannot be edited while {self._state}.")

    def update_fields(self, **changes) -> None:
        unknown = set(changes) - set(_FORM_FIELD_KEYS)
        if unknown:
            raise TypeError(f"Unknown checkout fields: {', '.join(sorted(unknown))}")
        self._ensure_editable()
        self.form = replace(self.form, **changes)
        for name in changes:
            self.field_errors.pop(_FORM_FIELD_KEYS[name], None)

    def select_method(self, method: str) -> None:
        try:
            chosen = PaymentMethod((method or "").strip().lower())
        except ValueError as exc:
            raise PaymentMethodNotAllowedError(f"Unknown payment method: {method}") from exc
        if chosen not in self.allowed_methods:
            raise PaymentMethodNotAllowedError(f"Payment method {chosen} is not allowed for this link.")
        self._ensure_editable()
        self.selected_method = chosen

    def retry(self) -> None:
        if self._closed or self._state != CheckoutState.FAILED:
            raise InvalidCheckoutTransitionError(f"Nothing to retry while {self._state}.")
        self._transition(CheckoutState.AWAITING_INPUT)

    # Submitting

    def begin_submit(self) -> Ticket | None:
        """
        Validate and enter Submitting. Returns None when the submission is
        ignored (already submitting, terminal, closed) or rejected by
        validation, in which case field_errors explains why.
        """
        if self._closed or self._state not in (CheckoutState.AWAITING_INPUT, CheckoutState.FAILED):
            return None
        if self._state == CheckoutState.FAILED:
            self._transition(CheckoutState.AWAITING_INPUT)

        validated = validate_checkout(
            self.form,
            collect_customer_info=self.link.collect_customer_info,
            amount_policy=self.link.amount_policy,
        )
        if not validated.ok:
            self.field_errors = dict(validated.errors)
            return None

        self._validated = validated.value
        self.field_errors = {}
        self.message = ""
        self.outcome = None
        self._transition(CheckoutState.SUBMITTING)
        return self._issue_ticket()

    def complete_submit(
        self,
        ticket: Ticket,
        *,
        outcome: PaymentOutcome | None = None,
        error: Exception | None = None,
    ) -> bool:
        if not self._accepts(ticket):
            return False
        self._in_flight = None

        if error is not None or outcome is None:
            self.outcome = PaymentOutcome(success=False, message=str(error or "") or "Payment processing failed")
        else:
            self.outcome = outcome

        if self.outcome.success:
            self.message = self.outcome.message
            target = CheckoutState.SUCCEEDED if self.outcome.status == "succeeded" else CheckoutState.PENDING
            self._transition(target)
        else:
            self.message = self.outcome.message or "Payment failed"
            self._transition(CheckoutState.FAILED)
        logger.info(
            "checkout_submitted",
            extra={
                "session_id": self.session_id,
                "link_id": self.link_id,
                "transaction_id": self.outcome.transaction_id,
                "state": self._state.value,
            },
        )
        return True

    def submit(self) -> CheckoutState:
        ticket = self.begin_submit()
        if ticket is None:
            return self._state
        validated = self._validated
        try:
            outcome = self._initiator.initiate_payment(
                link_id=self.link.link_id,
                payment_method=self.selected_method.value,
                customer=validated.customer,
                amount=validated.amount,
            )
        except PaymentSubmissionError as exc:
            self.complete_submit(ticket, error=exc)
        except Exception:
            self.close()
            raise
        else:
            self.complete_submit(ticket, outcome=outcome)
        return self._state
