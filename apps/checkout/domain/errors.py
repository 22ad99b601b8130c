from __future__ import annotations


class CheckoutDomainError(ValueError):
    pass


class CheckoutValidationError(CheckoutDomainError):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidCheckoutTransitionError(CheckoutDomainError):
    """Caller asked for a transition the current state does not allow."""


class PaymentMethodNotAllowedError(InvalidCheckoutTransitionError):
    pass


class LinkLookupError(CheckoutDomainError):
    """The link directory could not be reached."""


class PaymentSubmissionError(CheckoutDomainError):
    """The payment initiator could not be reached."""
