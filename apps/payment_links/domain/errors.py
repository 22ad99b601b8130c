from __future__ import annotations


class PaymentLinkDomainError(ValueError):
    pass


class PaymentLinkValidationError(PaymentLinkDomainError):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class AmountInvalidError(PaymentLinkValidationError):
    pass


class ExpiryInvalidError(PaymentLinkValidationError):
    pass


class RedirectUrlInvalidError(PaymentLinkValidationError):
    pass


class PaymentLinkNotFoundError(PaymentLinkDomainError):
    def __init__(self, message: str = "Payment link not found."):
        super().__init__(message)
