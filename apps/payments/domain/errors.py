from __future__ import annotations


class PaymentsDomainError(ValueError):
    pass


class UnknownPaymentProviderError(PaymentsDomainError):
    pass


class TransactionNotFoundError(PaymentsDomainError):
    def __init__(self, message: str = "Transaction not found."):
        super().__init__(message)


class MalformedGatewayResponseError(PaymentsDomainError):
    """Provider answered with a payload we cannot interpret."""
