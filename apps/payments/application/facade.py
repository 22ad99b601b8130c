from __future__ import annotations

from django.conf import settings

from apps.payments.domain.errors import UnknownPaymentProviderError
from apps.payments.domain.ports import PaymentGatewayPort
from apps.payments.infrastructure.gateways.digicash import DigicashGateway
from apps.payments.infrastructure.gateways.mtn_momo import MtnMomoGateway
from apps.payments.infrastructure.gateways.sandbox_gateway import SandboxGateway


class PaymentGatewayFacade:
    _registry: dict[str, PaymentGatewayPort] = {
        MtnMomoGateway.code: MtnMomoGateway(),
        DigicashGateway.code: DigicashGateway(),
        SandboxGateway.code: SandboxGateway(),
    }

    @classmethod
    def get(cls, provider_code: str) -> PaymentGatewayPort:
        key = (provider_code or "").strip().lower()
        if key not in cls._registry:
            raise UnknownPaymentProviderError(f"Unknown payment provider: {provider_code}")
        return cls._registry[key]

    @classmethod
    def for_method(cls, method: str) -> PaymentGatewayPort:
        """Gateway configured for a customer-facing payment method."""
        routing = getattr(settings, "PAYSSD_PAYMENT_PROVIDERS", {}) or {}
        return cls.get(routing.get(method, method))
