from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import LinkStatus
from apps.payment_links.models import PaymentLink
from apps.payments.application.facade import PaymentGatewayFacade
from apps.payments.domain.fees import DEFAULT_FEE_FIXED, DEFAULT_FEE_PERCENT, calculate_platform_fee
from apps.payments.domain.ports import ProviderPaymentRequest
from apps.payments.models import Transaction

logger = logging.getLogger("payssd.payments")


@dataclass(frozen=True)
class InitiatePaymentCommand:
    link_id: str
    payment_method: str
    amount: Decimal
    customer_name: str
    phone_number: str
    email: str = ""


@dataclass(frozen=True)
class InitiatePaymentResult:
    success: bool
    transaction_id: str = ""
    status: str = ""
    message: str = ""
    instructions: dict = field(default_factory=dict)


class InitiatePaymentUseCase:
    """
    Create a transaction for a payment link and hand it to the provider.

    Rejections (missing or unavailable link, disallowed method, provider
    decline) come back as an unsuccessful result. Malformed
    provider responses raise and are left to the caller.
    """

    @staticmethod
    def execute(cmd: InitiatePaymentCommand) -> InitiatePaymentResult:
        link = PaymentLink.objects.filter(link_id=cmd.link_id).first()
        if not link:
            return InitiatePaymentResult(success=False, message="Payment link not found")

        status = LinkStatusResolver.resolve(enabled=link.enabled, expires_at=link.expires_at, now=timezone.now())
        if status != LinkStatus.ACTIVE:
            return InitiatePaymentResult(success=False, message="Payment link is no longer available")
        if cmd.payment_method not in (link.allowed_payment_methods or []):
            return InitiatePaymentResult(success=False, message="Payment method not allowed for this link")

        fee = calculate_platform_fee(
            cmd.amount,
            percent=Decimal(str(getattr(settings, "PAYSSD_PLATFORM_FEE_PERCENT", DEFAULT_FEE_PERCENT))),
            fixed=Decimal(str(getattr(settings, "PAYSSD_PLATFORM_FEE_FIXED", DEFAULT_FEE_FIXED))),
        )
        gateway = PaymentGatewayFacade.for_method(cmd.payment_method)
        txn = Transaction.objects.create(
            payment_link=link,
            method=cmd.payment_method,
            provider_code=gateway.code,
            amount=cmd.amount,
            platform_fee=fee,
            currency=link.currency,
            description=link.description,
            customer_name=cmd.customer_name,
            customer_phone=cmd.phone_number,
            customer_email=cmd.email or "",
        )

        try:
            result = gateway.request_payment(
                ProviderPaymentRequest(
                    transaction_id=txn.transaction_id,
                    amount=txn.amount,
                    currency=txn.currency,
                    description=txn.description,
                    customer_name=txn.customer_name,
                    phone_number=txn.customer_phone,
                    email=txn.customer_email,
                    return_url=link.redirect_url,
                )
            )
        except Exception:
            txn.status = Transaction.STATUS_FAILED
            txn.provider_message = "Payment processing failed"
            txn.save(update_fields=["status", "provider_message", "updated_at"])
            logger.exception(
                "payment_provider_error",
                extra={"transaction_id": txn.transaction_id, "provider_code": gateway.code},
            )
            raise

        txn.status = Transaction.STATUS_PROCESSING if result.success else Transaction.STATUS_FAILED
        txn.provider_reference = result.provider_reference or ""
        txn.provider_message = (result.message or "")[:255]
        txn.instructions = result.instructions or {}
        txn.save(update_fields=["status", "provider_reference", "provider_message", "instructions", "updated_at"])

        logger.info(
            "payment_initiated",
            extra={
                "transaction_id": txn.transaction_id,
                "link_id": link.link_id,
                "provider_code": gateway.code,
                "status": txn.status,
            },
        )
        return InitiatePaymentResult(
            success=result.success,
            transaction_id=txn.transaction_id,
            status=txn.status,
            message=result.message or ("Payment initiated successfully" if result.success else "Payment failed"),
            instructions=txn.instructions,
        )
