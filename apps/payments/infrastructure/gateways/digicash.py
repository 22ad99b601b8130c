from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time

import httpx
from django.conf import settings

from apps.payments.domain.errors import MalformedGatewayResponseError
from apps.payments.domain.ports import ProviderPaymentRequest, ProviderPaymentResult
from apps.payments.infrastructure.gateways.mtn_momo import _provider_message

logger = logging.getLogger("payssd.payments")


class DigicashGateway:
    """Digicash merchant payments. Requests are HMAC-SHA256 signed over body + timestamp."""

    code = "digicash"
    name = "Digicash"

    def __init__(self, *, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def _config(self, key: str, default: str = "") -> str:
        return str(getattr(settings, key, default) or default)

    def sign(self, body: bytes, timestamp: str) -> str:
        secret = self._config("DIGICASH_API_SECRET").encode("utf-8")
        return hmac.new(secret, body + timestamp.encode("utf-8"), hashlib.sha256).hexdigest()

    def request_payment(self, request: ProviderPaymentRequest) -> ProviderPaymentResult:
        payload = {
            "merchant_id": self._config("DIGICASH_MERCHANT_ID"),
            "amount": str(request.amount),
            "currency": request.currency,
            "reference": request.transaction_id,
            "description": request.description,
            "customer": {
                "name": request.customer_name,
                "phone": request.phone_number,
                "email": request.email or None,
            },
            "return_url": request.return_url or None,
        }
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        timestamp = str(int(time.time() * 1000))
        headers = {
            "Authorization": f"Bearer {self._config('DIGICASH_API_KEY')}",
            "X-Timestamp": timestamp,
            "X-Signature": self.sign(body, timestamp),
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(
                base_url=self._config("DIGICASH_BASE_URL").rstrip("/"),
                timeout=float(getattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECONDS", 20)),
                transport=self._transport,
            ) as client:
                response = client.post("/payments/initiate", content=body, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "digicash_request_rejected",
                extra={"transaction_id": request.transaction_id, "status_code": exc.response.status_code},
            )
            return ProviderPaymentResult(
                success=False,
                response_code=str(exc.response.status_code),
                message=_provider_message(exc.response, "Payment request failed"),
            )
        except httpx.RequestError as exc:
            logger.warning(
                "digicash_request_unreachable", extra={"transaction_id": request.transaction_id, "error": str(exc)}
            )
            return ProviderPaymentResult(success=False, response_code="503", message="Payment provider is unreachable")

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedGatewayResponseError("Digicash response is not JSON.") from exc
        if not isinstance(data, dict) or not data.get("transaction_id"):
            raise MalformedGatewayResponseError("Digicash response has no transaction_id.")

        merchant_code = data.get("merchant_code") or ""
        return ProviderPaymentResult(
            success=True,
            provider_reference=str(data["transaction_id"]),
            response_code=str(response.status_code),
            message="Payment request initiated",
            instructions={
                "message": "Please dial *185# and follow the prompts to complete your Digicash payment",
                "steps": [
                    "Dial *185# on your phone",
                    'Select "Pay Merchant"',
                    f"Enter merchant code: {merchant_code}",
                    f"Enter amount: {request.amount} {request.currency}",
                    "Enter your Digicash PIN to confirm",
                ],
                "paymentCode": data.get("payment_code") or "",
                "merchantCode": merchant_code,
            },
        )
