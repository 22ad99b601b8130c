from __future__ import annotations

import logging
from uuid import uuid4

import httpx
from django.conf import settings

from apps.payments.domain.errors import MalformedGatewayResponseError
from apps.payments.domain.ports import ProviderPaymentRequest, ProviderPaymentResult

logger = logging.getLogger("payssd.payments")


def _provider_message(response: httpx.Response, default: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return default


class MtnMomoGateway:
    """MTN Mobile Money collection API (token + request-to-pay)."""

    code = "mtn_momo"
    name = "MTN Mobile Money"

    def __init__(self, *, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def _config(self, key: str, default: str = "") -> str:
        return str(getattr(settings, key, default) or default)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._config("MTN_MOMO_BASE_URL").rstrip("/"),
            timeout=float(getattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECONDS", 20)),
            transport=self._transport,
        )

    def _access_token(self, client: httpx.Client) -> str:
        response = client.post(
            "/collection/token/",
            auth=(self._config("MTN_MOMO_API_KEY"), self._config("MTN_MOMO_API_SECRET")),
            headers={
                "Ocp-Apim-Subscription-Key": self._config("MTN_MOMO_SUBSCRIPTION_KEY"),
                "X-Target-Environment": self._config("MTN_MOMO_TARGET_ENVIRONMENT", "sandbox"),
            },
        )
        response.raise_for_status()
        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError) as exc:
            raise MalformedGatewayResponseError("MTN token response is not a JSON object.") from exc
        if not token:
            raise MalformedGatewayResponseError("MTN token response has no access_token.")
        return token

    def request_payment(self, request: ProviderPaymentRequest) -> ProviderPaymentResult:
        reference_id = str(uuid4())
        payload = {
            "amount": str(request.amount),
            "currency": request.currency,
            "externalId": request.transaction_id,
            "payer": {"partyIdType": "MSISDN", "partyId": request.phone_number.lstrip("+")},
            "payerMessage": f"Payment for {request.description}"[:160],
            "payeeNote": f"PaySSD transaction {request.transaction_id}",
        }
        try:
            with self._client() as client:
                token = self._access_token(client)
                response = client.post(
                    "/collection/v1_0/requesttopay",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "X-Reference-Id": reference_id,
                        "X-Target-Environment": self._config("MTN_MOMO_TARGET_ENVIRONMENT", "sandbox"),
                        "Ocp-Apim-Subscription-Key": self._config("MTN_MOMO_SUBSCRIPTION_KEY"),
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "mtn_request_rejected",
                extra={"transaction_id": request.transaction_id, "status_code": exc.response.status_code},
            )
            return ProviderPaymentResult(
                success=False,
                response_code=str(exc.response.status_code),
                message=_provider_message(exc.response, "Payment request failed"),
            )
        except httpx.RequestError as exc:
            logger.warning("mtn_request_unreachable", extra={"transaction_id": request.transaction_id, "error": str(exc)})
            return ProviderPaymentResult(success=False, response_code="503", message="Payment provider is unreachable")

        return ProviderPaymentResult(
            success=True,
            provider_reference=reference_id,
            response_code=str(response.status_code),
            message="Payment request initiated",
            instructions={
                "message": f"Please check your phone {request.phone_number} for MTN Mobile Money payment prompt",
                "steps": [
                    "You will receive an SMS notification",
                    "Enter your MTN Mobile Money PIN when prompted",
                    "Confirm the payment details",
                    "Payment will be processed automatically",
                ],
            },
        )
