from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.checkout.application.use_cases.process_checkout import ProcessCheckoutCommand, ProcessCheckoutUseCase
from apps.checkout.domain.state_machine import REASON_NOT_FOUND, UNAVAILABLE_MESSAGES
from apps.checkout.domain.types import CheckoutState
from apps.checkout.interfaces.api.serializers import ProcessCheckoutSerializer, public_link_payload
from apps.payment_links.application.use_cases.get_public_payment_link import (
    GetPublicPaymentLinkCommand,
    GetPublicPaymentLinkUseCase,
)

logger = logging.getLogger("payssd.checkout")


def _success(*, data: dict, http_status: int = status.HTTP_200_OK) -> Response:
    return Response({"success": True, "data": data}, status=http_status)


def _error(
    *,
    message: str,
    fields: dict | None = None,
    reason: str = "",
    data: dict | None = None,
    http_status: int = status.HTTP_400_BAD_REQUEST,
) -> Response:
    payload: dict = {"success": False, "data": data or {}, "error": {"message": message}}
    if fields:
        payload["error"]["fields"] = fields
    if reason:
        payload["error"]["reason"] = reason
    return Response(payload, status=http_status)


def _first_errors(errors) -> dict:
    flat: dict = {}
    for key, value in errors.items():
        if isinstance(value, dict):
            flat.update(_first_errors(value))
        else:
            flat[key] = str(value[0]) if value else ""
    return flat


def _unavailable(reason: str) -> Response:
    return _error(
        message=UNAVAILABLE_MESSAGES.get(reason, UNAVAILABLE_MESSAGES[REASON_NOT_FOUND]),
        reason=reason,
        http_status=status.HTTP_404_NOT_FOUND if reason == REASON_NOT_FOUND else status.HTTP_400_BAD_REQUEST,
    )


class PublicPaymentLinkAPI(APIView):
    permission_classes = [AllowAny]

    def get(self, request, link_id: str):
        viewer_id = request.user.id if request.user.is_authenticated else None
        result = GetPublicPaymentLinkUseCase.execute(GetPublicPaymentLinkCommand(link_id=link_id, viewer_id=viewer_id))
        if not result.available:
            return _unavailable(result.reason)
        return _success(data={"paymentLink": public_link_payload(result.link)})


class ProcessCheckoutAPI(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "checkout"

    def post(self, request, link_id: str):
        serializer = ProcessCheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(message="Invalid input.", fields=_first_errors(serializer.errors))

        data = serializer.validated_data
        customer = data["customer"]
        result = ProcessCheckoutUseCase.execute(
            ProcessCheckoutCommand(
                link_id=link_id,
                payment_method=data.get("paymentMethod") or "",
                name=customer.get("name", ""),
                phone_number=customer.get("phoneNumber", ""),
                email=customer.get("email", ""),
                amount=data.get("amount"),
            )
        )
        session = result.session

        if session.state == CheckoutState.UNAVAILABLE:
            return _unavailable(session.unavailable_reason)
        if result.method_rejected:
            return _error(
                message="Payment method not allowed for this link",
                fields={"paymentMethod": "Payment method not allowed for this link"},
            )
        if session.state == CheckoutState.AWAITING_INPUT:
            return _error(message="Validation failed", fields=session.field_errors)

        outcome = session.outcome
        transaction = {
            "id": outcome.transaction_id,
            "status": outcome.status or session.state.value,
            "paymentMethod": session.selected_method.value,
            "instructions": outcome.instructions,
        }
        if session.state == CheckoutState.FAILED:
            return _error(message=session.message, data={"transaction": transaction})

        return _success(
            data={
                "state": session.state.value,
                "message": session.message,
                "transaction": transaction,
                "redirectUrl": session.link.redirect_url or None,
            }
        )
