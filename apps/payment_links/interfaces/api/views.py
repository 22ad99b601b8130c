from __future__ import annotations

from dataclasses import asdict

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.payment_links.application.use_cases.create_payment_link import (
    CreatePaymentLinkCommand,
    CreatePaymentLinkUseCase,
)
from apps.payment_links.application.use_cases.list_payment_links import (
    ListPaymentLinksCommand,
    ListPaymentLinksUseCase,
)
from apps.payment_links.application.use_cases.set_payment_link_enabled import (
    SetPaymentLinkEnabledCommand,
    SetPaymentLinkEnabledUseCase,
)
from apps.payment_links.domain.errors import PaymentLinkNotFoundError
from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import LinkStatus
from apps.payment_links.infrastructure.repositories import DjangoPaymentLinkRepository
from apps.payment_links.interfaces.api.serializers import (
    CreatePaymentLinkSerializer,
    SetEnabledSerializer,
    payment_link_payload,
)


def _success(*, data: dict, http_status: int = status.HTTP_200_OK) -> Response:
    return Response({"success": True, "data": data}, status=http_status)


def _error(*, message: str, fields: dict | None = None, http_status: int = status.HTTP_400_BAD_REQUEST) -> Response:
    payload: dict = {"success": False, "data": {}, "error": {"message": message}}
    if fields:
        payload["error"]["fields"] = fields
    return Response(payload, status=http_status)


class PaymentLinkListCreateAPI(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        raw_status = (request.query_params.get("status") or "").strip().lower()
        status_filter = None
        if raw_status:
            try:
                status_filter = LinkStatus(raw_status)
            except ValueError:
                return _error(message="Unknown status filter.", fields={"status": raw_status})

        views = ListPaymentLinksUseCase.execute(
            ListPaymentLinksCommand(merchant_id=request.user.id, status=status_filter)
        )
        return _success(data={"paymentLinks": [payment_link_payload(v.link, status=v.status) for v in views]})

    def post(self, request):
        serializer = CreatePaymentLinkSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(
                message="Validation failed",
                fields={k: str(v[0]) if isinstance(v, list) else str(v) for k, v in serializer.errors.items()},
            )

        result = CreatePaymentLinkUseCase.execute(
            CreatePaymentLinkCommand(merchant_id=request.user.id, form=serializer.to_form())
        )
        if not result.ok:
            return _error(message="Validation failed", fields=result.errors)

        status_now = LinkStatusResolver.for_record(result.link, now=timezone.now())
        return _success(
            data={"paymentLink": payment_link_payload(result.link, status=status_now)},
            http_status=status.HTTP_201_CREATED,
        )


class PaymentLinkDetailAPI(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, link_id: str):
        try:
            record = DjangoPaymentLinkRepository().get_by_link_id(link_id)
        except PaymentLinkNotFoundError as exc:
            return _error(message=str(exc), http_status=status.HTTP_404_NOT_FOUND)
        if record.merchant_id != request.user.id:
            return _error(message=str(PaymentLinkNotFoundError()), http_status=status.HTTP_404_NOT_FOUND)
        status_now = LinkStatusResolver.for_record(record, now=timezone.now())
        return _success(data={"paymentLink": payment_link_payload(record, status=status_now)})

    def patch(self, request, link_id: str):
        serializer = SetEnabledSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(message="Invalid input.", fields={"enabled": "Must be true or false."})
        try:
            record = SetPaymentLinkEnabledUseCase.execute(
                SetPaymentLinkEnabledCommand(
                    merchant_id=request.user.id,
                    link_id=link_id,
                    enabled=serializer.validated_data["enabled"],
                )
            )
        except PaymentLinkNotFoundError as exc:
            return _error(message=str(exc), http_status=status.HTTP_404_NOT_FOUND)
        status_now = LinkStatusResolver.for_record(record, now=timezone.now())
        return _success(data={"paymentLink": payment_link_payload(record, status=status_now)})


class PaymentLinkStatsAPI(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        views = ListPaymentLinksUseCase.execute(ListPaymentLinksCommand(merchant_id=request.user.id))
        return _success(data={"stats": asdict(ListPaymentLinksUseCase.stats(views))})
