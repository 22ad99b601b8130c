from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.payments.application.use_cases.get_transaction import GetTransactionCommand, GetTransactionUseCase
from apps.payments.domain.errors import TransactionNotFoundError


class TransactionStatusAPI(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, transaction_id: str):
        try:
            txn = GetTransactionUseCase.execute(GetTransactionCommand(transaction_id=transaction_id))
        except TransactionNotFoundError as exc:
            return Response(
                {"success": False, "data": {}, "error": {"message": str(exc)}},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(
            {
                "success": True,
                "data": {
                    "id": txn.transaction_id,
                    "status": txn.status,
                    "amount": str(txn.amount),
                    "currency": txn.currency,
                    "description": txn.description,
                    "paymentMethod": txn.method,
                    "linkId": txn.payment_link.link_id,
                    "instructions": txn.instructions,
                    "createdAt": txn.created_at.isoformat(),
                },
            }
        )
