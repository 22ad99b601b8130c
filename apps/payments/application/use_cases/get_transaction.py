from __future__ import annotations

from dataclasses import dataclass

from apps.payments.domain.errors import TransactionNotFoundError
from apps.payments.models import Transaction


@dataclass(frozen=True)
class GetTransactionCommand:
    transaction_id: str


class GetTransactionUseCase:
    @staticmethod
    def execute(cmd: GetTransactionCommand) -> Transaction:
        txn = (
            Transaction.objects.select_related("payment_link")
            .filter(transaction_id=(cmd.transaction_id or "").strip())
            .first()
        )
        if not txn:
            raise TransactionNotFoundError()
        return txn
