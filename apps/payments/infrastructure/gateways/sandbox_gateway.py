from __future__ import annotations

from uuid import uuid4

from apps.payments.domain.ports import ProviderPaymentRequest, ProviderPaymentResult

# Phone numbers ending with this suffix are declined, so rejections can be exercised end to end.
DECLINED_PHONE_SUFFIX = "0000"


class SandboxGateway:
    code = "sandbox"
    name = "Sandbox"

    def request_payment(self, request: ProviderPaymentRequest) -> ProviderPaymentResult:
        if request.phone_number.endswith(DECLINED_PHONE_SUFFIX):
            return ProviderPaymentResult(
                success=False,
                response_code="402",
                message="Customer has insufficient balance",
            )
        reference = f"SANDBOX-{uuid4().hex[:12]}"
        return ProviderPaymentResult(
            success=True,
            provider_reference=reference,
            response_code="202",
            message="Payment request sent to customer",
            instructions={"message": f"Sandbox payment request for {request.amount} {request.currency}"},
        )
