from __future__ import annotations

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import patch

import httpx
from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from apps.payment_links.models import PaymentLink
from apps.payments.application.facade import PaymentGatewayFacade
from apps.payments.application.use_cases.initiate_payment import InitiatePaymentCommand, InitiatePaymentUseCase
from apps.payments.domain.errors import MalformedGatewayResponseError, UnknownPaymentProviderError
from apps.payments.domain.fees import calculate_platform_fee
from apps.payments.domain.ports import ProviderPaymentRequest
from apps.payments.infrastructure.gateways.digicash import DigicashGateway
from apps.payments.infrastructure.gateways.mtn_momo import MtnMomoGateway
from apps.payments.infrastructure.gateways.sandbox_gateway import SandboxGateway
from apps.payments.models import Transaction


def _request(**overrides) -> ProviderPaymentRequest:
    values = {
        "transaction_id": "txn_0123456789abcdef",
        "amount": Decimal("500.00"),
        "currency": "SSP",
        "description": "Service fee",
        "customer_name": "Ayen Deng",
        "phone_number": "+211912345678",
    }
    values.update(overrides)
    return ProviderPaymentRequest(**values)


class PlatformFeeTests(SimpleTestCase):
    def test_percent_plus_fixed(self):
        self.assertEqual(calculate_platform_fee(Decimal("500.00")), Decimal("17.50"))
        self.assertEqual(calculate_platform_fee(Decimal("100.10")), Decimal("7.50"))
        self.assertEqual(calculate_platform_fee(Decimal("0.20")), Decimal("5.01"))

    def test_custom_rates(self):
        fee = calculate_platform_fee(Decimal("200.00"), percent=Decimal("1"), fixed=Decimal("0"))
        self.assertEqual(fee, Decimal("2.00"))


class PaymentGatewayFacadeTests(SimpleTestCase):
    @override_settings(PAYSSD_PAYMENT_PROVIDERS={"mtn_momo": "sandbox", "digicash": "digicash"})
    def test_methods_route_through_settings(self):
        self.assertEqual(PaymentGatewayFacade.for_method("mtn_momo").code, "sandbox")
        self.assertEqual(PaymentGatewayFacade.for_method("digicash").code, "digicash")

    def test_unknown_provider(self):
        with self.assertRaises(UnknownPaymentProviderError):
            PaymentGatewayFacade.get("paypal")


class SandboxGatewayTests(SimpleTestCase):
    def test_accepts_regular_numbers(self):
        result = SandboxGateway().request_payment(_request())
        self.assertTrue(result.success)
        self.assertTrue(result.provider_reference.startswith("SANDBOX-"))

    def test_declines_reserved_suffix(self):
        result = SandboxGateway().request_payment(_request(phone_number="+211912340000"))
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Customer has insufficient balance")


@override_settings(
    MTN_MOMO_BASE_URL="https://momo.test",
    MTN_MOMO_API_KEY="user",
    MTN_MOMO_API_SECRET="pass",
    MTN_MOMO_SUBSCRIPTION_KEY="sub-key",
)
class MtnMomoGatewayTests(SimpleTestCase):
    def _gateway(self, pay_response: httpx.Response, token_response: httpx.Response | None = None):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/collection/token/":
                return token_response or httpx.Response(200, json={"access_token": "tok-123"})
            return pay_response

        return MtnMomoGateway(transport=httpx.MockTransport(handler)), seen

    def test_request_to_pay(self):
        gateway, seen = self._gateway(httpx.Response(202))
        result = gateway.request_payment(_request())

        self.assertTrue(result.success)
        self.assertEqual(result.response_code, "202")
        self.assertIn("+211912345678", result.instructions["message"])

        pay = seen[1]
        self.assertEqual(pay.url.path, "/collection/v1_0/requesttopay")
        self.assertEqual(pay.headers["Authorization"], "Bearer tok-123")
        self.assertEqual(pay.headers["X-Reference-Id"], result.provider_reference)
        body = json.loads(pay.content)
        self.assertEqual(body["payer"], {"partyIdType": "MSISDN", "partyId": "211912345678"})
        self.assertEqual(body["amount"], "500.00")
        self.assertEqual(body["externalId"], "txn_0123456789abcdef")

    def test_provider_rejection(self):
        gateway, _ = self._gateway(httpx.Response(400, json={"message": "Invalid payer"}))
        result = gateway.request_payment(_request())
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Invalid payer")
        self.assertEqual(result.response_code, "400")

    def test_unreachable_provider(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = MtnMomoGateway(transport=httpx.MockTransport(handler)).request_payment(_request())
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Payment provider is unreachable")

    def test_token_without_access_token_is_malformed(self):
        gateway, _ = self._gateway(httpx.Response(202), token_response=httpx.Response(200, json={}))
        with self.assertRaises(MalformedGatewayResponseError):
            gateway.request_payment(_request())


@override_settings(
    DIGICASH_BASE_URL="https://digicash.test",
    DIGICASH_API_KEY="key",
    DIGICASH_API_SECRET="secret",
    DIGICASH_MERCHANT_ID="M-42",
)
class DigicashGatewayTests(SimpleTestCase):
    def _gateway(self, response: httpx.Response):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return response

        return DigicashGateway(transport=httpx.MockTransport(handler)), seen

    def test_signed_request(self):
        gateway, seen = self._gateway(
            httpx.Response(200, json={"transaction_id": "DC-1", "payment_code": "9911", "merchant_code": "4455"})
        )
        result = gateway.request_payment(_request())

        self.assertTrue(result.success)
        self.assertEqual(result.provider_reference, "DC-1")
        self.assertEqual(result.instructions["paymentCode"], "9911")
        self.assertEqual(result.instructions["merchantCode"], "4455")

        sent = seen[0]
        self.assertEqual(sent.url.path, "/payments/initiate")
        expected = hmac.new(b"secret", sent.content + sent.headers["X-Timestamp"].encode(), hashlib.sha256).hexdigest()
        self.assertEqual(sent.headers["X-Signature"], expected)
        body = json.loads(sent.content)
        self.assertEqual(body["merchant_id"], "M-42")
        self.assertEqual(body["reference"], "txn_0123456789abcdef")

    def test_response_without_transaction_id_is_malformed(self):
        gateway, _ = self._gateway(httpx.Response(200, json={"status": "ok"}))
        with self.assertRaises(MalformedGatewayResponseError):
            gateway.request_payment(_request())

    def test_non_json_response_is_malformed(self):
        gateway, _ = self._gateway(httpx.Response(200, text="<html>oops</html>"))
        with self.assertRaises(MalformedGatewayResponseError):
            gateway.request_payment(_request())


@override_settings(PAYSSD_PAYMENT_PROVIDERS={"mtn_momo": "sandbox", "digicash": "sandbox"})
class InitiatePaymentTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.merchant = get_user_model().objects.create_user(username="merchant", password="StrongPass12345!")
        self.link = PaymentLink.objects.create(
            merchant=self.merchant,
            title="Invoice #1",
            description="Service fee",
            amount=Decimal("500.00"),
            currency="USD",
            allowed_payment_methods=["mtn_momo"],
        )

    def _command(self, **overrides) -> InitiatePaymentCommand:
        values = {
            "link_id": self.link.link_id,
            "payment_method": "mtn_momo",
            "amount": Decimal("500.00"),
            "customer_name": "Ayen Deng",
            "phone_number": "+211912345678",
        }
        values.update(overrides)
        return InitiatePaymentCommand(**values)

    def test_creates_processing_transaction(self):
        result = InitiatePaymentUseCase.execute(self._command())
        self.assertTrue(result.success)
        txn = Transaction.objects.get(transaction_id=result.transaction_id)
        self.assertEqual(txn.status, Transaction.STATUS_PROCESSING)
        self.assertEqual(txn.currency, "USD")
        self.assertEqual(txn.description, "Service fee")
        self.assertTrue(txn.provider_reference.startswith("SANDBOX-"))

    def test_unknown_link_is_a_rejection(self):
        result = InitiatePaymentUseCase.execute(self._command(link_id="missing"))
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Payment link not found")
        self.assertFalse(Transaction.objects.exists())

    def test_disabled_link_and_disallowed_method_create_nothing(self):
        result = InitiatePaymentUseCase.execute(self._command(payment_method="digicash"))
        self.assertEqual(result.message, "Payment method not allowed for this link")

        PaymentLink.objects.filter(pk=self.link.pk).update(enabled=False)
        result = InitiatePaymentUseCase.execute(self._command())
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Payment link is no longer available")
        self.assertFalse(Transaction.objects.exists())

    def test_gateway_failure_marks_transaction_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        broken = DigicashGateway(transport=httpx.MockTransport(handler))
        with override_settings(PAYSSD_PAYMENT_PROVIDERS={"mtn_momo": "digicash"}, DIGICASH_BASE_URL="https://digicash.test"):
            with patch.dict(PaymentGatewayFacade._registry, {"digicash": broken}):
                with self.assertRaises(MalformedGatewayResponseError):
                    InitiatePaymentUseCase.execute(self._command())

        txn = Transaction.objects.get()
        self.assertEqual(txn.status, Transaction.STATUS_FAILED)


class TransactionStatusApiTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        merchant = get_user_model().objects.create_user(username="merchant", password="StrongPass12345!")
        link = PaymentLink.objects.create(
            merchant=merchant,
            title="Invoice #1",
            description="Service fee",
            amount=Decimal("500.00"),
            allowed_payment_methods=["mtn_momo"],
        )
        self.txn = Transaction.objects.create(
            payment_link=link,
            method="mtn_momo",
            provider_code="sandbox",
            status=Transaction.STATUS_PROCESSING,
            amount=Decimal("500.00"),
            platform_fee=Decimal("17.50"),
            currency="SSP",
            description="Service fee",
            customer_name="Ayen Deng",
            customer_phone="+211912345678",
        )
        self.client = APIClient()

    def test_status_lookup(self):
        response = self.client.get(f"/api/payments/transactions/{self.txn.transaction_id}/")
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["status"], "processing")
        self.assertEqual(data["amount"], "500.00")
        self.assertEqual(data["paymentMethod"], "mtn_momo")
        self.assertEqual(data["linkId"], self.txn.payment_link.link_id)

    def test_unknown_transaction(self):
        response = self.client.get("/api/payments/transactions/txn_missing/")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])
