from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from apps.checkout.application.use_cases.process_checkout import ProcessCheckoutCommand, ProcessCheckoutUseCase
from apps.checkout.domain.errors import (
    CheckoutValidationError,
    InvalidCheckoutTransitionError,
    LinkLookupError,
    PaymentMethodNotAllowedError,
    PaymentSubmissionError,
)
from apps.checkout.domain.policies import PHONE_FORMAT_MESSAGE, validate_checkout, validate_phone
from apps.checkout.domain.state_machine import CheckoutStateMachine
from apps.checkout.domain.types import CheckoutForm, CheckoutState, PaymentOutcome
from apps.checkout.infrastructure.collaborators import DjangoLinkDirectory, LocalPaymentInitiator
from apps.payment_links.domain.errors import PaymentLinkNotFoundError
from apps.payment_links.domain.types import AmountRange, FixedAmount, PaymentLinkRecord, PaymentMethod
from apps.payment_links.models import PaymentLink
from apps.payments.models import Transaction

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=dt_timezone.utc)
VALID_PHONE = "+211912345678"


def make_record(**overrides) -> PaymentLinkRecord:
    values = {
        "id": 1,
        "link_id": "a1b2c3d4e5f60718",
        "reference": "0123456789ab",
        "merchant_id": 1,
        "title": "Invoice #1",
        "description": "Service fee",
        "amount_policy": FixedAmount(amount=Decimal("500.00")),
        "currency": "SSP",
        "expires_at": None,
        "redirect_url": "",
        "notes": "",
        "collect_customer_info": False,
        "allowed_payment_methods": (PaymentMethod.MTN_MOMO, PaymentMethod.DIGICASH),
        "enabled": True,
        "click_count": 0,
        "created_at": NOW - timedelta(days=1),
    }
    values.update(overrides)
    return PaymentLinkRecord(**values)


class FakeDirectory:
    def __init__(self, record: PaymentLinkRecord | None = None, error: Exception | None = None):
        self.record = record
        self.error = error
        self.calls = 0

    def fetch_payment_link(self, link_id: str) -> PaymentLinkRecord:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.record


class FakeInitiator:
    """Replays queued outcomes; queued exceptions are raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def initiate_payment(self, **kwargs) -> PaymentOutcome:
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _accepted(status: str = "processing") -> PaymentOutcome:
    return PaymentOutcome(
        success=True,
        transaction_id="txn_0123456789abcdef",
        status=status,
        message="Payment request sent to customer",
    )


def _declined() -> PaymentOutcome:
    return PaymentOutcome(
        success=False,
        transaction_id="txn_fedcba9876543210",
        status="failed",
        message="Customer has insufficient balance",
    )


class CheckoutValidatorTests(SimpleTestCase):
    def test_phone_numbers(self):
        self.assertEqual(validate_phone(VALID_PHONE), VALID_PHONE)
        self.assertEqual(validate_phone(" +211 912 345 678 "), VALID_PHONE)
        for raw in ("+21191234567", "0912345678", "+2119123456789", "+211", "", "+254912345678"):
            with self.assertRaises(CheckoutValidationError) as ctx:
                validate_phone(raw)
            self.assertEqual(str(ctx.exception), PHONE_FORMAT_MESSAGE, raw)
            self.assertEqual(ctx.exception.field, "phoneNumber")

    def test_email_required_when_link_collects_customer_info(self):
        form = CheckoutForm(name="Ayen", phone_number=VALID_PHONE, email="")
        result = validate_checkout(form, collect_customer_info=True, amount_policy=FixedAmount(Decimal("500.00")))
        self.assertEqual(result.errors, {"email": "Email is required"})

        optional = validate_checkout(form, collect_customer_info=False, amount_policy=FixedAmount(Decimal("500.00")))
        self.assertTrue(optional.ok)

        supplied = CheckoutForm(name="Ayen", phone_number=VALID_PHONE, email="a@b.com")
        result = validate_checkout(supplied, collect_customer_info=True, amount_policy=FixedAmount(Decimal("500.00")))
        self.assertTrue(result.ok)
        self.assertEqual(result.value.customer.email, "a@b.com")

    def test_optional_email_must_still_be_valid(self):
        form = CheckoutForm(name="Ayen", phone_number=VALID_PHONE, email="ayen@")
        result = validate_checkout(form, collect_customer_info=False, amount_policy=FixedAmount(Decimal("5.00")))
        self.assertEqual(result.errors, {"email": "Valid email address required"})

    def test_all_errors_reported_together(self):
        form = CheckoutForm(name=" ", phone_number="+211", amount="2")
        policy = AmountRange(min_amount=Decimal("10.00"), max_amount=None)
        result = validate_checkout(form, collect_customer_info=True, amount_policy=policy)
        self.assertEqual(
            result.errors,
            {
                "name": "Name is required",
                "phoneNumber": PHONE_FORMAT_MESSAGE,
                "email": "Email is required",
                "amount": "Amount must be at least 10.00",
            },
        )

    def test_fixed_link_amount_is_used(self):
        form = CheckoutForm(name="Ayen", phone_number=VALID_PHONE, amount="1")
        result = validate_checkout(form, collect_customer_info=False, amount_policy=FixedAmount(Decimal("500.00")))
        self.assertEqual(result.value.amount, Decimal("500.00"))
        self.assertEqual(result.value.customer.phone_number, VALID_PHONE)


class CheckoutStateMachineTests(SimpleTestCase):
    def _session(self, record=None, *, initiator=None, directory=None, now=NOW) -> CheckoutStateMachine:
        return CheckoutStateMachine(
            link_id="a1b2c3d4e5f60718",
            directory=directory or FakeDirectory(record or make_record()),
            initiator=initiator or FakeInitiator(),
            clock=lambda: now,
        )

    def _fill(self, session: CheckoutStateMachine, **overrides) -> None:
        values = {"name": "Ayen Deng", "phone_number": VALID_PHONE, "email": ""}
        values.update(overrides)
        session.update_fields(**values)

    def test_active_link_awaits_input_with_first_method_selected(self):
        session = self._session(make_record(allowed_payment_methods=(PaymentMethod.DIGICASH,)))
        self.assertEqual(session.resolve(), CheckoutState.AWAITING_INPUT)
        self.assertEqual(session.selected_method, PaymentMethod.DIGICASH)
        self.assertFalse(session.is_terminal)

    def test_unavailable_outcomes(self):
        cases = (
            (FakeDirectory(make_record(expires_at=NOW - timedelta(seconds=1))), "expired", "This payment link has expired"),
            (FakeDirectory(make_record(enabled=False)), "disabled", "This payment link is no longer active"),
            (FakeDirectory(error=PaymentLinkNotFoundError()), "not_found", "Payment link not found"),
            (FakeDirectory(error=LinkLookupError("timeout")), "unreachable", "Failed to load payment link"),
            (FakeDirectory(make_record(allowed_payment_methods=())), "no_payment_methods", "This payment link cannot accept payments"),
        )
        for directory, reason, message in cases:
            session = self._session(directory=directory)
            self.assertEqual(session.resolve(), CheckoutState.UNAVAILABLE, reason)
            self.assertEqual(session.unavailable_reason, reason)
            self.assertEqual(session.message, message)
            self.assertTrue(session.is_terminal)

    def test_unavailable_is_terminal(self):
        directory = FakeDirectory(make_record(enabled=False))
        initiator = FakeInitiator(_accepted())
        session = self._session(directory=directory, initiator=initiator)
        session.resolve()
        self.assertEqual(session.resolve(), CheckoutState.UNAVAILABLE)
        self.assertEqual(directory.calls, 1)
        with self.assertRaises(InvalidCheckoutTransitionError):
            self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.UNAVAILABLE)
        self.assertEqual(initiator.calls, [])

    def test_select_method_outside_allowed_set_raises(self):
        session = self._session(make_record(allowed_payment_methods=(PaymentMethod.MTN_MOMO,)))
        session.resolve()
        with self.assertRaises(PaymentMethodNotAllowedError):
            session.select_method("digicash")
        with self.assertRaises(PaymentMethodNotAllowedError):
            session.select_method("paypal")
        self.assertEqual(session.selected_method, PaymentMethod.MTN_MOMO)
        self.assertEqual(session.state, CheckoutState.AWAITING_INPUT)

    def test_invalid_input_stays_awaiting_input(self):
        initiator = FakeInitiator()
        session = self._session(initiator=initiator)
        session.resolve()
        self._fill(session, phone_number="0912345678")
        self.assertEqual(session.submit(), CheckoutState.AWAITING_INPUT)
        self.assertEqual(session.field_errors, {"phoneNumber": PHONE_FORMAT_MESSAGE})
        self.assertEqual(initiator.calls, [])

        session.update_fields(phone_number=VALID_PHONE)
        self.assertEqual(session.field_errors, {})

    def test_email_required_blocks_submission(self):
        initiator = FakeInitiator()
        session = self._session(make_record(collect_customer_info=True), initiator=initiator)
        session.resolve()
        self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.AWAITING_INPUT)
        self.assertEqual(session.field_errors, {"email": "Email is required"})
        self.assertEqual(initiator.calls, [])

    def test_accepted_submission_is_pending(self):
        initiator = FakeInitiator(_accepted())
        session = self._session(initiator=initiator)
        session.resolve()
        self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.PENDING)
        self.assertEqual(session.transaction_id, "txn_0123456789abcdef")
        self.assertEqual(
            initiator.calls[0]["payment_method"],
            "mtn_momo",
        )
        self.assertEqual(initiator.calls[0]["amount"], Decimal("500.00"))

        self.assertEqual(session.submit(), CheckoutState.PENDING)
        self.assertEqual(len(initiator.calls), 1)

    def test_confirmed_submission_is_succeeded(self):
        session = self._session(initiator=FakeInitiator(_accepted(status="succeeded")))
        session.resolve()
        self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.SUCCEEDED)

    def test_declined_then_resubmitted(self):
        initiator = FakeInitiator(_declined(), _accepted(status="succeeded"))
        session = self._session(initiator=initiator)
        session.resolve()
        self._fill(session)

        self.assertEqual(session.submit(), CheckoutState.FAILED)
        self.assertEqual(session.message, "Customer has insufficient balance")
        self.assertFalse(session.is_terminal)

        self.assertEqual(session.submit(), CheckoutState.SUCCEEDED)
        self.assertEqual(len(initiator.calls), 2)
        self.assertEqual(initiator.calls[0]["customer"], initiator.calls[1]["customer"])
        self.assertEqual(session.form.name, "Ayen Deng")

    def test_editing_after_failure_returns_to_awaiting_input(self):
        session = self._session(initiator=FakeInitiator(_declined()))
        session.resolve()
        self._fill(session)
        session.submit()
        session.update_fields(phone_number="+211922222222")
        self.assertEqual(session.state, CheckoutState.AWAITING_INPUT)

    def test_retry_only_from_failed(self):
        session = self._session()
        session.resolve()
        with self.assertRaises(InvalidCheckoutTransitionError):
            session.retry()

    def test_submission_error_fails_the_attempt(self):
        session = self._session(initiator=FakeInitiator(PaymentSubmissionError("Network error occurred")))
        session.resolve()
        self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.FAILED)
        self.assertEqual(session.message, "Network error occurred")

    def test_unexpected_error_closes_session_and_propagates(self):
        session = self._session(initiator=FakeInitiator(RuntimeError("boom")))
        session.resolve()
        self._fill(session)
        with self.assertRaises(RuntimeError):
            session.submit()
        self.assertTrue(session.closed)
        self.assertEqual(session.state, CheckoutState.SUBMITTING)

    def test_second_submit_while_submitting_is_ignored(self):
        session = self._session()
        session.resolve()
        self._fill(session)
        ticket = session.begin_submit()
        self.assertIsNotNone(ticket)
        self.assertEqual(session.state, CheckoutState.SUBMITTING)
        self.assertIsNone(session.begin_submit())

        self.assertTrue(session.complete_submit(ticket, outcome=_accepted()))
        self.assertEqual(session.state, CheckoutState.PENDING)

    def test_late_resolution_after_close_is_dropped(self):
        session = self._session()
        ticket = session.begin_resolve()
        session.close()
        self.assertFalse(session.complete_resolve(ticket, link=make_record()))
        self.assertEqual(session.state, CheckoutState.RESOLVING)
        self.assertIsNone(session.link)

    def test_late_submission_after_close_is_dropped(self):
        session = self._session()
        session.resolve()
        self._fill(session)
        ticket = session.begin_submit()
        session.close()
        self.assertFalse(session.complete_submit(ticket, outcome=_accepted()))
        self.assertEqual(session.state, CheckoutState.SUBMITTING)
        self.assertIsNone(session.outcome)

    def test_ticket_from_another_session_is_dropped(self):
        first = self._session()
        second = self._session()
        first_ticket = first.begin_resolve()
        second.begin_resolve()
        self.assertFalse(second.complete_resolve(first_ticket, link=make_record()))
        self.assertEqual(second.state, CheckoutState.RESOLVING)
        self.assertTrue(first.complete_resolve(first_ticket, link=make_record()))

    def test_ticket_is_single_use(self):
        session = self._session()
        ticket = session.begin_resolve()
        self.assertTrue(session.complete_resolve(ticket, link=make_record()))
        self.assertFalse(session.complete_resolve(ticket, link=make_record(enabled=False)))
        self.assertEqual(session.state, CheckoutState.AWAITING_INPUT)

    def test_closed_session_rejects_edits(self):
        session = self._session()
        session.resolve()
        self._fill(session)
        session.close()
        with self.assertRaises(InvalidCheckoutTransitionError):
            session.update_fields(name="Someone Else")
        with self.assertRaises(InvalidCheckoutTransitionError):
            session.select_method("digicash")
        with self.assertRaises(InvalidCheckoutTransitionError):
            session.retry()
        self.assertEqual(session.form.name, "Ayen Deng")
        self.assertEqual(session.selected_method, PaymentMethod.MTN_MOMO)

    def test_closed_session_ignores_new_calls(self):
        directory = FakeDirectory(make_record())
        session = self._session(directory=directory)
        session.close()
        self.assertEqual(session.resolve(), CheckoutState.RESOLVING)
        self.assertEqual(directory.calls, 0)

    def test_range_link_requires_customer_amount(self):
        record = make_record(amount_policy=AmountRange(min_amount=Decimal("10.00"), max_amount=Decimal("100.00")))
        initiator = FakeInitiator(_accepted())
        session = self._session(record, initiator=initiator)
        session.resolve()
        self._fill(session)
        self.assertEqual(session.submit(), CheckoutState.AWAITING_INPUT)
        self.assertEqual(session.field_errors, {"amount": "Amount is required"})

        session.update_fields(amount="25.50")
        self.assertEqual(session.submit(), CheckoutState.PENDING)
        self.assertEqual(initiator.calls[0]["amount"], Decimal("25.50"))


@override_settings(PAYSSD_PAYMENT_PROVIDERS={"mtn_momo": "sandbox", "digicash": "sandbox"})
class CheckoutApiTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        cache.clear()
        self.client = APIClient()
        self.merchant = get_user_model().objects.create_user(username="merchant", password="StrongPass12345!")
        self.link = PaymentLink.objects.create(
            merchant=self.merchant,
            title="Invoice #1",
            description="Service fee",
            amount=Decimal("500.00"),
            allowed_payment_methods=["mtn_momo", "digicash"],
            redirect_url="https://shop.example.com/thanks",
        )

    def _process(self, link_id: str | None = None, **overrides):
        payload = {
            "paymentMethod": "mtn_momo",
            "customer": {"name": "Ayen Deng", "phoneNumber": VALID_PHONE, "email": ""},
        }
        payload.update(overrides)
        return self.client.post(f"/api/pay/{link_id or self.link.link_id}/process/", data=payload, format="json")

    def test_public_link_counts_click(self):
        response = self.client.get(f"/api/pay/{self.link.link_id}/")
        self.assertEqual(response.status_code, 200)
        link = response.json()["data"]["paymentLink"]
        self.assertEqual(link["amount"], "500.00")
        self.assertEqual(link["allowedPaymentMethods"], ["mtn_momo", "digicash"])
        self.link.refresh_from_db()
        self.assertEqual(self.link.click_count, 1)

    def test_public_link_names_the_merchant(self):
        response = self.client.get(f"/api/pay/{self.link.link_id}/")
        self.assertEqual(response.json()["data"]["paymentLink"]["merchant"], {"businessName": "merchant"})

        self.merchant.first_name = "Juba"
        self.merchant.last_name = "Traders"
        self.merchant.save()
        response = self.client.get(f"/api/pay/{self.link.link_id}/")
        self.assertEqual(response.json()["data"]["paymentLink"]["merchant"]["businessName"], "Juba Traders")

    def test_owner_views_are_not_counted(self):
        owner = APIClient()
        owner.force_authenticate(user=self.merchant)
        response = owner.get(f"/api/pay/{self.link.link_id}/")
        self.assertEqual(response.status_code, 200)
        self.link.refresh_from_db()
        self.assertEqual(self.link.click_count, 0)

    def test_public_link_unavailable(self):
        PaymentLink.objects.filter(pk=self.link.pk).update(enabled=False)
        response = self.client.get(f"/api/pay/{self.link.link_id}/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["reason"], "disabled")
        self.link.refresh_from_db()
        self.assertEqual(self.link.click_count, 0)

        missing = self.client.get("/api/pay/doesnotexist0000/")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"]["reason"], "not_found")

    def test_process_checkout_creates_transaction(self):
        response = self._process()
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["state"], "pending")
        self.assertEqual(data["redirectUrl"], "https://shop.example.com/thanks")
        self.assertEqual(data["transaction"]["paymentMethod"], "mtn_momo")

        txn = Transaction.objects.get(transaction_id=data["transaction"]["id"])
        self.assertTrue(txn.transaction_id.startswith("txn_"))
        self.assertEqual(txn.status, Transaction.STATUS_PROCESSING)
        self.assertEqual(txn.provider_code, "sandbox")
        self.assertEqual(txn.amount, Decimal("500.00"))
        self.assertEqual(txn.platform_fee, Decimal("17.50"))
        self.assertEqual(txn.customer_phone, VALID_PHONE)

    def test_declined_payment(self):
        response = self._process(customer={"name": "Ayen Deng", "phoneNumber": "+211912340000"})
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["error"]["message"], "Customer has insufficient balance")
        self.assertEqual(payload["data"]["transaction"]["status"], Transaction.STATUS_FAILED)
        self.assertEqual(Transaction.objects.get().status, Transaction.STATUS_FAILED)

    def test_validation_errors(self):
        response = self._process(customer={"name": "", "phoneNumber": "0912345678"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["error"]["fields"],
            {"name": "Name is required", "phoneNumber": PHONE_FORMAT_MESSAGE},
        )
        self.assertFalse(Transaction.objects.exists())

    def test_method_not_allowed(self):
        PaymentLink.objects.filter(pk=self.link.pk).update(allowed_payment_methods=["mtn_momo"])
        response = self._process(paymentMethod="digicash")
        self.assertEqual(response.status_code, 400)
        self.assertIn("paymentMethod", response.json()["error"]["fields"])
        self.assertFalse(Transaction.objects.exists())

    def test_expired_link_cannot_be_paid(self):
        PaymentLink.objects.filter(pk=self.link.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        response = self._process()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["reason"], "expired")
        self.assertFalse(Transaction.objects.exists())

    def test_link_deleted_before_submission_fails_the_attempt(self):
        session = CheckoutStateMachine(
            link_id=self.link.link_id,
            directory=DjangoLinkDirectory(),
            initiator=LocalPaymentInitiator(),
        )
        self.assertEqual(session.resolve(), CheckoutState.AWAITING_INPUT)
        session.update_fields(name="Ayen Deng", phone_number=VALID_PHONE)
        PaymentLink.objects.filter(pk=self.link.pk).delete()

        self.assertEqual(session.submit(), CheckoutState.FAILED)
        self.assertEqual(session.message, "Payment link not found")
        self.assertFalse(session.closed)
        self.assertFalse(Transaction.objects.exists())

    def test_use_case_with_custom_amount(self):
        link = PaymentLink.objects.create(
            merchant=self.merchant,
            title="Donation",
            description="Any amount",
            amount_kind=PaymentLink.AMOUNT_RANGE,
            min_amount=Decimal("10.00"),
            allowed_payment_methods=["digicash"],
        )
        result = ProcessCheckoutUseCase.execute(
            ProcessCheckoutCommand(
                link_id=link.link_id,
                payment_method="digicash",
                name="Ayen Deng",
                phone_number=VALID_PHONE,
                amount="40",
            )
        )
        self.assertEqual(result.state, CheckoutState.PENDING)
        txn = Transaction.objects.get(payment_link=link)
        self.assertEqual(txn.amount, Decimal("40.00"))
        self.assertEqual(txn.platform_fee, Decimal("6.00"))
