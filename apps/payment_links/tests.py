from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.payment_links.application.use_cases.create_payment_link import (
    CreatePaymentLinkCommand,
    CreatePaymentLinkUseCase,
)
from apps.payment_links.application.use_cases.get_public_payment_link import (
    GetPublicPaymentLinkCommand,
    GetPublicPaymentLinkUseCase,
)
from apps.payment_links.domain.amount_policy import (
    build_amount_policy,
    check_customer_amount,
    describe_amount,
    parse_amount,
)
from apps.payment_links.domain.errors import AmountInvalidError
from apps.payment_links.domain.policies import PaymentLinkForm, validate_payment_link
from apps.payment_links.domain.status import LinkStatusResolver
from apps.payment_links.domain.types import AmountRange, FixedAmount, LinkStatus, PaymentMethod
from apps.payment_links.models import PaymentLink

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=dt_timezone.utc)


def _form(**overrides) -> PaymentLinkForm:
    values = {
        "title": "Invoice #1",
        "description": "Service fee",
        "allow_custom_amount": False,
        "amount": "500",
    }
    values.update(overrides)
    return PaymentLinkForm(**values)


class AmountPolicyTests(SimpleTestCase):
    def test_fixed_amount_above_zero_is_accepted(self):
        for raw in ("500", "0.01", 1, 99.5, Decimal("1200.00")):
            result = build_amount_policy(allow_custom_amount=False, amount=raw)
            self.assertTrue(result.ok, raw)
            self.assertIsInstance(result.value, FixedAmount)

    def test_fixed_amount_not_positive_or_not_numeric_is_rejected(self):
        for raw in ("0", "-5", "abc", "", None, "NaN", "Infinity"):
            result = build_amount_policy(allow_custom_amount=False, amount=raw)
            self.assertEqual(result.errors, {"amount": "Amount must be greater than 0"}, raw)

    def test_amount_is_rounded_to_cents(self):
        self.assertEqual(parse_amount("100.005"), Decimal("100.01"))
        self.assertEqual(parse_amount(" 12.3 "), Decimal("12.30"))
        result = build_amount_policy(allow_custom_amount=False, amount="0.004")
        self.assertIn("amount", result.errors)

    def test_parse_amount_rejects_booleans(self):
        with self.assertRaises(AmountInvalidError):
            parse_amount(True)

    def test_range_without_bounds_is_accepted(self):
        result = build_amount_policy(allow_custom_amount=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.value, AmountRange(min_amount=None, max_amount=None))

    def test_range_ignores_fixed_amount_field(self):
        result = build_amount_policy(allow_custom_amount=True, amount="-1", min_amount="10")
        self.assertTrue(result.ok)
        self.assertEqual(result.value.min_amount, Decimal("10.00"))

    def test_range_min_not_below_max_is_rejected(self):
        for low, high in (("10", "10"), ("50", "20"), ("20.01", "20")):
            result = build_amount_policy(allow_custom_amount=True, min_amount=low, max_amount=high)
            self.assertEqual(
                result.errors.get("maxAmount"),
                "Maximum amount must be greater than minimum amount",
                (low, high),
            )

    def test_range_min_below_max_is_accepted(self):
        result = build_amount_policy(allow_custom_amount=True, min_amount="10", max_amount="10.01")
        self.assertTrue(result.ok)
        self.assertEqual(result.value, AmountRange(min_amount=Decimal("10.00"), max_amount=Decimal("10.01")))

    def test_range_bounds_must_be_positive(self):
        result = build_amount_policy(allow_custom_amount=True, min_amount="0", max_amount="-3")
        self.assertEqual(result.errors["minAmount"], "Minimum amount must be greater than 0")
        self.assertEqual(result.errors["maxAmount"], "Maximum amount must be greater than 0")

    def test_amounts_beyond_column_capacity_are_rejected(self):
        self.assertTrue(build_amount_policy(allow_custom_amount=False, amount="9999999999.99").ok)
        for raw in ("10000000000", "1e20"):
            result = build_amount_policy(allow_custom_amount=False, amount=raw)
            self.assertEqual(result.errors, {"amount": "Amount must not exceed 9999999999.99"}, raw)

        result = build_amount_policy(allow_custom_amount=True, min_amount="1e20", max_amount="1e21")
        self.assertEqual(
            result.errors,
            {
                "minAmount": "Amount must not exceed 9999999999.99",
                "maxAmount": "Amount must not exceed 9999999999.99",
            },
        )
        self.assertEqual(
            check_customer_amount(AmountRange(), "1e20").errors,
            {"amount": "Amount must not exceed 9999999999.99"},
        )

    def test_customer_amount_against_range(self):
        policy = AmountRange(min_amount=Decimal("10.00"), max_amount=Decimal("100.00"))
        self.assertEqual(check_customer_amount(policy, "50").value, Decimal("50.00"))
        self.assertEqual(check_customer_amount(policy, "").errors, {"amount": "Amount is required"})
        self.assertEqual(check_customer_amount(policy, "5").errors, {"amount": "Amount must be at least 10.00"})
        self.assertEqual(check_customer_amount(policy, "101").errors, {"amount": "Amount must not exceed 100.00"})

    def test_customer_amount_for_fixed_link_is_the_link_amount(self):
        policy = FixedAmount(amount=Decimal("500.00"))
        self.assertEqual(check_customer_amount(policy, "1").value, Decimal("500.00"))

    def test_describe_amount(self):
        self.assertEqual(describe_amount(FixedAmount(Decimal("500.00")), "SSP"), "SSP 500.00")
        self.assertEqual(describe_amount(AmountRange(), "SSP"), "Any amount")
        self.assertEqual(
            describe_amount(AmountRange(Decimal("1.00"), Decimal("9.00")), "USD"),
            "USD 1.00 - USD 9.00",
        )


class LinkValidatorTests(SimpleTestCase):
    def test_minimal_fixed_link_is_accepted(self):
        result = validate_payment_link(_form(), now=NOW)
        self.assertTrue(result.ok)
        link = result.value
        self.assertEqual(link.title, "Invoice #1")
        self.assertEqual(link.amount_policy, FixedAmount(amount=Decimal("500.00")))
        self.assertEqual(link.currency, "SSP")
        self.assertIsNone(link.expires_at)
        self.assertEqual(link.allowed_payment_methods, (PaymentMethod.MTN_MOMO, PaymentMethod.DIGICASH))

    def test_every_invalid_field_is_reported_in_one_pass(self):
        form = _form(
            title="   ",
            description="",
            amount="0",
            expires_at=NOW - timedelta(days=1),
            redirect_url="not a url",
        )
        result = validate_payment_link(form, now=NOW)
        self.assertEqual(
            result.errors,
            {
                "title": "Title is required",
                "description": "Description is required",
                "amount": "Amount must be greater than 0",
                "expiresAt": "Expiry date must be in the future",
                "redirectUrl": "Please enter a valid URL",
            },
        )

    def test_expiry_must_be_strictly_in_the_future(self):
        one_second_ago = validate_payment_link(_form(expires_at=NOW - timedelta(seconds=1)), now=NOW)
        self.assertEqual(one_second_ago.errors, {"expiresAt": "Expiry date must be in the future"})
        exactly_now = validate_payment_link(_form(expires_at=NOW), now=NOW)
        self.assertIn("expiresAt", exactly_now.errors)
        tomorrow = validate_payment_link(_form(expires_at=NOW + timedelta(days=1)), now=NOW)
        self.assertTrue(tomorrow.ok)

    def test_expiry_accepts_iso_strings(self):
        result = validate_payment_link(_form(expires_at="2026-03-02T08:00:00Z"), now=NOW)
        self.assertEqual(result.value.expires_at, datetime(2026, 3, 2, 8, 0, tzinfo=dt_timezone.utc))
        naive = validate_payment_link(_form(expires_at="2026-03-05"), now=NOW)
        self.assertEqual(naive.value.expires_at, datetime(2026, 3, 5, tzinfo=dt_timezone.utc))
        garbage = validate_payment_link(_form(expires_at="next tuesday"), now=NOW)
        self.assertEqual(garbage.errors, {"expiresAt": "Expiry date must be a valid date"})

    def test_redirect_url_is_optional_but_must_be_absolute(self):
        self.assertTrue(validate_payment_link(_form(redirect_url=""), now=NOW).ok)
        ok = validate_payment_link(_form(redirect_url="https://shop.example.com/thanks"), now=NOW)
        self.assertEqual(ok.value.redirect_url, "https://shop.example.com/thanks")
        relative = validate_payment_link(_form(redirect_url="/thanks"), now=NOW)
        self.assertEqual(relative.errors, {"redirectUrl": "Please enter a valid URL"})

    def test_redirect_url_length_matches_column(self):
        base = "https://shop.example.com/"
        fits = base + "a" * (500 - len(base))
        self.assertTrue(validate_payment_link(_form(redirect_url=fits), now=NOW).ok)
        too_long = validate_payment_link(_form(redirect_url=fits + "a"), now=NOW)
        self.assertEqual(too_long.errors, {"redirectUrl": "URL must be 500 characters or fewer"})

    def test_length_limits(self):
        result = validate_payment_link(_form(title="x" * 101, description="y" * 501), now=NOW)
        self.assertEqual(set(result.errors), {"title", "description"})
        self.assertTrue(validate_payment_link(_form(title="x" * 100, description="y" * 500), now=NOW).ok)

    def test_payment_methods(self):
        ordered = validate_payment_link(_form(allowed_payment_methods=["digicash", "mtn_momo", "digicash"]), now=NOW)
        self.assertEqual(ordered.value.allowed_payment_methods, (PaymentMethod.DIGICASH, PaymentMethod.MTN_MOMO))
        unknown = validate_payment_link(_form(allowed_payment_methods=["paypal"]), now=NOW)
        self.assertEqual(unknown.errors, {"allowedPaymentMethods": "Invalid payment method"})

    def test_currency(self):
        self.assertEqual(validate_payment_link(_form(currency="usd"), now=NOW).value.currency, "USD")
        self.assertIn("currency", validate_payment_link(_form(currency="EUR"), now=NOW).errors)

    def test_amount_policy_errors_are_merged_verbatim(self):
        form = _form(allow_custom_amount=True, min_amount="100", max_amount="50")
        result = validate_payment_link(form, now=NOW)
        self.assertEqual(result.errors, {"maxAmount": "Maximum amount must be greater than minimum amount"})

    def test_validation_is_repeatable(self):
        form = _form(title="", amount="abc", redirect_url="nope")
        first = validate_payment_link(form, now=NOW)
        second = validate_payment_link(form, now=NOW)
        self.assertEqual(first.errors, second.errors)


class LinkStatusResolverTests(SimpleTestCase):
    def test_disabled_wins_regardless_of_expiry(self):
        for expires_at in (None, NOW - timedelta(days=1), NOW + timedelta(days=1)):
            self.assertEqual(
                LinkStatusResolver.resolve(enabled=False, expires_at=expires_at, now=NOW),
                LinkStatus.DISABLED,
            )

    def test_enabled_link_expires_after_its_timestamp(self):
        self.assertEqual(
            LinkStatusResolver.resolve(enabled=True, expires_at=NOW - timedelta(seconds=1), now=NOW),
            LinkStatus.EXPIRED,
        )
        self.assertEqual(LinkStatusResolver.resolve(enabled=True, expires_at=NOW, now=NOW), LinkStatus.ACTIVE)
        self.assertEqual(LinkStatusResolver.resolve(enabled=True, expires_at=None, now=NOW), LinkStatus.ACTIVE)


class PaymentLinkUseCaseTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.merchant = get_user_model().objects.create_user(username="merchant", password="StrongPass12345!")

    def test_created_link_resolves_active(self):
        result = CreatePaymentLinkUseCase.execute(CreatePaymentLinkCommand(merchant_id=self.merchant.id, form=_form()))
        self.assertTrue(result.ok)
        self.assertEqual(len(result.link.link_id), 16)
        self.assertEqual(LinkStatusResolver.for_record(result.link, now=timezone.now()), LinkStatus.ACTIVE)

    def test_rejected_form_creates_nothing(self):
        result = CreatePaymentLinkUseCase.execute(
            CreatePaymentLinkCommand(merchant_id=self.merchant.id, form=_form(expires_at=timezone.now() - timedelta(seconds=1)))
        )
        self.assertFalse(result.ok)
        self.assertEqual(result.errors, {"expiresAt": "Expiry date must be in the future"})
        self.assertFalse(PaymentLink.objects.exists())

    def test_persisted_link_past_expiry_reads_as_expired(self):
        link = PaymentLink.objects.create(
            merchant=self.merchant,
            title="Old",
            description="Old link",
            amount=Decimal("10.00"),
            allowed_payment_methods=["mtn_momo"],
            expires_at=timezone.now() - timedelta(seconds=1),
        )
        result = GetPublicPaymentLinkUseCase.execute(GetPublicPaymentLinkCommand(link_id=link.link_id))
        self.assertEqual(result.status, LinkStatus.EXPIRED)
        self.assertEqual(result.reason, "expired")
        link.refresh_from_db()
        self.assertEqual(link.click_count, 0)

    def test_public_lookup_counts_clicks_on_active_links(self):
        link = PaymentLink.objects.create(
            merchant=self.merchant,
            title="Live",
            description="Live link",
            amount=Decimal("10.00"),
            allowed_payment_methods=["mtn_momo"],
        )
        result = GetPublicPaymentLinkUseCase.execute(GetPublicPaymentLinkCommand(link_id=link.link_id))
        self.assertTrue(result.available)
        link.refresh_from_db()
        self.assertEqual(link.click_count, 1)

        result = GetPublicPaymentLinkUseCase.execute(
            GetPublicPaymentLinkCommand(link_id=link.link_id, viewer_id=self.merchant.id)
        )
        self.assertTrue(result.available)
        self.assertEqual(result.link.merchant_name, "merchant")
        link.refresh_from_db()
        self.assertEqual(link.click_count, 1)

    def test_public_lookup_of_unknown_link(self):
        result = GetPublicPaymentLinkUseCase.execute(GetPublicPaymentLinkCommand(link_id="missing"))
        self.assertIsNone(result.link)
        self.assertEqual(result.reason, "not_found")


class PaymentLinkApiTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        User = get_user_model()
        self.merchant = User.objects.create_user(username="merchant1", password="StrongPass12345!")
        self.other = User.objects.create_user(username="merchant2", password="StrongPass12345!")
        self.client = APIClient()
        self.client.force_authenticate(user=self.merchant)

    def _create(self, **overrides):
        payload = {"title": "Invoice #1", "description": "Service fee", "amount": 500}
        payload.update(overrides)
        return self.client.post("/api/payment-links/", data=payload, format="json")

    def test_create_link(self):
        response = self._create(allowedPaymentMethods=["digicash"], redirectUrl="https://example.com/done")
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        link = payload["data"]["paymentLink"]
        self.assertEqual(link["status"], "active")
        self.assertEqual(link["amount"], "500.00")
        self.assertFalse(link["allowCustomAmount"])
        self.assertEqual(link["allowedPaymentMethods"], ["digicash"])
        self.assertTrue(link["fullUrl"].endswith(f"/pay/{link['linkId']}"))
        self.assertTrue(PaymentLink.objects.filter(link_id=link["linkId"], merchant=self.merchant).exists())

    def test_create_custom_amount_link(self):
        response = self._create(amount=None, allowCustomAmount=True, minAmount="10", maxAmount="1000")
        self.assertEqual(response.status_code, 201)
        link = response.json()["data"]["paymentLink"]
        self.assertIsNone(link["amount"])
        self.assertEqual((link["minAmount"], link["maxAmount"]), ("10.00", "1000.00"))

    def test_oversized_amount_is_rejected_and_listing_keeps_working(self):
        response = self._create(amount="1e20")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["fields"], {"amount": "Amount must not exceed 9999999999.99"})
        self.assertFalse(PaymentLink.objects.exists())
        self.assertEqual(self.client.get("/api/payment-links/").status_code, 200)

    def test_create_reports_all_field_errors(self):
        response = self._create(title="", amount=0, redirectUrl="ftp:/broken")
        self.assertEqual(response.status_code, 400)
        fields = response.json()["error"]["fields"]
        self.assertEqual(set(fields), {"title", "amount", "redirectUrl"})
        self.assertFalse(PaymentLink.objects.exists())

    def test_list_filters_by_derived_status(self):
        self._create(title="Active one")
        disabled = self._create(title="Disabled one").json()["data"]["paymentLink"]["linkId"]
        PaymentLink.objects.filter(link_id=disabled).update(enabled=False)
        PaymentLink.objects.create(
            merchant=self.merchant,
            title="Expired one",
            description="Expired",
            amount=Decimal("5.00"),
            allowed_payment_methods=["mtn_momo"],
            expires_at=timezone.now() - timedelta(minutes=5),
        )

        everything = self.client.get("/api/payment-links/").json()["data"]["paymentLinks"]
        self.assertEqual(sorted(link["status"] for link in everything), ["active", "disabled", "expired"])

        expired = self.client.get("/api/payment-links/?status=expired").json()["data"]["paymentLinks"]
        self.assertEqual([link["title"] for link in expired], ["Expired one"])

        bad = self.client.get("/api/payment-links/?status=paused")
        self.assertEqual(bad.status_code, 400)

    def test_toggle_enabled(self):
        link_id = self._create().json()["data"]["paymentLink"]["linkId"]
        response = self.client.patch(f"/api/payment-links/{link_id}/", data={"enabled": False}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["paymentLink"]["status"], "disabled")

        response = self.client.patch(f"/api/payment-links/{link_id}/", data={"enabled": True}, format="json")
        self.assertEqual(response.json()["data"]["paymentLink"]["status"], "active")

    def test_links_of_other_merchants_are_hidden(self):
        link_id = self._create().json()["data"]["paymentLink"]["linkId"]
        other_client = APIClient()
        other_client.force_authenticate(user=self.other)
        self.assertEqual(other_client.get(f"/api/payment-links/{link_id}/").status_code, 404)
        toggle = other_client.patch(f"/api/payment-links/{link_id}/", data={"enabled": False}, format="json")
        self.assertEqual(toggle.status_code, 404)
        self.assertTrue(PaymentLink.objects.get(link_id=link_id).enabled)

    def test_stats(self):
        self._create()
        link_id = self._create().json()["data"]["paymentLink"]["linkId"]
        PaymentLink.objects.filter(link_id=link_id).update(enabled=False, click_count=4)
        stats = self.client.get("/api/payment-links/stats/").json()["data"]["stats"]
        self.assertEqual(stats, {"total": 2, "active": 1, "expired": 0, "disabled": 1, "total_clicks": 4})

    def test_requires_authentication(self):
        response = APIClient().get("/api/payment-links/")
        self.assertIn(response.status_code, (401, 403))
