from __future__ import annotations

import re

from apps.payment_links.domain.amount_policy import check_customer_amount
from apps.payment_links.domain.types import AmountPolicy, ValidationResult

from .errors import CheckoutValidationError
from .types import CheckoutForm, Customer, ValidatedCheckout

_SOUTH_SUDAN_PHONE_RE = re.compile(r"^\+211[0-9]{9}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PHONE_FORMAT_MESSAGE = "Valid South Sudan phone number required (+211xxxxxxxxx)"


def validate_customer_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise CheckoutValidationError("Name is required", field="name")
    return name


def normalize_phone(raw: str) -> str:
    return re.sub(r"\s+", "", raw or "")


def validate_phone(raw: str) -> str:
    phone = normalize_phone(raw)
    if not _SOUTH_SUDAN_PHONE_RE.match(phone):
        raise CheckoutValidationError(PHONE_FORMAT_MESSAGE, field="phoneNumber")
    return phone


def validate_email(raw: str, *, required: bool) -> str:
    email = (raw or "").strip()
    if not email:
        if required:
            raise CheckoutValidationError("Email is required", field="email")
        return ""
    if not _EMAIL_RE.match(email):
        raise CheckoutValidationError("Valid email address required", field="email")
    return email


def validate_checkout(
    form: CheckoutForm,
    *,
    collect_customer_info: bool,
    amount_policy: AmountPolicy,
) -> ValidationResult[ValidatedCheckout]:
    """Check customer fields against a link's requirements. Pure; safe to re-run on every attempt."""
    errors: dict[str, str] = {}
    values: dict[str, str] = {}

    checks = (
        ("name", lambda: validate_customer_name(form.name)),
        ("phoneNumber", lambda: validate_phone(form.phone_number)),
        ("email", lambda: validate_email(form.email, required=collect_customer_info)),
    )
    for name, check in checks:
        try:
            values[name] = check()
        except CheckoutValidationError as exc:
            errors[exc.field or name] = str(exc)

    amount = check_customer_amount(amount_policy, form.amount)
    errors.update(amount.errors)

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(
        value=ValidatedCheckout(
            customer=Customer(name=values["name"], phone_number=values["phoneNumber"], email=values["email"]),
            amount=amount.value,
        )
    )
