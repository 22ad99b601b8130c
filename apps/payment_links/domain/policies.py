from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timezone

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.utils.dateparse import parse_date, parse_datetime

from .amount_policy import build_amount_policy
from .errors import ExpiryInvalidError, PaymentLinkValidationError, RedirectUrlInvalidError
from .types import DEFAULT_PAYMENT_METHODS, NormalizedLink, PaymentMethod, ValidationResult

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 1000
REDIRECT_URL_MAX_LENGTH = 500
SUPPORTED_CURRENCIES: tuple[str, ...] = ("SSP", "USD")

_url_validator = URLValidator(schemes=["http", "https"])


@dataclass(frozen=True)
class PaymentLinkForm:
    """Raw merchant input, as typed into the creation form."""

    title: str = ""
    description: str = ""
    allow_custom_amount: bool = False
    amount: object = None
    min_amount: object = None
    max_amount: object = None
    currency: str = ""
    expires_at: object = None
    redirect_url: str = ""
    notes: str = ""
    collect_customer_info: bool = False
    allowed_payment_methods: list[str] | None = field(default=None)


def validate_title(raw: str) -> str:
    title = (raw or "").strip()
    if not title:
        raise PaymentLinkValidationError("Title is required", field="title")
    if len(title) > TITLE_MAX_LENGTH:
        raise PaymentLinkValidationError(
            f"Title must be {TITLE_MAX_LENGTH} characters or fewer", field="title"
        )
    return title


def validate_description(raw: str) -> str:
    description = (raw or "").strip()
    if not description:
        raise PaymentLinkValidationError("Description is required", field="description")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise PaymentLinkValidationError(
            f"Description must be {DESCRIPTION_MAX_LENGTH} characters or fewer", field="description"
        )
    return description


def parse_expiry(raw) -> datetime | None:
    """Accept a datetime, an ISO-8601 string or a bare date. Naive values are read as UTC."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    value: datetime | None = None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            value = parse_datetime(text)
            if value is None:
                day = parse_date(text)
                value = datetime.combine(day, time.min) if day else None
        except ValueError:
            value = None
    if value is None:
        raise ExpiryInvalidError("Expiry date must be a valid date", field="expiresAt")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def validate_expiry(raw, *, now: datetime) -> datetime | None:
    expires_at = parse_expiry(raw)
    if expires_at is not None and expires_at <= now:
        raise ExpiryInvalidError("Expiry date must be in the future", field="expiresAt")
    return expires_at


def validate_redirect_url(raw: str) -> str:
    url = (raw or "").strip()
    if not url:
        return ""
    if len(url) > REDIRECT_URL_MAX_LENGTH:
        raise RedirectUrlInvalidError(
            f"URL must be {REDIRECT_URL_MAX_LENGTH} characters or fewer", field="redirectUrl"
        )
    try:
        _url_validator(url)
    except ValidationError as exc:
        raise RedirectUrlInvalidError("Please enter a valid URL", field="redirectUrl") from exc
    return url


def validate_currency(raw: str, *, supported: tuple[str, ...] = SUPPORTED_CURRENCIES) -> str:
    currency = (raw or "").strip().upper() or supported[0]
    if currency not in supported:
        raise PaymentLinkValidationError(
            f"Currency must be one of: {', '.join(supported)}", field="currency"
        )
    return currency


def validate_notes(raw: str) -> str:
    notes = (raw or "").strip()
    if len(notes) > NOTES_MAX_LENGTH:
        raise PaymentLinkValidationError(
            f"Notes must be {NOTES_MAX_LENGTH} characters or fewer", field="notes"
        )
    return notes


def normalize_payment_methods(raw: list[str] | None) -> tuple[PaymentMethod, ...]:
    if not raw:
        return DEFAULT_PAYMENT_METHODS
    methods: list[PaymentMethod] = []
    for item in raw:
        key = str(item or "").strip().lower()
        try:
            method = PaymentMethod(key)
        except ValueError as exc:
            raise PaymentLinkValidationError(
                "Invalid payment method", field="allowedPaymentMethods"
            ) from exc
        if method not in methods:
            methods.append(method)
    return tuple(methods)


def validate_payment_link(
    form: PaymentLinkForm,
    *,
    now: datetime,
    currencies: tuple[str, ...] = SUPPORTED_CURRENCIES,
) -> ValidationResult[NormalizedLink]:
    """
    Validate the full creation form.

    Every check runs regardless of earlier failures so the caller gets one
    error per invalid field in a single pass. Never raises for bad input.
    """
    errors: dict[str, str] = {}
    values: dict[str, object] = {}

    checks = (
        ("title", lambda: validate_title(form.title)),
        ("description", lambda: validate_description(form.description)),
        ("expires_at", lambda: validate_expiry(form.expires_at, now=now)),
        ("redirect_url", lambda: validate_redirect_url(form.redirect_url)),
        ("currency", lambda: validate_currency(form.currency, supported=currencies)),
        ("notes", lambda: validate_notes(form.notes)),
        ("allowed_payment_methods", lambda: normalize_payment_methods(form.allowed_payment_methods)),
    )
    for name, check in checks:
        try:
            values[name] = check()
        except PaymentLinkValidationError as exc:
            errors[exc.field or name] = str(exc)

    amount = build_amount_policy(
        allow_custom_amount=bool(form.allow_custom_amount),
        amount=form.amount,
        min_amount=form.min_amount,
        max_amount=form.max_amount,
    )
    errors.update(amount.errors)

    if errors:
        return ValidationResult(errors=errors)

    return ValidationResult(
        value=NormalizedLink(
            title=values["title"],
            description=values["description"],
            amount_policy=amount.value,
            currency=values["currency"],
            expires_at=values["expires_at"],
            redirect_url=values["redirect_url"],
            notes=values["notes"],
            collect_customer_info=bool(form.collect_customer_info),
            allowed_payment_methods=values["allowed_payment_methods"],
        )
    )
