from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import AmountInvalidError
from .types import AmountPolicy, AmountRange, FixedAmount, ValidationResult

MONEY_QUANT = Decimal("0.01")
# Largest value the DecimalField(max_digits=12, decimal_places=2) columns hold.
MAX_AMOUNT = Decimal("9999999999.99")

AMOUNT_POSITIVE_MESSAGE = "Amount must be greater than 0"
MIN_AMOUNT_POSITIVE_MESSAGE = "Minimum amount must be greater than 0"
MAX_AMOUNT_POSITIVE_MESSAGE = "Maximum amount must be greater than 0"
RANGE_ORDER_MESSAGE = "Maximum amount must be greater than minimum amount"
AMOUNT_TOO_LARGE_MESSAGE = f"Amount must not exceed {MAX_AMOUNT}"


def _is_blank(raw) -> bool:
    if raw is None:
        return True
    return isinstance(raw, str) and not raw.strip()


def parse_amount(raw, *, field: str = "amount") -> Decimal | None:
    """
    Parse a money value into a two-decimal Decimal.

    Blank input yields None. Anything that is not a finite number raises
    AmountInvalidError. Sub-cent digits are rounded half-up, so 100.005
    becomes 100.01 and 0.004 becomes 0.00.
    """
    if _is_blank(raw):
        return None
    if isinstance(raw, bool):
        raise AmountInvalidError("Amount must be a number.", field=field)
    try:
        value = Decimal(str(raw).strip()).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise AmountInvalidError("Amount must be a number.", field=field) from exc
    if not value.is_finite():
        raise AmountInvalidError("Amount must be a number.", field=field)
    return value


def _bounded_or_none(raw, *, field: str, positive_message: str) -> tuple[Decimal | None, str]:
    """Return (value, error). Blank is accepted with value None and no error."""
    try:
        value = parse_amount(raw, field=field)
    except AmountInvalidError:
        return None, positive_message
    if value is None:
        return None, ""
    if value <= 0:
        return None, positive_message
    if value > MAX_AMOUNT:
        return None, AMOUNT_TOO_LARGE_MESSAGE
    return value, ""


def build_amount_policy(
    *,
    allow_custom_amount: bool,
    amount=None,
    min_amount=None,
    max_amount=None,
) -> ValidationResult[AmountPolicy]:
    errors: dict[str, str] = {}

    if not allow_custom_amount:
        value, error = _bounded_or_none(amount, field="amount", positive_message=AMOUNT_POSITIVE_MESSAGE)
        if value is None:
            errors["amount"] = error or AMOUNT_POSITIVE_MESSAGE
            return ValidationResult(errors=errors)
        return ValidationResult(value=FixedAmount(amount=value))

    low, low_error = _bounded_or_none(min_amount, field="minAmount", positive_message=MIN_AMOUNT_POSITIVE_MESSAGE)
    high, high_error = _bounded_or_none(max_amount, field="maxAmount", positive_message=MAX_AMOUNT_POSITIVE_MESSAGE)
    if low_error:
        errors["minAmount"] = low_error
    if high_error:
        errors["maxAmount"] = high_error
    if low is not None and high is not None and low >= high:
        errors["maxAmount"] = RANGE_ORDER_MESSAGE
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=AmountRange(min_amount=low, max_amount=high))


def check_customer_amount(policy: AmountPolicy, raw) -> ValidationResult[Decimal]:
    """Resolve the amount a customer pays against a link's policy."""
    if isinstance(policy, FixedAmount):
        return ValidationResult(value=policy.amount)

    try:
        value = parse_amount(raw)
    except AmountInvalidError as exc:
        return ValidationResult(errors={"amount": str(exc)})
    if value is None:
        return ValidationResult(errors={"amount": "Amount is required"})
    if value <= 0:
        return ValidationResult(errors={"amount": AMOUNT_POSITIVE_MESSAGE})
    if value > MAX_AMOUNT:
        return ValidationResult(errors={"amount": AMOUNT_TOO_LARGE_MESSAGE})
    if policy.min_amount is not None and value < policy.min_amount:
        return ValidationResult(errors={"amount": f"Amount must be at least {policy.min_amount}"})
    if policy.max_amount is not None and value > policy.max_amount:
        return ValidationResult(errors={"amount": f"Amount must not exceed {policy.max_amount}"})
    return ValidationResult(value=value)


def describe_amount(policy: AmountPolicy, currency: str) -> str:
    if isinstance(policy, FixedAmount):
        return f"{currency} {policy.amount}"
    low = f"{currency} {policy.min_amount}" if policy.min_amount is not None else None
    high = f"{currency} {policy.max_amount}" if policy.max_amount is not None else None
    if low and high:
        return f"{low} - {high}"
    if low:
        return f"From {low}"
    if high:
        return f"Up to {high}"
    return "Any amount"
