from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

MONEY_QUANT = Decimal("0.01")
DEFAULT_FEE_PERCENT = Decimal("2.5")
DEFAULT_FEE_FIXED = Decimal("5")


def calculate_platform_fee(
    amount: Decimal,
    *,
    percent: Decimal = DEFAULT_FEE_PERCENT,
    fixed: Decimal = DEFAULT_FEE_FIXED,
) -> Decimal:
    fee = amount * percent / Decimal("100") + fixed
    return fee.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
