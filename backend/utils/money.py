# backend/utils/money.py
import math
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")

# Round a monetary value to 2 decimals (half up). NaN and infinities pass through unchanged
# so callers can still detect them with is_valid_amount.
def round_money(value) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value):
        return value
    return float(Decimal(repr(value)).quantize(CENTS, rounding=ROUND_HALF_UP))

def is_valid_amount(value) -> bool:
    return value is not None and math.isfinite(value) and value > 0

def format_brl(value) -> str:
    return f"R$ {round_money(value):.2f}".replace(".", ",")
