# clinic/utils/money.py
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """
    Quantize any numeric input to cents.

    Floats go through str() first so 0.1 becomes Decimal("0.10"),
    not its binary expansion.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values) -> Decimal:
    return to_money(sum((Decimal(v) for v in values), ZERO))


def format_money(value: Decimal, symbol: str = "") -> str:
    return f"{symbol}{to_money(value):,.2f}"
