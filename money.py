from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")


def to_cents(amount: Union[Decimal, int, float, str]) -> int:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    return int((value.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def from_cents(cents: Union[int, float]) -> float:
    # Averages can leave fractional cents; round to the displayed precision.
    return round(cents / 100, 2)
