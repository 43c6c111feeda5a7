from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

EPSILON = Decimal("0.01")
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # floats go through str() so 0.1 stays 0.1
    return Decimal(str(value))


def round2(value: Union[Decimal, int, float, str]) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_zero(value: Decimal) -> bool:
    return abs(value) < EPSILON


def parse_decimal(text: str) -> Decimal:
    cleaned = text.replace(',', '.').strip()
    if not cleaned:
        raise ValueError("Empty number")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid number format: {text!r}")

    if not value.is_finite():
        raise ValueError(f"Invalid number format: {text!r}")

    # must fit the context precision once quantized to cents
    try:
        value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Number out of range: {text!r}")
    return value


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    amount = round2(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
