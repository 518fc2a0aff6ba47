from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

GBP = "GBP"

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "USD": "$",
    "EUR": "€",
}

_NON_NUMERIC = re.compile(r"[^0-9.]")


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str = GBP

    def __str__(self) -> str:
        return format_currency(self.amount_cents, self.currency)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps float rates such as 8.5 exact
    return Decimal(str(value))


def round_half_up(value) -> int:
    """
    Round to the nearest integer, ties away from zero.

    All percentage products on money go through here. Python's round() uses
    banker's rounding (round(2.5) == 2); fees use half-up so 2.5p -> 3p.
    """
    return int(_to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount_cents: int, rate) -> int:
    return round_half_up(_to_decimal(amount_cents) * _to_decimal(rate) / Decimal(100))


def format_currency(amount_cents: int | None, currency: str = GBP) -> str:
    if amount_cents is None:
        return "-"

    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    sign = "-" if amount_cents < 0 else ""
    amount = abs(_to_decimal(amount_cents)) / Decimal(100)
    return f"{sign}{symbol}{amount:,.2f}"


def parse_currency_to_cents(value) -> int:
    if value is None or value == "":
        return 0

    text = str(value)
    negative = text.strip().startswith("-")
    cleaned = _NON_NUMERIC.sub("", text)

    try:
        cents = round_half_up(Decimal(cleaned) * 100)
    except InvalidOperation:
        return 0

    return -cents if negative else cents


def calculate_percentage(amount: int, total: int) -> float:
    if total == 0:
        return 0.0
    return amount / total * 100
