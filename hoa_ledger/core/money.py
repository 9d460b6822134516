from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

# Ledger amounts are integers in minor units (paise); 300.00 is stored as 30000.
MINOR_PER_MAJOR = 100
CURRENCY_SYMBOL = "₹"


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_minor(amount: Any) -> int:
    return int((_as_decimal(amount) * MINOR_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor(amount: int) -> Decimal:
    return (Decimal(amount) / MINOR_PER_MAJOR).quantize(Decimal("0.01"))


def format_minor(amount: int) -> str:
    return f"{CURRENCY_SYMBOL}{from_minor(amount):.2f}"
