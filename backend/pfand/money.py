# Overview: Decimal <-> integer cents conversion for deposit amounts.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def quantize(value) -> Decimal:
    """Normalize any numeric input to a two-place Decimal."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Decimal) -> int:
    return int(quantize(value) * 100)


def from_cents(cents: int) -> Decimal:
    return quantize(Decimal(cents) / 100)


def format_money(value: Decimal) -> str:
    """Serialize as a plain two-decimal string, e.g. "4.00"."""
    return f"{quantize(value):.2f}"
