"""Coin amount helpers.

Coin amounts carry two fractional digits. The database stores them as integer
hundredths so balance arithmetic inside SQL stays exact; everything above the
repository layer works with ``Decimal``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# Largest value a SQLite INTEGER column holds.
MAX_MINOR = 2**63 - 1


def quantize(amount: Decimal | int | float | str) -> Decimal:
    """Round an amount to whole hundredths.

    Raises ``decimal.InvalidOperation`` for text that is not a number, for
    NaN or infinity, and for values with more digits than the context allows.
    """
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor(amount: Decimal | int | float | str) -> int:
    """Convert a coin amount to integer hundredths."""
    return int(quantize(amount) * 100)


def from_minor(minor: int | None) -> Decimal:
    """Convert integer hundredths back to a coin amount."""
    return (Decimal(int(minor or 0)) / 100).quantize(CENT)


def is_storable(amount: Decimal) -> bool:
    """True when ``amount`` in hundredths fits a SQLite INTEGER."""
    return abs(to_minor(amount)) <= MAX_MINOR


def author_share_minor(cost_minor: int, percent: int) -> int:
    """Author's cut of a paid unlock, floored to the hundredth."""
    return (cost_minor * percent) // 100
