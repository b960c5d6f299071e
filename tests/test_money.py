"""Unit tests for coin amount helpers (novel_server/money.py)."""

from decimal import Decimal

import pytest

from novel_server.money import (
    MAX_MINOR,
    author_share_minor,
    from_minor,
    is_storable,
    quantize,
    to_minor,
)


@pytest.mark.unit
def test_quantize_rounds_half_up_to_hundredths():
    assert quantize("1.005") == Decimal("1.01")
    assert quantize(2) == Decimal("2.00")
    assert quantize(0.1) == Decimal("0.10")


@pytest.mark.unit
def test_minor_units_conversion():
    assert to_minor("12.34") == 1234
    assert to_minor(5) == 500
    assert from_minor(1234) == Decimal("12.34")
    assert from_minor(None) == Decimal("0.00")
    assert from_minor(-350) == Decimal("-3.50")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("cost_minor", "percent", "expected"),
    [
        (500, 70, 350),
        (1, 70, 0),
        (333, 70, 233),
        (500, 0, 0),
        (500, 100, 500),
    ],
)
def test_author_share_is_floored(cost_minor, percent, expected):
    assert author_share_minor(cost_minor, percent) == expected


@pytest.mark.unit
def test_is_storable_matches_sqlite_integer_range():
    largest = from_minor(MAX_MINOR)

    assert is_storable(largest)
    assert is_storable(-largest)
    assert not is_storable(largest + Decimal("0.01"))
    assert not is_storable(Decimal("1e20"))
