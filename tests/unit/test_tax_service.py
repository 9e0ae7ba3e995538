"""
Unit tests for backoffice/services/tax_service.py

Covers:
  - inclusive <-> exclusive conversion and half-up rounding
  - round trip within one cent for every configured rate
  - per-rate breakdown equals the sum of rounded line taxes
  - line pricing and nearest-rate inference
"""

from decimal import Decimal

import pytest

from backoffice.config import TaxConfig
from backoffice.exceptions import ValidationError
from backoffice.schemas.common import LineItem
from backoffice.services.tax_service import (
    document_totals,
    nearest_tax_rate,
    price_lines,
    round2,
    split_exclusive,
    split_inclusive,
    split_line,
    tax_breakdown,
    validate_tax_rate,
)

D = Decimal


# ---------------------------------------------------------------------------
# Rounding and conversion
# ---------------------------------------------------------------------------


def test_round2_rounds_half_up():
    assert round2(D("2.345")) == D("2.35")
    assert round2(D("2.344")) == D("2.34")
    assert round2(D("0.005")) == D("0.01")
    assert round2(1.1) == D("1.10")


def test_split_inclusive_20_percent():
    split = split_inclusive(D("120.00"), 20)
    assert split.exclusive == D("100.00")
    assert split.tax == D("20.00")
    assert split.inclusive == D("120.00")


def test_split_inclusive_rounds_exclusive_then_tax():
    # 10 / 1.07 = 9.3457... -> 9.35; 9.35 * 0.07 = 0.6545 -> 0.65
    split = split_inclusive(D("10.00"), 7)
    assert split.exclusive == D("9.35")
    assert split.tax == D("0.65")


def test_split_exclusive_adds_rounded_tax():
    split = split_exclusive(D("9.99"), 20)
    assert split.tax == D("2.00")
    assert split.inclusive == D("11.99")


def test_zero_rate_has_no_tax():
    inc = split_inclusive(D("42.42"), 0)
    exc = split_exclusive(D("42.42"), 0)
    assert inc.tax == D("0.00") and inc.exclusive == inc.inclusive == D("42.42")
    assert exc.tax == D("0.00") and exc.inclusive == D("42.42")


def test_negative_rate_rejected():
    with pytest.raises(ValidationError):
        split_inclusive(D("10.00"), -5)


@pytest.mark.parametrize("rate", [0, 7, 10, 20])
def test_round_trip_within_one_cent(rate):
    amounts = [D(cents) / 100 for cents in range(0, 100_001, 137)]
    amounts += [D("0.01"), D("0.99"), D("999999.99")]
    for amount in amounts:
        back = split_exclusive(split_inclusive(amount, rate).exclusive, rate).inclusive
        assert abs(back - round2(amount)) <= D("0.01"), (amount, rate, back)


@pytest.mark.parametrize("rate", [0, 7, 10, 20])
def test_recomputing_from_stored_values_reproduces_tax(rate):
    for cents in range(1, 20_000, 53):
        split = split_inclusive(D(cents) / 100, rate)
        again = split_exclusive(split.exclusive, rate)
        assert again.tax == split.tax


def test_split_line_multiplies_before_converting():
    split = split_line(3, D("19.99"), 20)
    assert split.inclusive == D("59.97")
    assert split.exclusive == D("49.98")
    assert split.tax == D("10.00")

    exclusive = split_line(3, D("19.99"), 20, prices_include_tax=False)
    assert exclusive.exclusive == D("59.97")
    assert exclusive.tax == D("11.99")


# ---------------------------------------------------------------------------
# Breakdown and totals
# ---------------------------------------------------------------------------


def test_breakdown_excludes_zero_rates_and_sorts():
    breakdown = tax_breakdown([(20, D("2.00")), (0, D("0.00")), (7, D("0.65")), (20, D("1.01"))])
    assert list(breakdown.items()) == [(7, D("0.65")), (20, D("3.01"))]


def test_breakdown_equals_sum_of_line_taxes():
    lines = [
        (1, D("0.33"), 20),
        (7, D("1.07"), 7),
        (3, D("9.99"), 10),
        (2, D("0.01"), 20),
        (11, D("3.33"), 10),
        (5, D("12.50"), 0),
    ]
    splits = [split_line(q, p, r) for q, p, r in lines]
    totals = document_totals(splits)

    for rate in (7, 10, 20):
        expected = sum((s.tax for s in splits if s.rate == rate), D("0"))
        assert totals.breakdown[rate] == expected
    assert 0 not in totals.breakdown
    assert totals.tax == sum(totals.breakdown.values())


# ---------------------------------------------------------------------------
# Rates and line pricing
# ---------------------------------------------------------------------------


def test_validate_tax_rate_defaults_and_rejects():
    config = TaxConfig()
    assert validate_tax_rate(None, config) == 20
    assert validate_tax_rate(7, config) == 7
    with pytest.raises(ValidationError) as exc:
        validate_tax_rate(15, config)
    assert "tax_rate" in exc.value.field_errors


def test_price_lines_fills_amounts_without_touching_input():
    config = TaxConfig()
    lines = [
        LineItem(description="A", quantity=2, unit_price=D("12.00"), tax_rate=20),
        LineItem(description="B", quantity=1, unit_price=D("10.70"), tax_rate=7),
    ]
    priced, totals = price_lines(lines, config)

    assert priced[0].line_total == D("24.00")
    assert priced[0].tax_amount == D("4.00")
    assert priced[1].tax_amount == D("0.70")
    assert lines[0].tax_amount == D("0.00")
    assert totals.total == D("34.70")
    assert totals.breakdown == {7: D("0.70"), 20: D("4.00")}


@pytest.mark.parametrize(
    "inclusive,tax,expected",
    [
        (D("120.00"), D("20.00"), 20),
        (D("107.00"), D("7.00"), 7),
        (D("110.00"), D("10.00"), 10),
        (D("50.00"), D("0.00"), 0),
        (D("118.50"), D("18.50"), 20),
    ],
)
def test_nearest_tax_rate(inclusive, tax, expected):
    assert nearest_tax_rate(inclusive, tax, TaxConfig()) == expected


def test_nearest_tax_rate_falls_back_to_default_for_bad_totals():
    assert nearest_tax_rate(D("5.00"), D("6.00"), TaxConfig()) == 20
