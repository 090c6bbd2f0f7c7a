"""Tests for splitledger.domain.money pure functions."""

from decimal import Decimal

import pytest

from splitledger.domain.errors import InvalidAmount, MoneyContractError
from splitledger.domain.models import Currency, Money
from splitledger.domain.money import (
    divide,
    ensure_minor_units,
    format_money,
    parse_money,
    percentage_of,
    to_decimal,
    to_percentage,
)


class TestEnsureMinorUnits:
    """Tests for ensure_minor_units."""

    def test_accepts_int(self) -> None:
        """Should accept plain integers."""
        assert ensure_minor_units(1250) == 1250

    def test_rejects_float(self) -> None:
        """Should refuse floats even when they look whole."""
        with pytest.raises(MoneyContractError):
            ensure_minor_units(12.0)

    def test_rejects_bool(self) -> None:
        """Should refuse bools despite being int subclasses."""
        with pytest.raises(MoneyContractError):
            ensure_minor_units(True)

    def test_rejects_decimal(self) -> None:
        """Should refuse Decimal amounts."""
        with pytest.raises(MoneyContractError):
            ensure_minor_units(Decimal("12.50"))

    def test_contract_error_is_type_error(self) -> None:
        """Should be catchable as TypeError."""
        with pytest.raises(TypeError):
            ensure_minor_units("100")


class TestDivide:
    """Tests for divide."""

    def test_even_division(self) -> None:
        """Should split evenly when there is no remainder."""
        assert divide(Money(9000), 3) == [3000, 3000, 3000]

    def test_remainder_goes_to_first_shares(self) -> None:
        """Should hand remainder cents to the first shares."""
        assert divide(Money(10000), 3) == [3334, 3333, 3333]  # $100 / 3

    def test_two_cent_remainder(self) -> None:
        """Should spread a two-cent remainder across the first two shares."""
        assert divide(Money(1001), 3) == [334, 334, 333]

    def test_sum_is_exact(self) -> None:
        """Should always sum back to the total."""
        for total in (1, 99, 1000, 12345):
            for n in range(1, 8):
                assert sum(divide(Money(total), n)) == total

    def test_total_smaller_than_count(self) -> None:
        """Should give zero shares when there aren't enough cents."""
        assert divide(Money(2), 3) == [1, 1, 0]

    def test_rejects_zero_shares(self) -> None:
        """Should refuse to divide into fewer than one share."""
        with pytest.raises(ValueError):
            divide(Money(100), 0)


class TestPercentages:
    """Tests for to_percentage and percentage_of."""

    def test_parses_string_with_percent_sign(self) -> None:
        """Should strip a trailing percent sign."""
        assert to_percentage("33.33%") == Decimal("33.33")

    def test_accepts_int(self) -> None:
        """Should accept whole-number percentages."""
        assert to_percentage(50) == Decimal(50)

    def test_rejects_float(self) -> None:
        """Should refuse float percentages."""
        with pytest.raises(MoneyContractError):
            to_percentage(33.33)

    def test_rejects_garbage(self) -> None:
        """Should raise InvalidAmount for non-numeric text."""
        with pytest.raises(InvalidAmount):
            to_percentage("lots")

    def test_rejects_non_finite(self) -> None:
        """Should raise InvalidAmount for NaN and infinity, as text or Decimal."""
        for bad in ("nan", "NaN%", "inf", "-Infinity", Decimal("NaN"), Decimal("Infinity")):
            with pytest.raises(InvalidAmount):
                to_percentage(bad)

    def test_rounds_half_to_even(self) -> None:
        """Should round exact halves to the even cent."""
        assert percentage_of(Money(5000), Decimal("33.33")) == 1666  # 1666.5 -> 1666
        assert percentage_of(Money(5000), Decimal("33.35")) == 1668  # 1667.5 -> 1668

    def test_rounds_to_nearest(self) -> None:
        """Should round non-ties to the nearest cent."""
        assert percentage_of(Money(1000), Decimal("2.9")) == 29
        assert percentage_of(Money(1234), Decimal("2.9")) == 36  # 35.786


class TestParseMoney:
    """Tests for parse_money."""

    def test_parses_plain_amount(self) -> None:
        """Should convert major units to cents."""
        assert parse_money("12.50") == 1250

    def test_parses_symbol_and_separators(self) -> None:
        """Should ignore currency symbols and thousands separators."""
        assert parse_money("$1,234.5") == 123450

    def test_parses_whole_number(self) -> None:
        """Should accept amounts without decimals."""
        assert parse_money("100") == 10000

    def test_rejects_fractional_cents(self) -> None:
        """Should refuse amounts finer than a cent."""
        assert parse_money("1.005") is None

    def test_rejects_negative(self) -> None:
        """Should refuse negative amounts."""
        assert parse_money("-5.00") is None

    def test_rejects_empty_and_garbage(self) -> None:
        """Should return None for empty or non-numeric text."""
        assert parse_money("") is None
        assert parse_money("  ") is None
        assert parse_money("abc") is None
        assert parse_money("NaN") is None


class TestFormatMoney:
    """Tests for format_money and to_decimal."""

    def test_formats_known_currency(self) -> None:
        """Should use the currency symbol."""
        assert format_money(Money(1250)) == "$12.50"
        assert format_money(Money(1250), Currency("GBP")) == "£12.50"

    def test_formats_negative(self) -> None:
        """Should put the sign before the symbol."""
        assert format_money(Money(-300)) == "-$3.00"

    def test_includes_positive_sign(self) -> None:
        """Should prefix positive amounts when asked."""
        assert format_money(Money(300), include_sign=True) == "+$3.00"
        assert format_money(Money(0), include_sign=True) == "$0.00"

    def test_formats_unknown_currency_with_code(self) -> None:
        """Should fall back to the currency code."""
        assert format_money(Money(400), Currency("CHF")) == "CHF 4.00"

    def test_formats_thousands(self) -> None:
        """Should group thousands."""
        assert format_money(Money(123456789)) == "$1,234,567.89"

    def test_to_decimal(self) -> None:
        """Should convert cents to major units exactly."""
        assert to_decimal(Money(1250)) == Decimal("12.50")
