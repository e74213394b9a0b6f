"""
Tests for the CurrencyEngine.

Covers:
- Boundary rounding (ROUND_HALF_UP, two places)
- Totals over integer cents
- Exact scalar multiplication and division with one final rounding
- Divide-by-zero policy
- Percentages and line totals
- Float rejection and currency mismatch
"""

from decimal import Decimal

import pytest

from ledger_engines.currency import CurrencyEngine, decompose, round_half_up_div
from ledger_engines.units import UnitEngine
from ledger_kernel.domain.units import UnitKind
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import CurrencyMismatchError


class TestHelpers:
    def test_round_half_up_div(self):
        assert round_half_up_div(5, 2) == 3
        assert round_half_up_div(4, 3) == 1
        assert round_half_up_div(-5, 2) == -3
        assert round_half_up_div(-4, 3) == -1

    def test_round_half_up_div_needs_positive_denominator(self):
        with pytest.raises(ValueError):
            round_half_up_div(1, 0)

    def test_decompose(self):
        assert decompose("12.5") == (125, 10)
        assert decompose("-0.005") == (-5, 1000)
        assert decompose(40) == (40, 1)
        assert decompose(Decimal("1E+2")) == (100, 1)


class TestRounding:
    def setup_method(self):
        self.engine = CurrencyEngine()

    def test_round_half_up(self):
        assert self.engine.round("10.005") == Money(1001)
        assert self.engine.round("10.004") == Money(1000)
        assert self.engine.round("-10.005") == Money(-1001)

    def test_round_money_passthrough(self):
        m = Money.of("3.14")
        assert self.engine.round(m) is m

    def test_to_decimal_two_places(self):
        assert self.engine.to_decimal(Money.of("5")) == Decimal("5.00")
        assert str(self.engine.to_decimal(Money.of("5"))) == "5.00"

    def test_from_decimal_uses_engine_currency(self):
        assert CurrencyEngine("USD").from_decimal("1.50") == Money(150, "USD")

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            self.engine.round(0.1)
        with pytest.raises(TypeError):
            self.engine.multiply(Money.of("1.00"), 1.5)


class TestAdditive:
    def setup_method(self):
        self.engine = CurrencyEngine()

    def test_add(self):
        assert self.engine.add(Money.of("0.10"), Money.of("0.20")) == Money.of("0.30")

    def test_subtract(self):
        assert self.engine.subtract(Money.of("1.00"), Money.of("2.50")) == Money.of("-1.50")

    def test_total_empty(self):
        assert self.engine.total([]) == Money.zero()

    def test_total_many_small_values_exact(self):
        assert self.engine.total([Money.of("0.01")] * 1000) == Money.of("10.00")

    def test_currency_mismatch(self):
        with pytest.raises(CurrencyMismatchError):
            self.engine.add(Money.of("1", "PKR"), Money.of("1", "USD"))


class TestMultiplicative:
    def setup_method(self):
        self.engine = CurrencyEngine()

    def test_multiply_exact(self):
        assert self.engine.multiply(Money.of("100.00"), "1.5") == Money.of("150.00")

    def test_multiply_rounds_once(self):
        # 0.15 * 0.5 = 0.075 -> 0.08
        assert self.engine.multiply(Money.of("0.15"), "0.5") == Money.of("0.08")

    def test_multiply_negative(self):
        assert self.engine.multiply(Money.of("0.15"), "-0.5") == Money.of("-0.08")

    def test_divide(self):
        assert self.engine.divide(Money.of("10.00"), 3) == Money.of("3.33")
        assert self.engine.divide(Money.of("20.00"), 3) == Money.of("6.67")

    def test_divide_by_decimal(self):
        assert self.engine.divide(Money.of("10.00"), "0.5") == Money.of("20.00")

    def test_divide_by_negative(self):
        assert self.engine.divide(Money.of("10.00"), -4) == Money.of("-2.50")

    def test_divide_by_zero_returns_zero(self, captured_logs):
        result = self.engine.divide(Money.of("10.00", "USD"), 0)
        assert result == Money.zero("USD")
        assert any(r["message"] == "currency_divide_by_zero" for r in captured_logs())

    def test_divide_by_zero_string(self):
        assert self.engine.divide(Money.of("10.00"), "0.00").is_zero

    def test_percentage_of(self):
        assert self.engine.percentage_of(Money.of("2500.00"), "12.5") == Money.of("312.50")
        assert self.engine.percentage_of(Money.of("0.05"), 10) == Money.of("0.01")


class TestLineTotal:
    def setup_method(self):
        self.engine = CurrencyEngine()
        self.units = UnitEngine()

    def test_weight_quantity(self):
        q = self.units.parse("1600-60", UnitKind.KG_GRAMS)
        # 1600.060 kg * 250.00 = 400015.00
        assert self.engine.line_total(q, "250.00") == Money.of("400015.00")

    def test_count_quantity(self):
        q = self.units.parse("12.5", UnitKind.FOOT)
        assert self.engine.line_total(q, Money.of("80.00")) == Money.of("1000.00")

    def test_scalar_quantity(self):
        assert self.engine.line_total("3", "19.99") == Money.of("59.97")
