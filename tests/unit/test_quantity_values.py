"""
Unit tests for UnitKind and the Quantity value object.

Parsing lives in UnitEngine; these tests cover representation only.
"""

import pytest

from ledger_kernel.domain.units import Quantity, UnitFamily, UnitKind, plain_decimal


class TestUnitKind:
    def test_families(self):
        assert UnitKind.KG_GRAMS.family is UnitFamily.WEIGHT_MIXED
        assert UnitKind.KG.family is UnitFamily.WEIGHT_DECIMAL
        for kind in (UnitKind.PIECE, UnitKind.BAG, UnitKind.FOOT, UnitKind.METER):
            assert kind.family is UnitFamily.COUNT
            assert not kind.is_weight

    def test_weight_kinds(self):
        assert UnitKind.KG_GRAMS.is_weight
        assert UnitKind.KG.is_weight

    def test_scale(self):
        assert {kind.scale for kind in UnitKind} == {1000}

    def test_from_value(self):
        assert UnitKind.from_value(" Kg-Grams ") is UnitKind.KG_GRAMS
        assert UnitKind.from_value(UnitKind.BAG) is UnitKind.BAG

    def test_from_value_unknown(self):
        with pytest.raises(ValueError):
            UnitKind.from_value("ton")

    def test_symbols(self):
        assert UnitKind.PIECE.symbol == "pcs"
        assert UnitKind.FOOT.label == "Feet"


class TestPlainDecimal:
    def test_strips_trailing_zeros(self):
        assert plain_decimal(12500) == "12.5"
        assert plain_decimal(150000) == "150"

    def test_no_exponent(self):
        assert plain_decimal(1_000_000_000) == "1000000"

    def test_zero(self):
        assert plain_decimal(0) == "0"


class TestQuantity:
    def test_kg_and_grams(self):
        q = Quantity(UnitKind.KG_GRAMS, 1_600_060)
        assert q.kg == 1600
        assert q.grams == 60

    def test_weight_display(self):
        assert Quantity(UnitKind.KG_GRAMS, 1_600_060).display == "1600kg 60g"
        assert Quantity(UnitKind.KG, 500_000).display == "500kg"

    def test_count_display(self):
        assert Quantity(UnitKind.FOOT, 12_500).display == "12.5 ft"
        assert Quantity(UnitKind.BAG, 150_000).display == "150 bags"
        assert str(Quantity(UnitKind.PIECE, 3_000)) == "3 pcs"

    def test_canonical_text(self):
        assert Quantity(UnitKind.KG_GRAMS, 1_600_060).canonical_text == "1600-60"
        assert Quantity(UnitKind.KG_GRAMS, 1_600_000).canonical_text == "1600"
        assert Quantity(UnitKind.KG, 500_100).canonical_text == "500.1"
        assert Quantity(UnitKind.METER, 2_250).canonical_text == "2.25"

    def test_kind_coerced_from_string(self):
        assert Quantity("bag", 1000).kind is UnitKind.BAG

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Quantity(UnitKind.KG, -1)

    def test_non_int_rejected(self):
        with pytest.raises(TypeError):
            Quantity(UnitKind.KG, 1.5)
        with pytest.raises(TypeError):
            Quantity(UnitKind.KG, True)

    def test_zero(self):
        assert Quantity(UnitKind.PIECE, 0).is_zero

    def test_frozen(self):
        q = Quantity(UnitKind.KG, 1000)
        with pytest.raises(AttributeError):
            q.canonical_value = 2000
