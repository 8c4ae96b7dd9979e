"""Tests for unit tables, quantity parsing and conversions."""

import pytest

from shoplist.normalize.units import (
    COUNT,
    MASS,
    VOLUME,
    UnitTable,
    convert,
    dimension,
    parse_number,
    to_base,
)


class TestParseNumber:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2", 2.0),
            ("1.5", 1.5),
            ("1,5", 1.5),
            ("1/2", 0.5),
            ("1 1/2", 1.5),
            ("½", 0.5),
            ("1½", 1.5),
            (" 3 ", 3.0),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_number(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", "abc", "1/0", "1..2", "-1"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_number(text)

    def test_overflow_is_rejected(self):
        with pytest.raises(ValueError, match="out of range"):
            parse_number("9" * 400)


class TestUnitTable:
    def test_canonical_spellings(self):
        units = UnitTable()
        assert units.canonical("cups") == "cup"
        assert units.canonical("Tbsp.") == "tbsp"
        assert units.canonical("L") == "l"
        assert units.canonical("gram") == "g"

    def test_dutch_aliases(self):
        units = UnitTable()
        assert units.canonical("el") == "tbsp"
        assert units.canonical("tl") == "tsp"
        assert units.canonical("stuks") == "piece"
        assert units.canonical("teentjes") == "clove"

    def test_not_a_unit(self):
        assert UnitTable().canonical("flour") is None
        assert UnitTable().canonical("") is None

    def test_with_aliases(self):
        units = UnitTable.with_aliases({"Pak": "piece"})
        assert units.canonical("pak") == "piece"
        # built-ins are kept
        assert units.canonical("cups") == "cup"

    def test_with_aliases_unknown_target(self):
        with pytest.raises(ValueError, match="Unknown unit"):
            UnitTable.with_aliases({"bushel": "bushels"})


class TestConversions:
    def test_dimensions(self):
        assert dimension("kg") == MASS
        assert dimension("cup") == VOLUME
        assert dimension("clove") == COUNT
        assert dimension("") == COUNT

    def test_unknown_dimension(self):
        with pytest.raises(ValueError):
            dimension("bushel")

    def test_to_base(self):
        assert to_base(1.5, "kg") == 1500
        assert to_base(2, "tbsp") == 30

    def test_convert_same_dimension(self):
        assert convert(1, "l", "ml") == 1000
        assert convert(3, "tsp", "tbsp") == pytest.approx(1.0)

    def test_convert_across_dimensions(self):
        with pytest.raises(ValueError, match="Cannot convert"):
            convert(1, "kg", "l")
