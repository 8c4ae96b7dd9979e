"""Tests for the Normalizer pipeline (parse -> categorize -> merge)."""

import pytest

from shoplist.config import load_config
from shoplist.errors import InvalidStrategyError
from shoplist.models import ShoppingItem
from shoplist.normalize import KEEP_SEPARATE, MAX, SUM, Normalizer


@pytest.fixture
def normalizer():
    return Normalizer()


class TestNormalizeLines:
    def test_example_list(self, normalizer):
        result = normalizer.normalize_lines(["2 cups flour", "1 cup flour", "500g rice", ""])
        assert [(i.name, i.quantity, i.unit, i.category) for i in result.items] == [
            ("flour", 3.0, "cup", "pantry"),
            ("rice", 500.0, "g", "pantry"),
        ]
        assert result.items_merged == 1
        assert result.categories_assigned == 3
        assert result.lines_skipped == 1

    def test_empty(self, normalizer):
        result = normalizer.normalize_lines([])
        assert result.items == []
        assert result.items_merged == 0
        assert result.categories_assigned == 0

    def test_default_strategy(self):
        normalizer = Normalizer(default_strategy=MAX)
        result = normalizer.normalize_lines(["2 eggs", "3 eggs"])
        assert result.items[0].quantity == 3.0

    def test_invalid_default_strategy(self):
        with pytest.raises(InvalidStrategyError):
            Normalizer(default_strategy="avg")

    @pytest.mark.parametrize(
        "lines",
        [
            ["2 cups flour", "1 cup flour", "500g rice", "1 kg rice"],
            ["3 eggs", "1 egg", "2 cloves garlic", "1 clove garlic", "100 g garlic"],
        ],
    )
    def test_idempotent(self, normalizer, lines):
        once = normalizer.normalize_lines(lines, SUM)
        separate = normalizer.normalize_lines(lines, KEEP_SEPARATE)
        twice = normalizer.normalize_items(separate.items, SUM)
        again = normalizer.normalize_items(once.items, SUM)

        def totals(items):
            return sorted((i.name, i.unit, i.quantity) for i in items)

        assert totals(twice.items) == totals(once.items)
        assert totals(again.items) == totals(once.items)
        assert again.items_merged == 0


class TestFromConfig:
    def test_config_tables(self, tmp_path):
        cfg = tmp_path / "shop.toml"
        cfg.write_text(
            """\
[normalizer]
locale = "nl"
default_strategy = "max"

[categories.keywords]
snacks = ["chips"]

[units.aliases]
pak = "piece"
""",
            encoding="utf-8",
        )
        normalizer = Normalizer.from_config(load_config(cfg))
        result = normalizer.normalize_lines(["2 pak de chips", "3 pak chips"])
        assert len(result.items) == 1
        item = result.items[0]
        assert (item.name, item.quantity, item.unit, item.category) == ("chips", 3.0, "piece", "snacks")

    def test_config_moves_builtin_keyword(self, tmp_path):
        cfg = tmp_path / "shop.toml"
        cfg.write_text('[categories.keywords]\nbeverages = ["Milk"]\n', encoding="utf-8")
        categorizer = Normalizer.from_config(load_config(cfg)).categorizer
        assert categorizer.lookup("milk") == "beverages"
        assert categorizer.lookup("oat milk") == "beverages"
        assert categorizer.lookup("cheese") == "dairy & eggs"


class TestNormalizeItems:
    def test_merges_stored_items(self, normalizer):
        items = [
            ShoppingItem(id="a", name="Flour", quantity=2, unit="cups"),
            ShoppingItem(id="b", name="flour", quantity=1, unit="cup", completed=True),
            ShoppingItem(id="c", name="Rice", quantity=1, unit="kg", category="grains"),
        ]
        result = normalizer.normalize_items(items, SUM)

        assert [i.id for i in result.items] == ["a", "c"]
        flour, rice = result.items
        assert (flour.name, flour.quantity, flour.unit) == ("flour", 3.0, "cup")
        assert flour.completed is False
        assert flour.category == "pantry"
        # existing categories are kept
        assert rice.category == "grains"
        assert result.items_merged == 1
        assert result.duplicates_found == 1
        assert result.items_standardized == 2
        assert result.categories_assigned == 2

    def test_completed_only_when_all_completed(self, normalizer):
        items = [
            ShoppingItem(id="a", name="eggs", quantity=2, completed=True),
            ShoppingItem(id="b", name="eggs", quantity=4, completed=True),
        ]
        result = normalizer.normalize_items(items, SUM)
        assert result.items[0].completed is True
        assert result.items[0].quantity == 6.0

    def test_keep_separate_keeps_items(self, normalizer):
        items = [
            ShoppingItem(id="a", name="Eggs", quantity=2),
            ShoppingItem(id="b", name="eggs", quantity=4),
        ]
        result = normalizer.normalize_items(items, KEEP_SEPARATE)
        assert [(i.id, i.name, i.quantity) for i in result.items] == [("a", "eggs", 2), ("b", "eggs", 4)]
        assert result.items_merged == 0
        assert result.duplicates_found == 1

    def test_unknown_unit(self, normalizer):
        with pytest.raises(ValueError, match="Unknown unit"):
            normalizer.normalize_items([ShoppingItem(id="a", name="sand", unit="bucket")])

    def test_empty(self, normalizer):
        assert normalizer.normalize_items([]).items == []
