"""Tests for keyword category assignment."""

from shoplist.models import ParsedItem
from shoplist.normalize.categorizer import (
    DEFAULT_CATEGORIES,
    Categorizer,
    merge_category_tables,
)


class TestLookup:
    def test_exact_match(self):
        assert Categorizer().lookup("flour") == "pantry"

    def test_exact_beats_prefix(self):
        cat = Categorizer()
        assert cat.lookup("paprika powder") == "spices"
        assert cat.lookup("paprika") == "produce"

    def test_prefix_match(self):
        assert Categorizer().lookup("chicken breast") == "meat & fish"

    def test_substring_match(self):
        assert Categorizer().lookup("whole milk") == "dairy & eggs"

    def test_short_keywords_match_whole_words_only(self):
        cat = Categorizer()
        # "ui" must not match inside "quinoa"
        assert cat.lookup("quinoa") == "uncategorized"
        assert cat.lookup("vanille ijs") == "frozen"

    def test_case_and_whitespace(self):
        assert Categorizer().lookup("  Olive   OIL ") == "pantry"

    def test_unknown(self):
        assert Categorizer().lookup("widget") == "uncategorized"
        assert Categorizer().lookup("") == "uncategorized"

    def test_custom_table(self):
        cat = Categorizer({"snacks": ["chips", "crisps"]})
        assert cat.lookup("chips") == "snacks"
        assert cat.lookup("flour") == "uncategorized"
        assert cat.categories == ("snacks",)


class TestCategorizeItems:
    def test_only_uncategorized_items_are_filled(self):
        items = [
            ParsedItem(name="flour"),
            ParsedItem(name="eggs", category="breakfast"),
            ParsedItem(name="widget"),
        ]
        result, assigned = Categorizer().categorize_items(items)
        assert [i.category for i in result] == ["pantry", "breakfast", "uncategorized"]
        assert assigned == 1

    def test_does_not_mutate_input(self):
        items = [ParsedItem(name="flour")]
        Categorizer().categorize_items(items)
        assert items[0].category == "uncategorized"


def test_merge_category_tables_extra_first():
    merged = merge_category_tables(DEFAULT_CATEGORIES, {"pantry": ["quinoa"], "snacks": ["chips"]})
    assert merged["pantry"][0] == "quinoa"
    assert "flour" in merged["pantry"]
    assert merged["snacks"] == ["chips"]
    # base table untouched
    assert "quinoa" not in DEFAULT_CATEGORIES["pantry"]


def test_merge_category_tables_moves_keyword():
    merged = merge_category_tables(DEFAULT_CATEGORIES, {"beverages": ["Milk"]})
    assert merged["beverages"][0] == "milk"
    assert "milk" not in merged["dairy & eggs"]
    assert Categorizer(merged).lookup("milk") == "beverages"
    assert Categorizer().lookup("milk") == "dairy & eggs"
