"""Tests for best-match selection and supermarket price comparison."""

import math

import pytest

from shoplist.models import ProductCandidate, ShoppingItem
from shoplist.pricing import (
    cheapest_summary,
    compare_prices,
    optimize,
    packages_needed,
    select_best_matches,
)


def _candidate(name, price=1.0, market="AH", distance=None):
    return ProductCandidate(name=name, price=price, supermarket_name=market, distance=distance)


class TestSelectBestMatches:
    def test_top_k_by_distance(self):
        candidates = [_candidate("a", distance=0.4), _candidate("b", distance=0.1), _candidate("c", distance=0.9)]
        best = select_best_matches(candidates, 2)
        assert [c.distance for c in best] == [0.1, 0.4]

    def test_missing_distance_ranks_last(self):
        candidates = [_candidate("none"), _candidate("nan", distance=math.nan), _candidate("close", distance=0.3)]
        assert [c.name for c in select_best_matches(candidates)] == ["close", "none", "nan"]

    def test_ties_keep_input_order(self):
        candidates = [_candidate("first", distance=0.2), _candidate("second", distance=0.2)]
        assert [c.name for c in select_best_matches(candidates, 1)] == ["first"]

    def test_empty_and_zero_count(self):
        assert select_best_matches([]) == []
        assert select_best_matches([_candidate("a", distance=0.1)], 0) == []

    def test_does_not_mutate_input(self):
        candidates = [_candidate("a", distance=0.4), _candidate("b", distance=0.1)]
        select_best_matches(candidates)
        assert [c.name for c in candidates] == ["a", "b"]


class TestPackages:
    @pytest.mark.parametrize(
        "quantity, unit, expected",
        [(6, "", 6), (2.5, "piece", 3), (0, "", 1), (1.5, "l", 1), (500, "g", 1)],
    )
    def test_packages_needed(self, quantity, unit, expected):
        item = ShoppingItem(id="x", name="x", quantity=quantity, unit=unit)
        assert packages_needed(item) == expected


class TestComparePrices:
    @pytest.fixture
    def items(self):
        return [
            ShoppingItem(id="milk", name="milk", quantity=1, unit="l"),
            ShoppingItem(id="eggs", name="eggs", quantity=6),
        ]

    def test_cheapest_first(self, items):
        candidates = {
            "milk": [
                _candidate("AH melk", 1.20, "AH", 0.1),
                _candidate("Jumbo melk", 1.00, "Jumbo", 0.2),
            ],
            "eggs": [
                _candidate("AH ei", 0.30, "AH", 0.1),
                _candidate("Jumbo ei", 0.25, "Jumbo", 0.1),
            ],
        }
        comparisons = compare_prices(items, candidates)

        assert [c.supermarket_name for c in comparisons] == ["Jumbo", "AH"]
        assert comparisons[0].total == pytest.approx(2.50)
        assert comparisons[1].total == pytest.approx(3.00)
        eggs = comparisons[0].items[1]
        assert eggs.packages == 6

        summary = cheapest_summary(comparisons)
        assert summary == {"supermarketName": "Jumbo", "total": 2.5, "savings": 0.5}

    def test_missing_items_rank_after_complete_markets(self, items):
        candidates = {
            "milk": [_candidate("AH melk", 1.20, "AH"), _candidate("Lidl melk", 0.80, "Lidl")],
            "eggs": [_candidate("AH ei", 0.30, "AH")],
        }
        comparisons = compare_prices(items, candidates)
        assert [c.supermarket_name for c in comparisons] == ["AH", "Lidl"]
        assert comparisons[1].missing_items == ["eggs"]
        data = comparisons[1].to_dict()
        assert data["availableItems"] == 1
        assert data["missingItems"] == ["eggs"]

    def test_cheapest_among_best_matches(self):
        item = ShoppingItem(id="rice", name="rice", quantity=1, unit="kg")
        candidates = {
            "rice": [
                _candidate("basmati", 2.00, "AH", 0.1),
                _candidate("jasmine", 1.50, "AH", 0.2),
                # cheap but a poor match
                _candidate("rice crackers", 0.50, "AH", 0.9),
            ]
        }
        comparisons = compare_prices([item], candidates, matches_per_item=2)
        assert comparisons[0].items[0].product.name == "jasmine"

    def test_no_candidates(self, items):
        assert compare_prices(items, {}) == []
        assert cheapest_summary([]) is None


class TestOptimize:
    @pytest.fixture
    def items(self):
        return [
            ShoppingItem(id="milk", name="milk", quantity=1, unit="l"),
            ShoppingItem(id="eggs", name="eggs", quantity=6),
        ]

    @pytest.fixture
    def comparisons(self, items):
        candidates = {
            "milk": [
                _candidate("AH melk", 1.20, "AH"),
                _candidate("Jumbo melk", 0.99, "Jumbo"),
                _candidate("Lidl melk", 0.80, "Lidl"),
            ],
            "eggs": [_candidate("AH ei", 0.30, "AH"), _candidate("Jumbo ei", 0.35, "Jumbo")],
        }
        return compare_prices(items, candidates)

    def test_splits_over_two_stores(self, items, comparisons):
        result = optimize(items, comparisons, max_supermarkets=2)

        assert [(s.supermarket_name, [p.item.id for p in s.items]) for s in result.stores] == [
            ("AH", ["eggs"]),
            ("Lidl", ["milk"]),
        ]
        assert result.original_price == pytest.approx(3.00)
        assert result.optimized_price == pytest.approx(2.60)
        assert result.total_savings == pytest.approx(0.40)
        assert result.missing_items == []

        data = result.to_dict()
        assert data["totalSavings"] == pytest.approx(0.40)
        assert [r["supermarketName"] for r in data["recommendations"]] == ["AH", "Lidl"]

    def test_single_store(self, items, comparisons):
        result = optimize(items, comparisons, max_supermarkets=1)
        assert [s.supermarket_name for s in result.stores] == ["AH"]
        assert result.total_savings == 0.0

    def test_prefers_fewer_stores_on_equal_total(self):
        item = ShoppingItem(id="rice", name="rice")
        comparisons = compare_prices(
            [item], {"rice": [_candidate("a", 1.0, "AH"), _candidate("b", 1.0, "Jumbo")]}
        )
        result = optimize([item], comparisons, max_supermarkets=3)
        assert [s.supermarket_name for s in result.stores] == ["AH"]

    def test_nothing_found(self, items):
        result = optimize(items, [])
        assert result.stores == []
        assert result.missing_items == ["milk", "eggs"]
        assert result.optimized_price == 0.0

    def test_invalid_max(self, items, comparisons):
        with pytest.raises(ValueError):
            optimize(items, comparisons, max_supermarkets=0)
