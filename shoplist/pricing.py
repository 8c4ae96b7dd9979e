"""Best-match selection, per-supermarket price comparison and store splitting."""

from __future__ import annotations

import itertools
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .models import ProductCandidate, ShoppingItem
from .normalize.units import COUNT, dimension

DEFAULT_MATCH_COUNT = 3


def _distance_key(candidate: ProductCandidate) -> float:
    d = candidate.distance
    if d is None or (isinstance(d, float) and math.isnan(d)):
        return math.inf
    return d


def select_best_matches(
    candidates: Sequence[ProductCandidate], count: int = DEFAULT_MATCH_COUNT
) -> list[ProductCandidate]:
    """Return the ``count`` closest candidates, lowest distance first.

    Missing distances rank last; ties keep input order. The input sequence
    is not modified.
    """
    if count <= 0 or not candidates:
        return []
    return sorted(candidates, key=_distance_key)[:count]


@dataclass
class PricedItem:
    item: ShoppingItem
    product: ProductCandidate
    packages: int
    price: float

    def to_dict(self) -> dict:
        return {
            "itemId": self.item.id,
            "name": self.item.name,
            "product": self.product.to_dict(),
            "packages": self.packages,
            "price": round(self.price, 2),
        }


@dataclass
class PriceComparison:
    supermarket_name: str
    items: list[PricedItem] = field(default_factory=list)
    missing_items: list[str] = field(default_factory=list)

    @property
    def total(self) -> float:
        return round(sum(p.price for p in self.items), 2)

    def to_dict(self) -> dict:
        return {
            "supermarketName": self.supermarket_name,
            "items": [p.to_dict() for p in self.items],
            "total": self.total,
            "availableItems": len(self.items),
            "missingItems": list(self.missing_items),
        }


def packages_needed(item: ShoppingItem) -> int:
    """Number of products to buy for an item.

    Counted items ("3 lemons") need one product per piece; measured items
    ("500 g rice") are covered by a single package.
    """
    if dimension(item.unit) == COUNT and item.quantity > 0:
        return max(1, math.ceil(item.quantity))
    return 1


def compare_prices(
    items: Sequence[ShoppingItem],
    candidates_by_item: Mapping[str, Sequence[ProductCandidate]],
    matches_per_item: int = DEFAULT_MATCH_COUNT,
) -> list[PriceComparison]:
    """Price a list at every supermarket that appears in the candidates.

    For each supermarket and item, the best ``matches_per_item`` candidates
    from that supermarket are considered and the cheapest one is picked.
    Results are ordered by number of missing items, then total price.

    Args:
        items: Items to price.
        candidates_by_item: Search results keyed by item id.
        matches_per_item: How many of the closest matches compete on price.
    """
    supermarkets: list[str] = []
    for item in items:
        for c in candidates_by_item.get(item.id, ()):
            if c.supermarket_name not in supermarkets:
                supermarkets.append(c.supermarket_name)

    comparisons: list[PriceComparison] = []
    for market in supermarkets:
        comp = PriceComparison(supermarket_name=market)
        for item in items:
            local = [
                c
                for c in candidates_by_item.get(item.id, ())
                if c.supermarket_name == market
            ]
            best = select_best_matches(local, matches_per_item)
            if not best:
                comp.missing_items.append(item.name)
                continue
            product = min(best, key=lambda c: c.price)
            packages = packages_needed(item)
            comp.items.append(
                PricedItem(
                    item=item,
                    product=product,
                    packages=packages,
                    price=product.price * packages,
                )
            )
        comparisons.append(comp)

    return sorted(comparisons, key=lambda c: (len(c.missing_items), c.total))


def cheapest_summary(comparisons: Sequence[PriceComparison]) -> dict | None:
    """Summarize the cheapest supermarket and savings versus the most expensive."""
    if not comparisons:
        return None
    cheapest = comparisons[0]
    most_expensive = max(comparisons, key=lambda c: c.total)
    return {
        "supermarketName": cheapest.supermarket_name,
        "total": cheapest.total,
        "savings": round(max(most_expensive.total - cheapest.total, 0.0), 2),
    }


@dataclass
class Optimization:
    """A list split over a few supermarkets, cheapest store per item."""

    stores: list[PriceComparison] = field(default_factory=list)
    missing_items: list[str] = field(default_factory=list)
    original_price: float = 0.0

    @property
    def optimized_price(self) -> float:
        return round(sum(s.total for s in self.stores), 2)

    @property
    def total_savings(self) -> float:
        return round(max(self.original_price - self.optimized_price, 0.0), 2)

    def to_dict(self) -> dict:
        return {
            "originalPrice": self.original_price,
            "optimizedPrice": self.optimized_price,
            "totalSavings": self.total_savings,
            "recommendations": [
                {
                    "supermarketName": s.supermarket_name,
                    "items": [p.to_dict() for p in s.items],
                    "total": s.total,
                }
                for s in self.stores
            ],
            "missingItems": list(self.missing_items),
        }


def optimize(
    items: Sequence[ShoppingItem],
    comparisons: Sequence[PriceComparison],
    max_supermarkets: int = 2,
) -> Optimization:
    """Split a list over at most ``max_supermarkets`` stores.

    Every set of up to ``max_supermarkets`` stores is tried; within a set
    each item goes to the store that sells it cheapest. The set that covers
    the most items wins, then the lowest total, then the fewest stores.
    ``original_price`` is the total at the best single store.

    Args:
        items: The items that were priced.
        comparisons: Output of :func:`compare_prices` for those items.
        max_supermarkets: Upper bound on the number of stores to visit.

    Raises:
        ValueError: If ``max_supermarkets`` is below 1.
    """
    if max_supermarkets < 1:
        raise ValueError("maxSupermarkets must be at least 1")
    if not comparisons:
        return Optimization(missing_items=[i.name for i in items])

    offers = {c.supermarket_name: {p.item.id: p for p in c.items} for c in comparisons}
    markets = [c.supermarket_name for c in comparisons]

    best_key = None
    best: tuple[tuple[str, ...], dict[str, PricedItem]] = ((), {})
    for size in range(1, min(max_supermarkets, len(markets)) + 1):
        for combo in itertools.combinations(markets, size):
            picks: dict[str, PricedItem] = {}
            for item in items:
                priced = [offers[m][item.id] for m in combo if item.id in offers[m]]
                if priced:
                    picks[item.id] = min(priced, key=lambda p: p.price)
            key = (
                len(items) - len(picks),
                round(sum(p.price for p in picks.values()), 2),
                size,
            )
            if best_key is None or key < best_key:
                best_key, best = key, (combo, picks)

    combo, picks = best
    stores = []
    for market in combo:
        chosen = [
            picks[i.id]
            for i in items
            if i.id in picks and picks[i.id].product.supermarket_name == market
        ]
        if chosen:
            stores.append(PriceComparison(supermarket_name=market, items=chosen))

    return Optimization(
        stores=stores,
        missing_items=[i.name for i in items if i.id not in picks],
        original_price=comparisons[0].total,
    )
