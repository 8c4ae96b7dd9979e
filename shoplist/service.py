"""Shopping-list use cases: standardize, clean up, price and edit lists."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .db import ShoppingListDB
from .errors import NotFoundError, OracleError
from .models import UNCATEGORIZED, ParsedItem, ShoppingItem, ShoppingList, new_id
from .normalize import (
    KEEP_SEPARATE,
    SUM,
    Normalizer,
    merge_group,
    merge_items,
    merge_key,
    normalize_name,
    parse_line,
    parse_lines,
    validate_strategy,
)
from .oracles import ProductSearch, TextStandardizer
from .pricing import (
    Optimization,
    PriceComparison,
    cheapest_summary,
    compare_prices,
    optimize,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Shopping list"


@dataclass
class CleanUpResult:
    list_id: str
    items_merged: int = 0
    categories_assigned: int = 0
    duplicates_found: int = 0
    items_standardized: int = 0
    items: list[ShoppingItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "listId": self.list_id,
            "itemsMerged": self.items_merged,
            "categoriesAssigned": self.categories_assigned,
            "duplicatesFound": self.duplicates_found,
            "itemsStandardized": self.items_standardized,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class CheapestResult:
    list_id: str
    comparisons: list[PriceComparison] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "listId": self.list_id,
            "comparisons": [c.to_dict() for c in self.comparisons],
            "cheapest": cheapest_summary(self.comparisons),
        }


@dataclass
class OptimizeResult:
    list_id: str
    optimization: Optimization = field(default_factory=Optimization)

    def to_dict(self) -> dict:
        return {"listId": self.list_id, **self.optimization.to_dict()}


class ShoppingListService:
    """Application layer around the normalizer, the list store and the oracles.

    Everything is passed in by the composition root; the service never
    creates or closes clients itself.
    """

    def __init__(
        self,
        repository: ShoppingListDB,
        normalizer: Normalizer | None = None,
        search: ProductSearch | None = None,
        standardizer: TextStandardizer | None = None,
        *,
        search_limit: int = 15,
        matches_per_item: int = 3,
        language: str = "nl",
    ) -> None:
        self._repo = repository
        self._normalizer = normalizer or Normalizer()
        self._search = search
        self._standardizer = standardizer
        self._search_limit = search_limit
        self._matches_per_item = matches_per_item
        self._language = language

    @property
    def normalizer(self) -> Normalizer:
        return self._normalizer

    # -- lists -----------------------------------------------------------

    def resolve_list(self, list_id: str | None = None) -> ShoppingList:
        """Return the given list, or the active one when no id is passed.

        Raises:
            NotFoundError: If the list (or an active list) does not exist.
        """
        if list_id:
            return self._repo.get_list(list_id)
        active = self._repo.find_active()
        if active is None:
            raise NotFoundError("No active shopping list found")
        return active

    def create_list(
        self,
        name: str = DEFAULT_LIST_NAME,
        lines: Sequence[str] = (),
        merge_strategy: str | None = None,
        *,
        active: bool = True,
    ) -> ShoppingList:
        """Create a list from raw lines, merged with the given strategy."""
        result = self._normalizer.normalize_lines(lines, merge_strategy)
        return self._repo.create_list(name, result.items, active=active)

    # -- use cases -------------------------------------------------------

    async def standardize_text(
        self, lines: Sequence[str], language: str | None = None
    ) -> list[ShoppingItem]:
        """Parse lines into one item per line (no merging).

        Lines that fail to parse are skipped. When a text standardizer is
        configured, its canonical names and categories replace the parsed
        ones.
        """
        options = self._normalizer.parser_options
        parsed, skipped = parse_lines(lines, options)

        if self._standardizer is not None and parsed:
            known = set(self._normalizer.categorizer.categories)
            refined = await self._standardizer.standardize(
                [p.raw_text for p in parsed], language or self._language
            )
            by_line = {r.line: r for r in refined}
            updated = []
            for p in parsed:
                std = by_line.get(p.raw_text)
                if std is None:
                    updated.append(p)
                    continue
                name = normalize_name(std.name, options) or p.name
                category = std.category if std.category in known else p.category
                updated.append(dataclasses.replace(p, name=name, category=category))
            parsed = updated

        categorized, assigned = self._normalizer.categorizer.categorize_items(parsed)
        result = merge_items(categorized, KEEP_SEPARATE, self._normalizer.merge_options)
        logger.info(
            "Standardized %d lines into %d items (%d categorized, %d skipped)",
            len(lines),
            len(result.items),
            assigned,
            skipped,
        )
        return result.items

    def clean_up(
        self, list_id: str | None = None, merge_strategy: str | None = None
    ) -> CleanUpResult:
        """Normalize names, fill categories and merge duplicates of a stored list.

        Raises:
            InvalidStrategyError: For an unknown merge strategy.
            NotFoundError: If the list does not exist.
        """
        strategy = validate_strategy(merge_strategy, self._normalizer.default_strategy)
        shopping_list = self.resolve_list(list_id)
        result = self._normalizer.normalize_items(shopping_list.items, strategy)
        stored = self._repo.replace_items(shopping_list.id, result.items)
        logger.info(
            "Cleaned up list %s: %d merged, %d categorized (strategy=%s)",
            shopping_list.id,
            result.items_merged,
            result.categories_assigned,
            strategy,
        )
        return CleanUpResult(
            list_id=shopping_list.id,
            items_merged=result.items_merged,
            categories_assigned=result.categories_assigned,
            duplicates_found=result.duplicates_found,
            items_standardized=result.items_standardized,
            items=list(stored.items),
        )

    async def find_cheapest(self, list_id: str | None = None) -> CheapestResult:
        """Compare the price of the list's open items across supermarkets.

        Raises:
            NotFoundError: If the list does not exist.
            OracleError: If search is not configured or fails.
        """
        shopping_list = await asyncio.to_thread(self.resolve_list, list_id)
        _, comparisons = await self._price_pending(shopping_list)
        return CheapestResult(list_id=shopping_list.id, comparisons=comparisons)

    async def optimize(
        self, list_id: str | None = None, max_supermarkets: int = 2
    ) -> OptimizeResult:
        """Split the list's open items over at most ``max_supermarkets`` stores.

        Raises:
            NotFoundError: If the list does not exist.
            OracleError: If search is not configured or fails.
            ValueError: If ``max_supermarkets`` is below 1.
        """
        if max_supermarkets < 1:
            raise ValueError("maxSupermarkets must be at least 1")
        shopping_list = await asyncio.to_thread(self.resolve_list, list_id)
        pending, comparisons = await self._price_pending(shopping_list)
        result = optimize(pending, comparisons, max_supermarkets)
        logger.info(
            "Optimized list %s over %d store(s): %.2f -> %.2f",
            shopping_list.id,
            len(result.stores),
            result.original_price,
            result.optimized_price,
        )
        return OptimizeResult(list_id=shopping_list.id, optimization=result)

    async def _price_pending(
        self, shopping_list: ShoppingList
    ) -> tuple[list[ShoppingItem], list[PriceComparison]]:
        if self._search is None:
            raise OracleError("Product search is not configured")

        pending = [i for i in shopping_list.items if not i.completed]
        results = await asyncio.gather(
            *(self._search.search(i.name, self._search_limit) for i in pending)
        )
        candidates = {item.id: found for item, found in zip(pending, results)}
        for item, found in zip(pending, results):
            if not found:
                logger.warning("No similar products found for %r", item.name)

        return pending, compare_prices(pending, candidates, self._matches_per_item)

    # -- items -----------------------------------------------------------

    def add_item(self, text: str, list_id: str | None = None) -> ShoppingItem:
        """Parse one line and add it to a list.

        An open item for the same product (same name, category and unit
        dimension) has the new quantity added to it instead of getting a
        second row. Without ``list_id`` the active list is used, and one is
        created when none exists.

        Raises:
            ParseError: If the line is empty.
            NotFoundError: If ``list_id`` does not exist.
        """
        parsed = parse_line(text, options=self._normalizer.parser_options)
        parsed = dataclasses.replace(
            parsed, category=self._normalizer.categorizer.lookup(parsed.name)
        )

        target = self._repo.get_list(list_id) if list_id else self._repo.find_active()
        if target is None:
            item = self._new_item(parsed)
            self._repo.create_list(DEFAULT_LIST_NAME, [item], active=True)
            return item

        same = self._same_product(target, parsed)
        if same is not None:
            existing, as_parsed = same
            merged = merge_group(
                [as_parsed, parsed], SUM, self._normalizer.merge_options
            )
            logger.debug("Merged %r into item %s", parsed.raw_text, existing.id)
            return self._repo.update_item(
                target.id,
                existing.id,
                quantity=merged.quantity,
                unit=merged.unit,
                notes=merged.notes,
            )

        item = self._new_item(parsed)
        self._repo.add_item(target.id, item)
        return item

    def update_item(self, list_id: str, item_id: str, **changes) -> ShoppingItem:
        """Update an item; units are canonicalized and must be known.

        Raises:
            NotFoundError: If the list or item does not exist.
            ValueError: For unknown units or invalid values.
        """
        if changes.get("unit") is not None:
            unit = changes["unit"]
            canonical = self._normalizer.parser_options.units.canonical(unit) if unit else ""
            if canonical is None:
                raise ValueError(f"Unknown unit: {unit!r}")
            changes["unit"] = canonical
        if changes.get("category") == "":
            changes["category"] = UNCATEGORIZED
        return self._repo.update_item(list_id, item_id, **changes)

    def remove_item(self, list_id: str, item_id: str) -> None:
        self._repo.delete_item(list_id, item_id)

    def clear_completed(self, list_id: str | None = None) -> ShoppingList:
        """Drop every completed item from a list (the active one by default)."""
        shopping_list = self.resolve_list(list_id)
        remaining = [i for i in shopping_list.items if not i.completed]
        stored = self._repo.replace_items(shopping_list.id, remaining)
        logger.info(
            "Cleared %d completed item(s) from list %s",
            len(shopping_list.items) - len(remaining),
            shopping_list.id,
        )
        return stored

    def activate(self, list_id: str) -> ShoppingList:
        """Make ``list_id`` the only active list."""
        self._repo.set_active(list_id)
        return self._repo.get_list(list_id)

    def delete_list(self, list_id: str) -> None:
        self._repo.delete_list(list_id)

    # -- helpers ---------------------------------------------------------

    def _new_item(self, parsed: ParsedItem) -> ShoppingItem:
        return ShoppingItem(
            id=new_id(),
            name=parsed.name,
            quantity=parsed.quantity,
            unit=parsed.unit,
            category=parsed.category,
            notes=parsed.raw_text,
        )

    def _same_product(
        self, shopping_list: ShoppingList, parsed: ParsedItem
    ) -> tuple[ShoppingItem, ParsedItem] | None:
        units = self._normalizer.parser_options.units
        key = merge_key(parsed)
        for item in shopping_list.items:
            if item.completed or item.category != parsed.category:
                continue
            unit = units.canonical(item.unit) if item.unit else ""
            if unit is None:
                continue
            candidate = ParsedItem(
                name=item.name,
                quantity=item.quantity,
                unit=unit,
                category=item.category,
                raw_text=item.notes or "",
            )
            if merge_key(candidate) == key:
                return item, candidate
        return None
