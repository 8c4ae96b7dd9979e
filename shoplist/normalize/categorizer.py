"""Keyword-based category assignment for parsed shopping items."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Mapping

from ..models import UNCATEGORIZED, ParsedItem

# Category → keywords (English and Dutch). Order matters for ties.
DEFAULT_CATEGORIES: dict[str, list[str]] = {
    "produce": [
        "apple", "apples", "banana", "bananas", "lemon", "lime", "orange",
        "strawberries", "grapes", "avocado", "tomato", "tomatoes", "onion",
        "onions", "garlic", "potato", "potatoes", "carrot", "carrots",
        "cucumber", "lettuce", "spinach", "broccoli", "pepper", "zucchini",
        "mushroom", "mushrooms", "celery", "leek", "ginger", "parsley",
        "basil", "coriander", "cilantro", "herbs", "fruit", "vegetables",
        "appel", "appels", "banaan", "bananen", "citroen", "sinaasappel",
        "tomaat", "tomaten", "ui", "uien", "knoflook", "aardappel",
        "aardappelen", "wortel", "wortels", "komkommer", "sla", "spinazie",
        "paprika", "courgette", "champignons", "prei", "gember",
        "peterselie", "basilicum", "groente", "fruit",
    ],
    "meat & fish": [
        "chicken", "beef", "pork", "bacon", "ham", "sausage", "mince",
        "ground beef", "turkey", "lamb", "salmon", "tuna", "cod", "shrimp",
        "prawns", "fish", "kip", "kipfilet", "gehakt", "rundvlees",
        "varkensvlees", "spek", "spekjes", "worst", "zalm", "tonijn",
        "garnalen", "vis", "vlees",
    ],
    "dairy & eggs": [
        "milk", "cheese", "butter", "yogurt", "yoghurt", "cream",
        "sour cream", "egg", "eggs", "mozzarella", "parmesan", "feta",
        "melk", "kaas", "boter", "roomboter", "room", "slagroom",
        "kwark", "ei", "eieren", "zuivel",
    ],
    "bakery": [
        "bread", "baguette", "rolls", "bagel", "croissant", "tortilla",
        "tortillas", "wraps", "brood", "volkorenbrood", "stokbrood",
        "broodjes", "beschuit",
    ],
    "pantry": [
        "flour", "sugar", "rice", "pasta", "spaghetti", "penne", "noodles",
        "oats", "beans", "lentils", "chickpeas", "olive oil", "oil",
        "vinegar", "honey", "stock", "broth", "canned", "tomato paste",
        "peanut butter", "jam", "cereal", "bloem", "meel", "suiker", "rijst",
        "mie", "havermout", "bonen", "linzen", "kikkererwten", "olijfolie",
        "olie", "azijn", "honing", "bouillon", "pindakaas", "jam",
    ],
    "spices": [
        "salt", "black pepper", "paprika powder", "cumin", "cinnamon",
        "oregano", "thyme", "curry", "chili powder", "nutmeg", "zout",
        "peper", "komijn", "kaneel", "tijm", "nootmuskaat", "kerrie",
    ],
    "frozen": [
        "frozen", "ice cream", "peas", "diepvries", "ijs", "doperwten",
    ],
    "beverages": [
        "water", "juice", "coffee", "tea", "beer", "wine", "soda", "cola",
        "sap", "koffie", "thee", "bier", "wijn", "frisdrank",
    ],
    "household": [
        "toilet paper", "paper towels", "detergent", "dish soap", "soap",
        "trash bags", "sponges", "wc-papier", "keukenrol", "wasmiddel",
        "afwasmiddel", "zeep", "vuilniszakken",
    ],
}

# Keywords shorter than this only match whole words in the substring pass
_MIN_SUBSTRING_LEN = 4


def _keyword(text: str) -> str:
    return " ".join(text.lower().split())


def merge_category_tables(
    base: Mapping[str, Iterable[str]],
    extra: Mapping[str, Iterable[str]] | None,
) -> dict[str, list[str]]:
    """Merge configured keywords into a category table.

    Configured keywords come first in their category and are removed from
    every other category, so config can move a built-in keyword.
    """
    configured = {cat: [_keyword(kw) for kw in kws] for cat, kws in (extra or {}).items()}
    moved = {kw for kws in configured.values() for kw in kws}
    merged = {
        cat: [kw for kw in kws if _keyword(kw) not in moved]
        for cat, kws in base.items()
    }
    for cat, kws in configured.items():
        merged[cat] = kws + merged.get(cat, [])
    return merged


class Categorizer:
    """Assign categories by exact, then prefix, then substring keyword match.

    The table is copied on construction and never mutated, so one instance
    can be shared between requests.
    """

    def __init__(self, table: Mapping[str, Iterable[str]] | None = None) -> None:
        source = DEFAULT_CATEGORIES if table is None else table
        self._exact: dict[str, str] = {}
        self._keywords: list[tuple[str, str]] = []
        self.categories: tuple[str, ...] = tuple(source)
        for category, keywords in source.items():
            for kw in keywords:
                kw = _keyword(kw)
                if not kw:
                    continue
                self._exact.setdefault(kw, category)
                self._keywords.append((kw, category))

    def lookup(self, name: str) -> str:
        """Return the category for a normalized name, or "uncategorized"."""
        key = _keyword(name)
        if not key:
            return UNCATEGORIZED

        if key in self._exact:
            return self._exact[key]

        prefix = self._longest(kw for kw, _ in self._keywords if key.startswith(kw))
        if prefix is not None:
            return prefix

        words = set(re.split(r"[\s/-]+", key))
        substring = self._longest(
            kw
            for kw, _ in self._keywords
            if (kw in key if len(kw) >= _MIN_SUBSTRING_LEN else kw in words)
        )
        if substring is not None:
            return substring

        return UNCATEGORIZED

    def _longest(self, matches: Iterable[str]) -> str | None:
        best: str | None = None
        for kw in matches:
            if best is None or len(kw) > len(best):
                best = kw
        if best is None:
            return None
        return self._exact[best]

    def categorize_items(
        self, items: Iterable[ParsedItem]
    ) -> tuple[list[ParsedItem], int]:
        """Fill in categories for items that are still uncategorized.

        Returns:
            (items with categories, number of items that received a category)
        """
        result: list[ParsedItem] = []
        assigned = 0
        for item in items:
            if item.category and item.category != UNCATEGORIZED:
                result.append(item)
                continue
            category = self.lookup(item.name)
            if category != UNCATEGORIZED:
                assigned += 1
            result.append(dataclasses.replace(item, category=category))
        return result, assigned
