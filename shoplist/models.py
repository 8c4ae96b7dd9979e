"""Data models for shopping-list lines, items and lists."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

UNCATEGORIZED = "uncategorized"


def new_id() -> str:
    """Return a fresh opaque item/list identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ParsedItem:
    """One raw line after quantity/unit/name extraction."""

    name: str
    quantity: float = 1.0
    unit: str = ""
    category: str = UNCATEGORIZED
    raw_text: str = ""
    position: int = 0


@dataclass(frozen=True)
class ShoppingItem:
    """A shopping-list entry as returned to callers and stored in a list."""

    id: str
    name: str
    quantity: float = 1.0
    unit: str = ""
    category: str = UNCATEGORIZED
    completed: bool = False
    notes: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
            "completed": self.completed,
            "notes": self.notes,
        }

    def display(self) -> str:
        """Format as a single human-readable line, e.g. ``3 cup flour``."""
        qty = f"{self.quantity:g}"
        parts = [f"{qty} {self.unit}" if self.unit else f"{qty}x", self.name]
        if self.notes:
            parts.append(f"({self.notes})")
        return " ".join(parts)


@dataclass(frozen=True)
class ShoppingList:
    """Immutable snapshot of a stored shopping list."""

    id: str
    name: str
    items: tuple[ShoppingItem, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    active: bool = False

    def item(self, item_id: str) -> ShoppingItem | None:
        for it in self.items:
            if it.id == item_id:
                return it
        return None


@dataclass
class MergeResult:
    items: list[ShoppingItem] = field(default_factory=list)
    items_merged: int = 0
    categories_assigned: int = 0
    duplicates_found: int = 0  # would-be merges, also counted for keep-separate
    lines_skipped: int = 0
    items_standardized: int = 0


@dataclass(frozen=True)
class ProductCandidate:
    """A product record returned by the vector search oracle."""

    name: str
    price: float
    supermarket_name: str
    unit: str | None = None
    distance: float | None = None
    product_id: str = ""
    amount: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.product_id,
            "name": self.name,
            "price": self.price,
            "unit": self.unit,
            "amount": self.amount,
            "supermarketName": self.supermarket_name,
            "distance": self.distance,
        }
