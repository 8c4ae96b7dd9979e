"""SQLite storage for shopping lists."""

from .lists import ShoppingListDB
from .schema import ensure_schema

__all__ = [
    "ShoppingListDB",
    "ensure_schema",
]
