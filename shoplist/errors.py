"""Error types raised by the shopping-list engine and its services."""

from __future__ import annotations


class ShoppingListError(Exception):
    """Base class for all shoplist errors."""


class ParseError(ShoppingListError, ValueError):
    """A raw shopping-list line could not be parsed."""

    def __init__(self, message: str, line: str = "", position: int | None = None) -> None:
        super().__init__(message)
        self.line = line
        self.position = position


class InvalidStrategyError(ShoppingListError, ValueError):
    """An unrecognized merge strategy was requested."""

    def __init__(self, strategy: object) -> None:
        super().__init__(
            f"Unknown merge strategy: {strategy!r} "
            f"(choose from sum / max / keep-separate)"
        )
        self.strategy = strategy


class NotFoundError(ShoppingListError, LookupError):
    """A referenced shopping list or item does not exist."""


class OracleError(ShoppingListError):
    """An external AI or search service failed.

    ``status`` is the HTTP status the failure should map to: 429 when the
    provider rate-limited us, 500 otherwise.
    """

    def __init__(self, message: str, status: int = 500) -> None:
        super().__init__(message)
        self.status = status
