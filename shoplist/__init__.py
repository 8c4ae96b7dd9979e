"""Shopping-list normalization, merging and supermarket price comparison."""

from .config import (
    DatabaseConfig,
    LLMConfig,
    NormalizerConfig,
    SearchConfig,
    ShopConfig,
    load_config,
)
from .db import ShoppingListDB
from .errors import (
    InvalidStrategyError,
    NotFoundError,
    OracleError,
    ParseError,
    ShoppingListError,
)
from .models import (
    UNCATEGORIZED,
    MergeResult,
    ParsedItem,
    ProductCandidate,
    ShoppingItem,
    ShoppingList,
)
from .normalize import Normalizer
from .pricing import PriceComparison, compare_prices, select_best_matches
from .service import CleanUpResult, ShoppingListService

__all__ = [
    "Normalizer",
    "ShoppingListService",
    "CleanUpResult",
    "ShoppingListDB",
    "ParsedItem",
    "ShoppingItem",
    "ShoppingList",
    "MergeResult",
    "ProductCandidate",
    "PriceComparison",
    "UNCATEGORIZED",
    "select_best_matches",
    "compare_prices",
    "ShoppingListError",
    "ParseError",
    "InvalidStrategyError",
    "NotFoundError",
    "OracleError",
    "ShopConfig",
    "NormalizerConfig",
    "DatabaseConfig",
    "SearchConfig",
    "LLMConfig",
    "load_config",
]
