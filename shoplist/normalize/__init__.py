"""Shopping-list normalization: parse, categorize and merge."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Sequence

from ..models import UNCATEGORIZED, MergeResult, ParsedItem, ShoppingItem
from .categorizer import DEFAULT_CATEGORIES, Categorizer, merge_category_tables
from .merge import (
    KEEP_SEPARATE,
    MAX,
    STRATEGIES,
    SUM,
    MergeOptions,
    group_items,
    merge_group,
    merge_items,
    merge_key,
    validate_strategy,
)
from .parser import ParserOptions, merge_name, normalize_name, parse_line, parse_lines
from .units import UnitTable, convert, dimension, parse_number

logger = logging.getLogger(__name__)


class Normalizer:
    """Parse → categorize → merge pipeline over in-memory collections.

    Holds only read-only tables, so a single instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        parser_options: ParserOptions | None = None,
        categorizer: Categorizer | None = None,
        merge_options: MergeOptions | None = None,
        default_strategy: str = SUM,
    ) -> None:
        self.parser_options = parser_options or ParserOptions()
        self.categorizer = categorizer or Categorizer()
        self.merge_options = merge_options or MergeOptions()
        self.default_strategy = validate_strategy(default_strategy)

    @classmethod
    def from_config(cls, config) -> Normalizer:
        """Build a Normalizer from a ShopConfig."""
        cfg = config.normalizer
        return cls(
            parser_options=ParserOptions(
                locale=cfg.locale,
                strip_articles=cfg.strip_articles,
                units=UnitTable.with_aliases(config.units.aliases),
            ),
            categorizer=Categorizer(
                merge_category_tables(DEFAULT_CATEGORIES, config.categories.keywords)
            ),
            merge_options=MergeOptions(
                notes_separator=cfg.notes_separator,
                notes_max_length=cfg.notes_max_length,
            ),
            default_strategy=cfg.default_strategy,
        )

    def normalize_lines(
        self, lines: Iterable[str], strategy: str | None = None
    ) -> MergeResult:
        """Turn raw lines into a deduplicated item list."""
        strategy = validate_strategy(strategy, self.default_strategy)
        parsed, skipped = parse_lines(lines, self.parser_options)
        categorized, assigned = self.categorizer.categorize_items(parsed)
        result = merge_items(categorized, strategy, self.merge_options)
        result.categories_assigned = assigned
        result.lines_skipped = skipped
        logger.info(
            "Normalized %d lines: %d items, %d merged, %d categorized, %d skipped",
            len(parsed) + skipped,
            len(result.items),
            result.items_merged,
            assigned,
            skipped,
        )
        return result

    def normalize_items(
        self, items: Sequence[ShoppingItem], strategy: str | None = None
    ) -> MergeResult:
        """Re-normalize stored items (names, categories, duplicates).

        Items that end up alone in their group keep their id; a merged group
        keeps the id of its first member and is completed only if every
        member was.
        """
        strategy = validate_strategy(strategy, self.default_strategy)
        if not items:
            return MergeResult()

        units = self.parser_options.units
        parsed: list[ParsedItem] = []
        standardized = 0
        for position, item in enumerate(items):
            name = normalize_name(item.name, self.parser_options) or item.name
            if name != item.name:
                standardized += 1
            unit = units.canonical(item.unit) if item.unit else ""
            if unit is None:
                raise ValueError(f"Unknown unit {item.unit!r} on item {item.id}")
            parsed.append(
                ParsedItem(
                    name=name,
                    quantity=item.quantity,
                    unit=unit,
                    category=item.category or UNCATEGORIZED,
                    raw_text=item.notes or "",
                    position=position,
                )
            )

        categorized, assigned = self.categorizer.categorize_items(parsed)
        groups = group_items(categorized)
        duplicates = len(items) - len(groups)

        if strategy == KEEP_SEPARATE:
            out = [
                dataclasses.replace(
                    items[p.position], name=p.name, unit=p.unit, category=p.category
                )
                for p in categorized
            ]
        else:
            out = []
            for group in groups:
                originals = [items[p.position] for p in group]
                if len(group) == 1:
                    p = group[0]
                    out.append(
                        dataclasses.replace(
                            originals[0], name=p.name, unit=p.unit, category=p.category
                        )
                    )
                    continue
                merged = merge_group(group, strategy, self.merge_options)
                out.append(
                    dataclasses.replace(
                        merged,
                        id=originals[0].id,
                        completed=all(o.completed for o in originals),
                    )
                )

        return MergeResult(
            items=out,
            items_merged=len(items) - len(out),
            categories_assigned=assigned,
            duplicates_found=duplicates,
            items_standardized=standardized,
        )


__all__ = [
    "Normalizer",
    "Categorizer",
    "DEFAULT_CATEGORIES",
    "ParserOptions",
    "MergeOptions",
    "UnitTable",
    "STRATEGIES",
    "SUM",
    "MAX",
    "KEEP_SEPARATE",
    "parse_line",
    "parse_lines",
    "normalize_name",
    "merge_name",
    "merge_items",
    "merge_group",
    "merge_key",
    "validate_strategy",
    "parse_number",
    "convert",
    "dimension",
]
