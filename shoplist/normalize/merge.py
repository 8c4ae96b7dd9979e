"""Duplicate detection and quantity merging for parsed shopping items."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import InvalidStrategyError
from ..models import UNCATEGORIZED, MergeResult, ParsedItem, ShoppingItem, new_id
from .parser import merge_name
from .units import BASE_UNITS, COUNT, convert, dimension

logger = logging.getLogger(__name__)

SUM = "sum"
MAX = "max"
KEEP_SEPARATE = "keep-separate"
STRATEGIES = (SUM, MAX, KEEP_SEPARATE)


@dataclass(frozen=True)
class MergeOptions:
    notes_separator: str = "; "
    notes_max_length: int = 200


DEFAULT_MERGE_OPTIONS = MergeOptions()


def validate_strategy(strategy: str | None, default: str = SUM) -> str:
    """Return a valid strategy name, falling back to ``default`` for None."""
    if strategy is None:
        strategy = default
    if strategy not in STRATEGIES:
        raise InvalidStrategyError(strategy)
    return strategy


def merge_key(item: ParsedItem) -> tuple[str, str]:
    """Group key: normalized name + unit dimension class."""
    return merge_name(item.name), dimension(item.unit)


def group_items(items: Sequence[ParsedItem]) -> list[list[ParsedItem]]:
    """Group items by merge key, in order of first appearance."""
    ordered = sorted(items, key=lambda i: i.position)
    groups: dict[tuple[str, str], list[ParsedItem]] = {}
    for item in ordered:
        groups.setdefault(merge_key(item), []).append(item)
    return list(groups.values())


def _target_unit(group: Sequence[ParsedItem]) -> str:
    units = {i.unit for i in group}
    if len(units) == 1:
        return group[0].unit
    dim = dimension(group[0].unit)
    if dim == COUNT:
        # Count units are never converted between each other
        return group[0].unit
    return BASE_UNITS[dim]


def _converted(item: ParsedItem, unit: str) -> float:
    if dimension(item.unit) == COUNT:
        return item.quantity
    return convert(item.quantity, item.unit, unit)


def _join_notes(texts: Sequence[str], options: MergeOptions) -> str | None:
    distinct: list[str] = []
    for t in texts:
        if t and t not in distinct:
            distinct.append(t)
    if not distinct:
        return None
    notes = options.notes_separator.join(distinct)
    limit = options.notes_max_length
    if limit > 0 and len(notes) > limit:
        notes = notes[: max(limit - 1, 0)].rstrip() + "…"
    return notes


def _first_category(group: Sequence[ParsedItem]) -> str:
    for item in group:
        if item.category and item.category != UNCATEGORIZED:
            return item.category
    return UNCATEGORIZED


def merge_group(
    group: Sequence[ParsedItem],
    strategy: str,
    options: MergeOptions = DEFAULT_MERGE_OPTIONS,
) -> ShoppingItem:
    """Collapse one group of same-product items into a single ShoppingItem."""
    first = group[0]
    unit = _target_unit(group)
    quantities = [_converted(i, unit) for i in group]
    if strategy == SUM:
        quantity = sum(quantities)
    elif strategy == MAX:
        quantity = max(quantities)
    else:
        raise InvalidStrategyError(strategy)

    return ShoppingItem(
        id=new_id(),
        name=first.name,
        quantity=round(max(quantity, 0.0), 6),
        unit=unit,
        category=_first_category(group),
        notes=_join_notes([i.raw_text for i in group], options),
    )


def _as_item(parsed: ParsedItem) -> ShoppingItem:
    return ShoppingItem(
        id=new_id(),
        name=parsed.name,
        quantity=parsed.quantity,
        unit=parsed.unit,
        category=parsed.category or UNCATEGORIZED,
        notes=parsed.raw_text or None,
    )


def merge_items(
    items: Sequence[ParsedItem],
    strategy: str = SUM,
    options: MergeOptions = DEFAULT_MERGE_OPTIONS,
) -> MergeResult:
    """Deduplicate categorized items according to ``strategy``.

    Items are the same product when their merge names and unit dimensions
    match; items in different dimensions (e.g. "piece" vs "g") are never
    merged. ``categories_assigned`` is left at 0 for the caller to fill in.

    Raises:
        InvalidStrategyError: If ``strategy`` is not sum / max / keep-separate.
    """
    strategy = validate_strategy(strategy)
    if not items:
        return MergeResult()

    groups = group_items(items)
    duplicates = len(items) - len(groups)

    if strategy == KEEP_SEPARATE:
        out = [_as_item(i) for i in sorted(items, key=lambda i: i.position)]
        return MergeResult(items=out, items_merged=0, duplicates_found=duplicates)

    out = [merge_group(g, strategy, options) for g in groups]
    merged = len(items) - len(out)
    logger.debug(
        "Merged %d items into %d (strategy=%s)", len(items), len(out), strategy
    )
    return MergeResult(items=out, items_merged=merged, duplicates_found=duplicates)
