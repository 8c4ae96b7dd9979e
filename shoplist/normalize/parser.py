"""Raw shopping-list line parsing.

A line is split into quantity, unit and name:

    "2 cups flour"       -> (2.0, "cup", "flour")
    "500g rice"          -> (500.0, "g", "rice")
    "melk 1L"            -> (1.0, "l", "melk")
    "1 1/2 tbsp of oil"  -> (1.5, "tbsp", "oil")
    "Bananas"            -> (1.0, "", "bananas")
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..errors import ParseError
from ..models import ParsedItem
from .units import DEFAULT_UNITS, NUMBER_PATTERN, UnitTable, parse_number

logger = logging.getLogger(__name__)

# Leading articles/determiners stripped from names, per locale
ARTICLES: dict[str, tuple[str, ...]] = {
    "en": ("a", "an", "the", "some"),
    "nl": ("de", "het", "een", "wat"),
}

# Connectors between a unit and the name ("2 cups of flour", "1 pak van ...")
_CONNECTORS = ("of", "van")

_LEADING_RE = re.compile(
    rf"^(?P<qty>{NUMBER_PATTERN})\s*(?:x\s+|x(?=\d))?(?P<rest>.*)$", re.IGNORECASE
)
_TRAILING_RE = re.compile(
    rf"^(?P<rest>.*?\S)\s+(?P<qty>{NUMBER_PATTERN})\s*(?P<unit>[^\W\d_]+\.?)?$"
)
_BULLETS = "-*•·–—>"
_TRAILING_PUNCT = ".,;:!?"
# Punctuation dropped from names; "." and "," survive between digits ("1.5")
_PUNCT_RE = re.compile(r"[^\w\s&'/.,-]|(?<!\d)[.,]|[.,](?!\d)")


@dataclass(frozen=True)
class ParserOptions:
    """Locale and unit configuration for the line parser."""

    locale: str = "en"
    strip_articles: bool = True
    units: UnitTable = field(default_factory=lambda: DEFAULT_UNITS)

    @property
    def articles(self) -> tuple[str, ...]:
        if not self.strip_articles:
            return ()
        return ARTICLES.get(self.locale, ())


DEFAULT_OPTIONS = ParserOptions()


def parse_line(
    text: str, position: int = 0, options: ParserOptions = DEFAULT_OPTIONS
) -> ParsedItem:
    """Parse one raw shopping-list line.

    Args:
        text: Raw line, e.g. "2 cups flour" or "melk 1L".
        position: Index of the line in its batch (kept for ordering).
        options: Locale/unit settings.

    Returns:
        A ParsedItem with category "uncategorized".

    Raises:
        ParseError: If the line is empty after trimming.
    """
    if text is None or not text.strip():
        raise ParseError("Empty shopping-list line", line=text or "", position=position)

    raw = text.strip()
    body = raw.lstrip(_BULLETS).strip() or raw

    quantity, unit, rest = _split_quantity(body, options)
    name = normalize_name(rest, options) if rest else ""

    if not name:
        # Nothing left after the quantity ("2 cups"): keep the whole line
        quantity, unit = 1.0, ""
        name = normalize_name(body, options) or " ".join(raw.lower().split())

    return ParsedItem(
        name=name,
        quantity=quantity,
        unit=unit,
        raw_text=raw,
        position=position,
    )


def _split_quantity(body: str, options: ParserOptions) -> tuple[float, str, str]:
    m = _LEADING_RE.match(body)
    if m:
        try:
            quantity = parse_number(m.group("qty"))
        except ValueError:
            return 1.0, "", body
        rest = m.group("rest").strip()
        unit = ""
        head, _, tail = rest.partition(" ")
        canonical = options.units.canonical(head) if head else None
        if canonical is not None:
            unit = canonical
            rest = tail.strip()
            first, _, after = rest.partition(" ")
            if first.lower() in _CONNECTORS and after:
                rest = after.strip()
        return quantity, unit, rest

    m = _TRAILING_RE.match(body)
    if m:
        unit_token = m.group("unit")
        unit = options.units.canonical(unit_token) if unit_token else ""
        if unit is not None:
            try:
                return parse_number(m.group("qty")), unit, m.group("rest").strip()
            except ValueError:
                pass

    return 1.0, "", body


def normalize_name(name: str, options: ParserOptions = DEFAULT_OPTIONS) -> str:
    """Lower-case, collapse whitespace, drop leading articles and punctuation."""
    cleaned = _PUNCT_RE.sub(" ", name.lower())
    words = cleaned.split()
    articles = options.articles
    while len(words) > 1 and words[0] in articles:
        words = words[1:]
    return " ".join(words).strip(_TRAILING_PUNCT + " ")


def merge_name(name: str) -> str:
    """Return the name used for duplicate detection.

    Case-folded, whitespace-collapsed, with a trailing plural "s" removed
    ("eggs" and "Egg" both become "egg").
    """
    key = " ".join(name.casefold().split())
    if len(key) > 3 and key.endswith("s") and not key.endswith("ss"):
        key = key[:-1]
    return key


def parse_lines(
    lines: Iterable[str], options: ParserOptions = DEFAULT_OPTIONS
) -> tuple[list[ParsedItem], int]:
    """Parse a batch of lines, skipping the ones that fail.

    Returns:
        (parsed items in input order, number of skipped lines)
    """
    items: list[ParsedItem] = []
    skipped = 0
    for position, line in enumerate(lines):
        try:
            items.append(parse_line(line, position, options))
        except ParseError as e:
            skipped += 1
            logger.warning("Skipping line %d: %s", position, e)
    return items, skipped
