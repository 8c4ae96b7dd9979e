"""Shopping-list unit tables, dimension classes and conversions."""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass, field

MASS = "mass"
VOLUME = "volume"
COUNT = "count"

# Canonical units → (dimension, factor to the dimension's base unit)
_UNITS: dict[str, tuple[str, float]] = {
    "g": (MASS, 1.0),
    "kg": (MASS, 1000.0),
    "ml": (VOLUME, 1.0),
    "l": (VOLUME, 1000.0),
    "tsp": (VOLUME, 5.0),
    "tbsp": (VOLUME, 15.0),
    "cup": (VOLUME, 240.0),
    "piece": (COUNT, 1.0),
    "clove": (COUNT, 1.0),
    "pinch": (COUNT, 1.0),
    "": (COUNT, 1.0),
}

BASE_UNITS: dict[str, str] = {
    MASS: "g",
    VOLUME: "ml",
    COUNT: "",
}

# Spelling variants → canonical unit (English and Dutch)
_ALIASES: dict[str, str] = {
    "gram": "g",
    "grams": "g",
    "gramme": "g",
    "gr": "g",
    "grs": "g",
    "kilo": "kg",
    "kilos": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "kgs": "kg",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "ltr": "l",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "tl": "tsp",
    "theelepel": "tsp",
    "theelepels": "tsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tbs": "tbsp",
    "el": "tbsp",
    "eetlepel": "tbsp",
    "eetlepels": "tbsp",
    "cups": "cup",
    "kop": "cup",
    "kopje": "cup",
    "pc": "piece",
    "pcs": "piece",
    "pieces": "piece",
    "stuk": "piece",
    "stuks": "piece",
    "cloves": "clove",
    "teen": "clove",
    "tenen": "clove",
    "teentje": "clove",
    "teentjes": "clove",
    "pinches": "pinch",
    "snuf": "pinch",
    "snufje": "pinch",
}

_VULGAR_FRACTIONS: dict[str, float] = {
    "½": 0.5,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "¼": 0.25,
    "¾": 0.75,
    "⅛": 0.125,
}

# Quantity: mixed number "1 1/2", fraction "1/2", decimal "1.5" / "1,5", or a vulgar fraction
NUMBER_PATTERN = (
    r"(?:\d+\s+\d+/\d+|\d+/\d+|\d+(?:[.,]\d+)?\s*[½⅓⅔¼¾⅛]?|[½⅓⅔¼¾⅛])"
)
_NUMBER_RE = re.compile(rf"^{NUMBER_PATTERN}$")


@dataclass(frozen=True)
class UnitTable:
    """Read-only unit lookup table; extra aliases come from configuration."""

    aliases: dict[str, str] = field(default_factory=lambda: dict(_ALIASES))

    def canonical(self, token: str) -> str | None:
        """Map a unit token to its canonical unit, or None if it is not a unit."""
        t = token.strip().lower().rstrip(".")
        if t in _UNITS and t:
            return t
        return self.aliases.get(t)

    @classmethod
    def with_aliases(cls, extra: dict[str, str] | None = None) -> UnitTable:
        aliases = dict(_ALIASES)
        for alias, unit in (extra or {}).items():
            if unit not in _UNITS:
                raise ValueError(f"Unknown unit {unit!r} for alias {alias!r}")
            aliases[alias.lower()] = unit
        return cls(aliases=aliases)


DEFAULT_UNITS = UnitTable()


def dimension(unit: str) -> str:
    """Return the dimension class (mass/volume/count) of a canonical unit."""
    try:
        return _UNITS[unit][0]
    except KeyError:
        raise ValueError(f"Unknown unit: {unit!r}") from None


def to_base(amount: float, unit: str) -> float:
    """Convert an amount to the base unit of its dimension (g, ml, or count)."""
    return amount * _UNITS[unit][1]


def convert(amount: float, from_unit: str, to_unit: str) -> float:
    """Convert between two units of the same dimension."""
    if dimension(from_unit) != dimension(to_unit):
        raise ValueError(f"Cannot convert {from_unit!r} to {to_unit!r}")
    return amount * _UNITS[from_unit][1] / _UNITS[to_unit][1]


def parse_number(text: str) -> float:
    """Parse a quantity string.

    Args:
        text: e.g. "2", "1.5", "1,5", "1/2", "1 1/2", "½", "1½"

    Raises:
        ValueError: if the text is not a finite number.
    """
    s = unicodedata.normalize("NFC", text.strip())
    if not _NUMBER_RE.match(s):
        raise ValueError(f"Not a quantity: {text!r}")

    if s[-1] in _VULGAR_FRACTIONS:
        whole = s[:-1].strip()
        value = (float(whole) if whole else 0.0) + _VULGAR_FRACTIONS[s[-1]]
    elif "/" in s:
        whole = 0.0
        if " " in s:
            head, s = s.split(None, 1)
            whole = float(head)
        num, den = s.split("/")
        if float(den) == 0:
            raise ValueError(f"Zero denominator in {text!r}")
        value = whole + float(num) / float(den)
    else:
        value = float(s.replace(",", "."))

    # Very long digit runs overflow to inf
    if not math.isfinite(value):
        raise ValueError(f"Quantity out of range: {text[:20]!r}")
    return value
