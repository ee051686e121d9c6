"""English dictionaries for measures, colors, vendors and drink categories.

These mappings are used by the intent schema (canonicalization) and by the rules-based parser, and
should remain small and deterministic. Measures are keyed by their canonical dataset column name.
"""

from __future__ import annotations

import re

from src.intent.normalize import fold, normalize_text

CAFFEINE_COLUMN = "Caffeine (mg)"
SUGAR_COLUMN = "Sugars (g)"
CALORIES_COLUMN = "Calories"

# Substring aliases for a user/AI supplied column name (already folded).
# Checked in insertion order; sugar and calories first so that "caf" cannot shadow them.
MEASURE_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    SUGAR_COLUMN: ("sugar",),
    CALORIES_COLUMN: ("calor", "kcal", "energy"),
    CAFFEINE_COLUMN: ("caffeine", "caf", "mg"),
}

# Word prefixes that mention a measure in free text.
MEASURE_TEXT_PREFIXES: dict[str, tuple[str, ...]] = {
    CAFFEINE_COLUMN: ("caffeine", "caffeinated"),
    SUGAR_COLUMN: ("sugar", "sugary"),
    CALORIES_COLUMN: ("calor", "kcal"),
}

COLOR_NAMES: dict[str, str] = {
    "white": "#FFFFFF",
    "black": "#000000",
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "brown": "#8B4513",
    "coffee brown": "#8B1E2C",
    "dark brown": "#654321",
    "yellow": "#FFFF00",
    "orange": "#FFA500",
    "gray": "#808080",
    "grey": "#808080",
    "light mode": "#FFFFFF",
    "dark mode": "#000000",
}

# Longest names first so that "dark brown" wins over "brown".
_COLOR_NAMES_BY_LENGTH: list[str] = sorted(COLOR_NAMES, key=lambda name: (-len(name), name))

DEFAULT_VENDORS: tuple[str, ...] = ("Costa", "Starbucks", "Pret", "Greggs", "Caffè Nero")

DEFAULT_CATEGORIES: tuple[str, ...] = ("Latte", "Cold Drinks")

CATEGORY_ALIASES: dict[str, tuple[str, ...]] = {
    "Cold Drinks": ("cold", "iced", "cold drink"),
    "Latte": ("latte", "lattes"),
}

DEFAULT_CATEGORY = "Latte"

_HEX_RE = re.compile(r"^#?(?P<hex>[0-9a-f]{6})$")
_HEX_IN_TEXT_RE = re.compile(r"#(?P<hex>[0-9a-f]{6})\b")


def match_measure_alias(column: str | None) -> str | None:
    """Map a column string to a canonical measure column by case-insensitive substring alias.

    Returns:
        The canonical column name, or `None` if no alias matches.
    """

    value = fold(column or "")
    if not value:
        return None
    for canonical, aliases in MEASURE_COLUMN_ALIASES.items():
        if any(alias in value for alias in aliases):
            return canonical
    return None


def find_measures(text: str) -> list[str]:
    """Return measures mentioned in normalized text, in order of first appearance."""

    found: list[str] = []
    for token in (text or "").split():
        for canonical, prefixes in MEASURE_TEXT_PREFIXES.items():
            if canonical not in found and token.startswith(prefixes):
                found.append(canonical)
    return found


def detect_measure(text: str) -> str | None:
    """Detect the first measure mentioned in the text."""

    measures = find_measures(text)
    return measures[0] if measures else None


def resolve_color(value: str | None) -> str | None:
    """Resolve a color name or hex literal into an upper-case `#RRGGBB` string."""

    key = normalize_text(value or "")
    if not key:
        return None
    match = _HEX_RE.match(key)
    if match:
        return "#" + match.group("hex").upper()
    return COLOR_NAMES.get(key)


def find_color(text: str) -> str | None:
    """Find a hex literal or the longest color-vocabulary name in normalized text."""

    match = _HEX_IN_TEXT_RE.search(text or "")
    if match:
        return "#" + match.group("hex").upper()

    padded = f" {text} "
    for name in _COLOR_NAMES_BY_LENGTH:
        if f" {name} " in padded:
            return COLOR_NAMES[name]
    return None


def match_vendor(value: str | None, vendors: tuple[str, ...]) -> str | None:
    """Return the vocabulary spelling of a vendor name (case/accent-insensitive)."""

    key = normalize_text(value or "")
    if not key:
        return None
    for vendor in vendors:
        if normalize_text(vendor) == key:
            return vendor
    return None


def find_vendors(text: str, vendors: tuple[str, ...]) -> list[str]:
    """Return vendors mentioned in normalized text, in order of appearance."""

    padded = f" {text} "
    positions: list[tuple[int, str]] = []
    for vendor in vendors:
        idx = padded.find(f" {normalize_text(vendor)} ")
        if idx >= 0:
            positions.append((idx, vendor))
    return [vendor for _, vendor in sorted(positions)]


def match_category(value: str | None, categories: tuple[str, ...]) -> str | None:
    """Return the vocabulary spelling of a drink category, accepting known aliases."""

    key = normalize_text(value or "")
    if not key:
        return None
    for category in categories:
        if normalize_text(category) == key or key in CATEGORY_ALIASES.get(category, ()):
            return category
    return None


def find_category(text: str, categories: tuple[str, ...]) -> str | None:
    """Find the first category (by name or alias) mentioned in normalized text."""

    padded = f" {text} "
    for category in categories:
        phrases = (normalize_text(category), *CATEGORY_ALIASES.get(category, ()))
        if any(f" {phrase} " in padded for phrase in phrases):
            return category
    return None
