"""Rules-based English command parser (baseline, always available).

The parser is deterministic and total:
    - it checks a fixed, ordered list of mutually exclusive rules; the first match wins;
    - it extracts parameters from a small fixed vocabulary (vendors, colors, measures, categories);
    - it returns a validated Intent, or `Intent(action=unknown)` carrying the raw text.

Rule order:
    1. theme change          5. filter
    2. top-N request         6. safe drink by age
    3. comparison            7. calories vs sugar comparison
    4. max / min             8. text size change
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.dictionaries import (
    CAFFEINE_COLUMN,
    CALORIES_COLUMN,
    DEFAULT_CATEGORY,
    SUGAR_COLUMN,
    detect_measure,
    find_category,
    find_color,
    find_measures,
    find_vendors,
)
from src.intent.normalize import normalize_text
from src.intent.schema import Action, Intent, IntentValidationError, validate_intent

logger = logging.getLogger(__name__)

DEFAULT_SAFE_AGE = 18

_NUMBER_RE = re.compile(r"\b(?P<n>\d{1,4})\b")
_TOP_N_RE = re.compile(r"\btop\s+(?P<n>\d{1,4})\b")
_TOP_RE = re.compile(r"\btop\b")
_COMPARE_RE = re.compile(r"\b(?:compare|comparison|versus|vs)\b")
_MAX_RE = re.compile(r"\b(?:highest|max|maximum|most)\b")
_MIN_RE = re.compile(r"\b(?:lowest|min|minimum|least)\b")
_FILTER_RE = re.compile(r"\b(?:show only|filter|only)\b")
_SAFE_RE = re.compile(r"\bsafe\b")
_PAIRING_RE = re.compile(r"\b(?:compare|comparison|versus|vs|with|against)\b")
_TEXT_SIZE_RE = re.compile(r"\b(?:text size|font|font size)\b")
_INCREASE_RE = re.compile(r"\b(?:increase|bigger|larger)\b")
_DECREASE_RE = re.compile(r"\b(?:decrease|smaller)\b")

Candidate = dict[str, Any]


def _first_number(text: str) -> int | None:
    match = _NUMBER_RE.search(text)
    return int(match.group("n")) if match else None


def _mentions_calories_and_sugar(text: str) -> bool:
    measures = find_measures(text)
    return CALORIES_COLUMN in measures and SUGAR_COLUMN in measures


def _is_theme(text: str) -> bool:
    padded = f" {text} "
    return " theme " in padded or " dark mode " in padded or " light mode " in padded


def _is_top(text: str) -> bool:
    return _TOP_RE.search(text) is not None


def _is_compare(text: str) -> bool:
    return _COMPARE_RE.search(text) is not None and not _mentions_calories_and_sugar(text)


def _is_max_min(text: str) -> bool:
    return _MAX_RE.search(text) is not None or _MIN_RE.search(text) is not None


def _is_filter(text: str) -> bool:
    return _FILTER_RE.search(text) is not None


def _is_safe_drink(text: str) -> bool:
    return _SAFE_RE.search(text) is not None


def _is_calories_sugar(text: str) -> bool:
    return _mentions_calories_and_sugar(text) and _PAIRING_RE.search(text) is not None


def _is_text_size(text: str) -> bool:
    return _TEXT_SIZE_RE.search(text) is not None


def _theme(text: str, context: CommandContext) -> Candidate | None:
    color = find_color(text)
    if color is None:
        logger.info("theme rule matched without a known color")
        return None
    return {"action": Action.apply_theme, "colorHex": color}


def _top(text: str, context: CommandContext) -> Candidate | None:
    match = _TOP_N_RE.search(text)
    n = int(match.group("n")) if match else _first_number(text)
    measure = detect_measure(text)
    if measure == CAFFEINE_COLUMN:
        return {"action": Action.top_caffeine, "n": n}
    if measure == SUGAR_COLUMN:
        return {"action": Action.top_sugar, "n": n}
    return {"action": Action.top_n, "n": n, "column": measure}


def _compare(text: str, context: CommandContext) -> Candidate | None:
    vendors = find_vendors(text, context.vendors)
    defaults = [v for v in context.vendors if v not in vendors]
    picked = (vendors + defaults)[:2]
    if len(picked) < 2:
        return None
    return {
        "action": Action.compare,
        "vendor1": picked[0],
        "vendor2": picked[1],
        "metric": detect_measure(text),
    }


def _max_min(text: str, context: CommandContext) -> Candidate | None:
    action = Action.max_value if _MAX_RE.search(text) else Action.min_value
    return {"action": action, "column": detect_measure(text)}


def _filter(text: str, context: CommandContext) -> Candidate | None:
    category = find_category(text, context.categories)
    if category is None and DEFAULT_CATEGORY in context.categories:
        category = DEFAULT_CATEGORY
    if category is None:
        return None
    return {"action": Action.filter, "value": category}


def _safe_drink(text: str, context: CommandContext) -> Candidate | None:
    age = _first_number(text)
    return {"action": Action.safe_drink, "age": DEFAULT_SAFE_AGE if age is None else age}


def _calories_sugar(text: str, context: CommandContext) -> Candidate | None:
    return {"action": Action.compare_calories_sugar}


def _text_size(text: str, context: CommandContext) -> Candidate | None:
    if _INCREASE_RE.search(text):
        return {"action": Action.text_size, "change": "increase"}
    if _DECREASE_RE.search(text):
        return {"action": Action.text_size, "change": "decrease"}
    return None


Rule = tuple[str, Callable[[str], bool], Callable[[str, CommandContext], Candidate | None]]

RULES: tuple[Rule, ...] = (
    ("theme", _is_theme, _theme),
    ("top_n", _is_top, _top),
    ("compare", _is_compare, _compare),
    ("max_min", _is_max_min, _max_min),
    ("filter", _is_filter, _filter),
    ("safe_drink", _is_safe_drink, _safe_drink),
    ("calories_sugar", _is_calories_sugar, _calories_sugar),
    ("text_size", _is_text_size, _text_size),
)


def unknown_intent(text: str) -> Intent:
    """Terminal intent for commands no rule recognizes."""

    return Intent(action=Action.unknown, raw=text or "")


def parse_intent(text: str, context: CommandContext | None = None) -> Intent:
    """Parse an input string into a validated Intent.

    Never raises: unmatched or incomplete commands yield the `unknown` intent.
    """

    ctx = context or DEFAULT_CONTEXT
    normalized = normalize_text(text)
    if not normalized:
        return unknown_intent(text)

    for name, matches, extract in RULES:
        if not matches(normalized):
            continue

        candidate = extract(normalized, ctx)
        if candidate is None:
            return unknown_intent(text)

        try:
            intent = validate_intent(candidate, ctx)
        except IntentValidationError as exc:
            logger.info("rule=%s produced an invalid intent: %s", name, exc)
            return unknown_intent(text)

        logger.debug("rule=%s action=%s", name, intent.action)
        return intent

    return unknown_intent(text)
