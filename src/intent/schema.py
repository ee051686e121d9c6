"""Intent JSON schema (Pydantic model) and canonicalization table.

This schema is the contract between the NL parsers (rules/LLM) and the deterministic DAX/patch
builder. Every candidate must pass `validate_intent`; nothing unvalidated reaches the builder.

Canonicalization runs before field validation and is deterministic, total and idempotent:
    - missing optional parameters get their documented defaults (`n=5`, default measure, ...);
    - `topSugar`/`topCaffeine` always carry their fixed measure;
    - `topN` over a caffeine/sugar alias is rewritten to `topCaffeine`/`topSugar`, except for the
      exact default column name `Caffeine (mg)`, which a default-filled `topN` carries;
    - colors, vendors and categories are replaced by their vocabulary spelling;
    - a nested `parameters` object is flattened and keys foreign to the action are dropped.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, model_validator

from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.dictionaries import (
    CAFFEINE_COLUMN,
    CALORIES_COLUMN,
    SUGAR_COLUMN,
    match_category,
    match_measure_alias,
    match_vendor,
    resolve_color,
)


class IntentValidationError(ValueError):
    """Raised when a candidate cannot be turned into a complete, canonical Intent."""


class Action(StrEnum):
    """Closed vocabulary of supported actions."""

    apply_theme = "applyTheme"
    add_card = "addCard"
    compare = "compare"
    top_n = "topN"
    top_caffeine = "topCaffeine"
    top_sugar = "topSugar"
    max_value = "maxValue"
    min_value = "minValue"
    filter = "filter"
    safe_drink = "safeDrink"
    compare_calories_sugar = "compareCaloriesSugar"
    text_size = "textSize"
    unknown = "unknown"


class Measure(StrEnum):
    """Analytic columns a query may aggregate, order or filter by."""

    caffeine = CAFFEINE_COLUMN
    sugar = SUGAR_COLUMN
    calories = CALORIES_COLUMN


DEFAULT_MEASURE = Measure.caffeine
DEFAULT_TOP_N = 5
DEFAULT_CARD_PAGE = "Overview"

TextSizeChange = Literal["increase", "decrease"]

# Parameters that must be present after canonicalization.
REQUIRED_PARAMETERS: dict[Action, tuple[str, ...]] = {
    Action.apply_theme: ("color_hex",),
    Action.add_card: ("column", "title", "page"),
    Action.compare: ("vendor1", "vendor2", "metric"),
    Action.top_n: ("n", "column"),
    Action.top_caffeine: ("n", "column"),
    Action.top_sugar: ("n", "column"),
    Action.max_value: ("column",),
    Action.min_value: ("column",),
    Action.filter: ("value",),
    Action.safe_drink: ("age",),
    Action.compare_calories_sugar: (),
    Action.text_size: ("change",),
    Action.unknown: (),
}

_ACTIONS_BY_FOLDED_NAME: dict[str, Action] = {a.value.lower(): a for a in Action}

_FIXED_TOP_COLUMNS: dict[Action, Measure] = {
    Action.top_caffeine: Measure.caffeine,
    Action.top_sugar: Measure.sugar,
}


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _measure_or_default(value: Any) -> Measure:
    if isinstance(value, str):
        canonical = match_measure_alias(value)
        if canonical is not None:
            return Measure(canonical)
    return DEFAULT_MEASURE


def _top_count(data: dict[str, Any]) -> Any:
    n = _first(data, "n", "count", "limit")
    return DEFAULT_TOP_N if n is None else n


def _canonical_top_n(data: dict[str, Any]) -> tuple[Action, Measure]:
    supplied = _first(data, "column", "metric", "measure")
    if not isinstance(supplied, str):
        return Action.top_n, DEFAULT_MEASURE

    canonical = match_measure_alias(supplied)
    if canonical == Measure.sugar:
        return Action.top_sugar, Measure.sugar
    if canonical == Measure.caffeine and supplied.strip() != Measure.caffeine.value:
        return Action.top_caffeine, Measure.caffeine
    return Action.top_n, Measure(canonical) if canonical else DEFAULT_MEASURE


def _canonicalize(data: dict[str, Any], context: CommandContext) -> dict[str, Any]:
    params = dict(data)
    nested = params.pop("parameters", None)
    if isinstance(nested, dict):
        params = {**nested, **params}

    raw_action = params.get("action")
    action = None
    if isinstance(raw_action, str):
        action = _ACTIONS_BY_FOLDED_NAME.get(raw_action.strip().lower())
    if action is None:
        # Let field validation report the bad/missing action.
        return {"action": raw_action}

    out: dict[str, Any] = {"action": action}

    if action == Action.apply_theme:
        color = _first(params, "colorHex", "color_hex", "colorName", "color")
        out["color_hex"] = (resolve_color(color) or color) if isinstance(color, str) else color

    elif action == Action.add_card:
        column = _measure_or_default(_first(params, "column", "metric", "measure"))
        out["column"] = column
        out["title"] = _first(params, "title") or f"Total {column.value}"
        out["page"] = _first(params, "page") or DEFAULT_CARD_PAGE

    elif action == Action.compare:
        for key in ("vendor1", "vendor2"):
            vendor = _first(params, key)
            if vendor is None:
                continue
            canonical_vendor = match_vendor(vendor, context.vendors) if isinstance(vendor, str) else None
            if canonical_vendor is None:
                raise ValueError(f"{key} is not a known vendor: {vendor!r}")
            out[key] = canonical_vendor
        out["metric"] = _measure_or_default(_first(params, "metric", "column", "measure"))

    elif action == Action.top_n:
        out["action"], out["column"] = _canonical_top_n(params)
        out["n"] = _top_count(params)

    elif action in _FIXED_TOP_COLUMNS:
        out["column"] = _FIXED_TOP_COLUMNS[action]
        out["n"] = _top_count(params)

    elif action in {Action.max_value, Action.min_value}:
        out["column"] = _measure_or_default(_first(params, "column", "metric", "measure"))

    elif action == Action.filter:
        value = _first(params, "value", "category")
        if value is not None:
            category = match_category(value, context.categories) if isinstance(value, str) else None
            if category is None:
                raise ValueError(f"value is not a known category: {value!r}")
            out["value"] = category

    elif action == Action.safe_drink:
        out["age"] = _first(params, "age")

    elif action == Action.text_size:
        change = _first(params, "change")
        out["change"] = change.strip().lower() if isinstance(change, str) else change

    elif action == Action.unknown:
        out["raw"] = _first(params, "raw", "text")

    return out


class Intent(BaseModel):
    """A fully validated, canonical command intent."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, populate_by_name=True)

    action: Action
    n: int | None = Field(default=None, ge=1, le=1000)
    column: Measure | None = None
    metric: Measure | None = None
    vendor1: str | None = None
    vendor2: str | None = None
    value: str | None = None
    age: int | None = Field(default=None, ge=1, le=120)
    color_hex: str | None = Field(default=None, alias="colorHex", pattern=r"^#[0-9A-F]{6}$")
    change: TextSizeChange | None = None
    title: str | None = Field(default=None, max_length=120)
    page: str | None = Field(default=None, max_length=120)
    raw: str | None = None

    @model_validator(mode="before")
    @classmethod
    def canonicalize(cls, data: Any, info: ValidationInfo) -> Any:
        """Apply defaults, aliases and action rewrites before field validation."""

        if not isinstance(data, dict):
            return data
        context = (info.context or {}).get("vocabulary") or DEFAULT_CONTEXT
        return _canonicalize(data, context)

    @model_validator(mode="after")
    def validate_semantics(self) -> Intent:
        """Enforce per-action required parameters."""

        missing = [
            name for name in REQUIRED_PARAMETERS[self.action] if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(f"{self.action} requires: {', '.join(missing)}")

        if self.action == Action.compare and self.vendor1 == self.vendor2:
            raise ValueError("compare requires two different vendors")
        return self

    def to_params(self) -> dict[str, Any]:
        """Return the populated parameters using their JSON (camelCase) names."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"action"})


def validate_intent(candidate: Any, context: CommandContext | None = None) -> Intent:
    """Validate and canonicalize an arbitrary decoded JSON object (or an Intent).

    Raises:
        IntentValidationError: If the candidate is not a complete intent for its action.
    """

    if isinstance(candidate, Intent):
        candidate = candidate.model_dump(mode="json", by_alias=True, exclude_none=True)
    if not isinstance(candidate, dict):
        raise IntentValidationError(f"intent must be a JSON object, got {type(candidate).__name__}")

    try:
        return Intent.model_validate(candidate, context={"vocabulary": context or DEFAULT_CONTEXT})
    except ValidationError as exc:
        raise IntentValidationError(str(exc)) from exc
