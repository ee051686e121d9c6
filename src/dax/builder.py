"""Deterministic DAX query / report patch builder.

The builder converts a validated `Intent` into:
    - a DAX query (or a theme descriptor) for the remote Power BI service, and
    - the equivalent local report-document patch, used directly for local-only actions and as the
      fallback for remote ones.

Identifiers come from `src.dax.columns` only. String literals are checked against the command
vocabulary and escaped; numbers are formatted from validated integers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from src.dax.columns import (
    AGE_COLUMN,
    CATEGORY_COLUMN,
    DRINKS_TABLE,
    MEASURE_COLUMNS,
    SAFE_CAFFEINE_COLUMN,
    VENDOR_COLUMN,
)
from src.intent.context import DEFAULT_CONTEXT, CommandContext
from src.intent.schema import Action, Intent, Measure
from src.report.patches import (
    AppendCard,
    AppendComparisonPage,
    AppendTopNPage,
    DocumentPatch,
    SetTextSize,
    SetTheme,
)

THEME_SECONDARY_COLORS: tuple[str, str] = ("#A0522D", "#CD853F")
THEME_FOREGROUND = "#2E2E2E"

_SLUG_RE = re.compile(r"[^0-9a-z]+")


class DAXBuilderError(ValueError):
    """Raised when an Intent cannot be converted into a deterministic query or patch."""


@dataclass(frozen=True)
class BuiltAction:
    """Everything the executor needs to dispatch one intent.

    `query` / `theme` are the remote payloads (at most one is set). `patch` is the local document
    mutation: the primary path when no remote payload exists, otherwise the fallback.
    """

    intent: Intent
    patch: DocumentPatch
    query: str | None = None
    theme: dict[str, Any] | None = None

    @property
    def has_remote(self) -> bool:
        """Whether the action has a remote-service equivalent."""

        return self.query is not None or self.theme is not None


def _dax_int(value: int | None, *, name: str) -> str:
    if not isinstance(value, int) or isinstance(value, bool):
        raise DAXBuilderError(f"{name} must be an integer")
    return str(value)


def _dax_string(value: str | None, *, allowed: tuple[str, ...], name: str) -> str:
    if value is None or value not in allowed:
        raise DAXBuilderError(f"{name} is not in the known vocabulary: {value!r}")
    return '"' + value.replace('"', '""') + '"'


def _measure_column(measure: Measure | None) -> str:
    try:
        return MEASURE_COLUMNS[measure]  # type: ignore[index]
    except KeyError as exc:
        raise DAXBuilderError(f"Unsupported measure: {measure}") from exc


def _slug(*parts: Any) -> str:
    return _SLUG_RE.sub("-", " ".join(str(p) for p in parts).lower()).strip("-")


def theme_descriptor(color_hex: str, *, name: str = "AI Theme") -> dict[str, Any]:
    """Power BI theme JSON for a single primary color."""

    return {
        "name": name,
        "dataColors": [color_hex, *THEME_SECONDARY_COLORS],
        "background": color_hex,
        "foreground": THEME_FOREGROUND,
        "tableAccent": color_hex,
    }


def _ranked_query(n: int | None, measure: Measure | None, *, descending: bool) -> str:
    column = _measure_column(measure)
    order = "DESC" if descending else "ASC"
    return (
        f"EVALUATE TOPN({_dax_int(n, name='n')}, {DRINKS_TABLE}, {column}, {order}) "
        f"ORDER BY {column} {order}"
    )


def _ranked_page(intent: Intent, query: str, *, label: str) -> AppendTopNPage:
    measure = intent.column.value if intent.column else ""
    return AppendTopNPage(
        page={
            "name": _slug(label, measure),
            "displayName": f"{label} {measure}".strip(),
            "visualType": "tableEx",
            "query": query,
        }
    )


def _build_top(intent: Intent, context: CommandContext) -> BuiltAction:
    query = _ranked_query(intent.n, intent.column, descending=True)
    return BuiltAction(
        intent=intent,
        query=query,
        patch=_ranked_page(intent, query, label=f"Top {intent.n}"),
    )


def _build_max(intent: Intent, context: CommandContext) -> BuiltAction:
    query = _ranked_query(1, intent.column, descending=True)
    return BuiltAction(intent=intent, query=query, patch=_ranked_page(intent, query, label="Highest"))


def _build_min(intent: Intent, context: CommandContext) -> BuiltAction:
    query = _ranked_query(1, intent.column, descending=False)
    return BuiltAction(intent=intent, query=query, patch=_ranked_page(intent, query, label="Lowest"))


def _build_compare(intent: Intent, context: CommandContext) -> BuiltAction:
    vendor1 = _dax_string(intent.vendor1, allowed=context.vendors, name="vendor1")
    vendor2 = _dax_string(intent.vendor2, allowed=context.vendors, name="vendor2")
    column = _measure_column(intent.metric)
    query = (
        f"EVALUATE SUMMARIZECOLUMNS({VENDOR_COLUMN}, "
        f"TREATAS({{{vendor1}, {vendor2}}}, {VENDOR_COLUMN}), "
        f'"Value", SUM({column}))'
    )
    metric = intent.metric.value if intent.metric else ""
    page = {
        "name": _slug("compare", intent.vendor1, intent.vendor2, metric),
        "displayName": f"{intent.vendor1} vs {intent.vendor2}: {metric}",
        "visualType": "clusteredColumnChart",
        "metric": metric,
        "dimension": "Vendor",
        "query": query,
    }
    return BuiltAction(intent=intent, query=query, patch=AppendComparisonPage(page=page))


def _build_compare_calories_sugar(intent: Intent, context: CommandContext) -> BuiltAction:
    query = (
        f"EVALUATE SUMMARIZECOLUMNS({VENDOR_COLUMN}, "
        f'"Calories", SUM({MEASURE_COLUMNS[Measure.calories]}), '
        f'"Sugar", SUM({MEASURE_COLUMNS[Measure.sugar]}))'
    )
    page = {
        "name": _slug("compare", "calories", "sugar"),
        "displayName": "Calories vs Sugar by Vendor",
        "visualType": "clusteredColumnChart",
        "metric": f"{Measure.calories.value}, {Measure.sugar.value}",
        "dimension": "Vendor",
        "query": query,
    }
    return BuiltAction(intent=intent, query=query, patch=AppendComparisonPage(page=page))


def _build_filter(intent: Intent, context: CommandContext) -> BuiltAction:
    value = _dax_string(intent.value, allowed=context.categories, name="value")
    query = f"EVALUATE FILTER({DRINKS_TABLE}, {CATEGORY_COLUMN} = {value})"
    card = {"type": "table", "title": f"Only {intent.value}", "dax": query}
    return BuiltAction(intent=intent, query=query, patch=AppendCard(card=card))


def _build_safe_drink(intent: Intent, context: CommandContext) -> BuiltAction:
    age = _dax_int(intent.age, name="age")
    caffeine = MEASURE_COLUMNS[Measure.caffeine]
    query = (
        f"EVALUATE FILTER({DRINKS_TABLE}, {caffeine} <= "
        f"CALCULATE(MAX({SAFE_CAFFEINE_COLUMN}), {AGE_COLUMN} = {age}))"
    )
    card = {"type": "table", "title": f"Safe drinks for age {age}", "dax": query}
    return BuiltAction(intent=intent, query=query, patch=AppendCard(card=card))


def _build_apply_theme(intent: Intent, context: CommandContext) -> BuiltAction:
    if intent.color_hex is None:
        raise DAXBuilderError("applyTheme requires colorHex")
    return BuiltAction(
        intent=intent,
        theme=theme_descriptor(intent.color_hex),
        patch=SetTheme(theme=theme_descriptor(intent.color_hex, name=f"Custom Theme {intent.color_hex}")),
    )


def _build_add_card(intent: Intent, context: CommandContext) -> BuiltAction:
    card = {
        "type": "kpi",
        "title": intent.title,
        "page": intent.page,
        "dax": f"SUM({_measure_column(intent.column)})",
    }
    return BuiltAction(intent=intent, patch=AppendCard(card=card))


def _build_text_size(intent: Intent, context: CommandContext) -> BuiltAction:
    if intent.change is None:
        raise DAXBuilderError("textSize requires change")
    return BuiltAction(intent=intent, patch=SetTextSize(change=intent.change))


_BUILDERS = {
    Action.top_n: _build_top,
    Action.top_caffeine: _build_top,
    Action.top_sugar: _build_top,
    Action.max_value: _build_max,
    Action.min_value: _build_min,
    Action.compare: _build_compare,
    Action.compare_calories_sugar: _build_compare_calories_sugar,
    Action.filter: _build_filter,
    Action.safe_drink: _build_safe_drink,
    Action.apply_theme: _build_apply_theme,
    Action.add_card: _build_add_card,
    Action.text_size: _build_text_size,
}


def build(intent: Intent, context: CommandContext | None = None) -> BuiltAction:
    """Build the remote payload and local patch for a validated Intent.

    Raises:
        DAXBuilderError: For `unknown` or otherwise unsupported intents.
    """

    try:
        builder = _BUILDERS[intent.action]
    except KeyError as exc:
        raise DAXBuilderError(f"Unsupported action: {intent.action}") from exc

    return builder(intent, context or DEFAULT_CONTEXT)
