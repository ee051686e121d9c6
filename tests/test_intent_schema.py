"""Tests for the strict Intent Pydantic schema, its defaults and canonicalization."""

from __future__ import annotations

import pytest

from src.intent.context import CommandContext
from src.intent.schema import (
    DEFAULT_CARD_PAGE,
    DEFAULT_MEASURE,
    DEFAULT_TOP_N,
    Action,
    Intent,
    IntentValidationError,
    Measure,
    validate_intent,
)


@pytest.mark.parametrize(
    ("candidate", "expected"),
    [
        ({"action": "topN"}, {"n": DEFAULT_TOP_N, "column": DEFAULT_MEASURE.value}),
        ({"action": "topCaffeine"}, {"n": DEFAULT_TOP_N, "column": "Caffeine (mg)"}),
        ({"action": "topSugar"}, {"n": DEFAULT_TOP_N, "column": "Sugars (g)"}),
        ({"action": "maxValue"}, {"column": DEFAULT_MEASURE.value}),
        ({"action": "minValue"}, {"column": DEFAULT_MEASURE.value}),
        (
            {"action": "addCard"},
            {"column": DEFAULT_MEASURE.value, "title": "Total Caffeine (mg)", "page": DEFAULT_CARD_PAGE},
        ),
        (
            {"action": "compare", "vendor1": "Costa", "vendor2": "Pret"},
            {"vendor1": "Costa", "vendor2": "Pret", "metric": DEFAULT_MEASURE.value},
        ),
        ({"action": "compareCaloriesSugar"}, {}),
    ],
)
def test_minimal_candidates_get_documented_defaults(
        candidate: dict[str, object],
        expected: dict[str, object],
) -> None:
    intent = validate_intent(candidate)
    assert intent.to_params() == expected


@pytest.mark.parametrize(
    "candidate",
    [
        {"action": "applyTheme"},
        {"action": "filter"},
        {"action": "safeDrink"},
        {"action": "textSize"},
        {"action": "compare", "vendor1": "Costa"},
    ],
)
def test_required_parameters_without_defaults_are_rejected(candidate: dict[str, object]) -> None:
    with pytest.raises(IntentValidationError):
        validate_intent(candidate)


@pytest.mark.parametrize("column", ["Sugar", "sugars (g)", "SUGARS (G)", "sugary"])
def test_top_n_over_sugar_alias_is_rewritten(column: str) -> None:
    intent = validate_intent({"action": "topN", "column": column, "n": 3})
    assert intent.action == Action.top_sugar
    assert intent.column == Measure.sugar
    assert intent.n == 3


@pytest.mark.parametrize("column", ["caffeine", "CAFFEINE", "mg"])
def test_top_n_over_caffeine_alias_is_rewritten(column: str) -> None:
    intent = validate_intent({"action": "topN", "column": column})
    assert intent.action == Action.top_caffeine
    assert intent.column == Measure.caffeine


def test_top_n_keeps_other_measures() -> None:
    intent = validate_intent({"action": "topN", "column": "kcal", "n": 7})
    assert intent.action == Action.top_n
    assert intent.column == Measure.calories


def test_fixed_top_actions_ignore_supplied_column() -> None:
    intent = validate_intent({"action": "topSugar", "column": "Calories"})
    assert intent.column == Measure.sugar


@pytest.mark.parametrize(
    "candidate",
    [
        {"action": "topN"},
        {"action": "topN", "column": "sugar"},
        {"action": "topN", "column": "caffeine"},
        {"action": "applyTheme", "colorName": "dark brown"},
        {"action": "compare", "vendor1": "costa", "vendor2": "caffe nero", "metric": "kcal"},
        {"action": "filter", "value": "iced"},
        {"action": "addCard", "title": "Sugar total", "column": "sugar"},
        {"action": "textSize", "change": "Increase"},
        {"action": "unknown", "raw": "hello"},
    ],
)
def test_canonicalization_is_idempotent(candidate: dict[str, object]) -> None:
    once = validate_intent(candidate)
    twice = validate_intent(once)
    assert twice == once


def test_action_name_is_case_insensitive_and_parameters_are_flattened() -> None:
    intent = validate_intent({"action": "SAFEDRINK", "parameters": {"age": 12}})
    assert intent.action == Action.safe_drink
    assert intent.age == 12


def test_keys_foreign_to_the_action_are_dropped() -> None:
    intent = validate_intent({"action": "safeDrink", "age": 12, "colorHex": "#FFFFFF", "n": 3})
    assert intent.to_params() == {"age": 12}


def test_color_names_and_hex_are_canonicalized() -> None:
    assert validate_intent({"action": "applyTheme", "colorName": "Dark Brown"}).color_hex == "#654321"
    assert validate_intent({"action": "applyTheme", "colorHex": "#a0522d"}).color_hex == "#A0522D"
    with pytest.raises(IntentValidationError):
        validate_intent({"action": "applyTheme", "colorHex": "not-a-color"})


def test_unknown_vendor_or_category_is_rejected() -> None:
    with pytest.raises(IntentValidationError):
        validate_intent({"action": "compare", "vendor1": "Costa", "vendor2": "Dunkin"})
    with pytest.raises(IntentValidationError):
        validate_intent({"action": "filter", "value": "Muffins"})


def test_compare_requires_two_different_vendors() -> None:
    with pytest.raises(IntentValidationError):
        validate_intent({"action": "compare", "vendor1": "Costa", "vendor2": "costa"})


def test_vocabulary_comes_from_the_command_context() -> None:
    context = CommandContext(vendors=("Blue Bottle", "Costa"), categories=("Espresso",))

    intent = validate_intent({"action": "filter", "value": "espresso"}, context)
    assert intent.value == "Espresso"

    with pytest.raises(IntentValidationError):
        validate_intent({"action": "filter", "value": "Latte"}, context)


@pytest.mark.parametrize(
    "candidate",
    [
        {"action": "danceParty"},
        {},
        {"action": "topN", "n": 0},
        {"action": "safeDrink", "age": 500},
        {"action": "textSize", "change": "huge"},
    ],
)
def test_invalid_candidates_raise_intent_validation_error(candidate: dict[str, object]) -> None:
    with pytest.raises(IntentValidationError):
        validate_intent(candidate)


def test_non_object_candidate_is_rejected() -> None:
    with pytest.raises(IntentValidationError):
        validate_intent(["topN"])


def test_direct_construction_applies_the_same_canonicalization() -> None:
    intent = Intent(action="topN", column="Sugar")
    assert intent.action == Action.top_sugar
    assert intent.n == 5
