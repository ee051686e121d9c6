"""Tests for the deterministic rules-based English command parser."""

from __future__ import annotations

import pytest

from src.intent.context import CommandContext
from src.intent.rules_parser import DEFAULT_SAFE_AGE, parse_intent
from src.intent.schema import Action, Measure


def test_top_caffeine_request() -> None:
    intent = parse_intent("show top 3 caffeine drinks")
    assert intent.action == Action.top_caffeine
    assert intent.n == 3
    assert intent.column == Measure.caffeine


def test_top_sugar_and_plain_top_n() -> None:
    sugar = parse_intent("Top 10 sugary drinks")
    assert sugar.action == Action.top_sugar
    assert sugar.n == 10

    calories = parse_intent("top 4 by calories")
    assert calories.action == Action.top_n
    assert calories.column == Measure.calories
    assert calories.n == 4

    default = parse_intent("show me the top drinks")
    assert default.action == Action.top_n
    assert default.n == 5
    assert default.column == Measure.caffeine


def test_compare_two_vendors_on_sugar() -> None:
    intent = parse_intent("compare costa and starbucks sugar")
    assert intent.action == Action.compare
    assert intent.vendor1 == "Costa"
    assert intent.vendor2 == "Starbucks"
    assert intent.metric == Measure.sugar


def test_compare_fills_missing_vendor_from_vocabulary() -> None:
    intent = parse_intent("compare pret caffeine")
    assert intent.action == Action.compare
    assert intent.vendor1 == "Pret"
    assert intent.vendor2 == "Costa"
    assert intent.metric == Measure.caffeine


def test_theme_from_color_vocabulary() -> None:
    intent = parse_intent("set theme to dark brown")
    assert intent.action == Action.apply_theme
    assert intent.color_hex == "#654321"

    assert parse_intent("switch to dark mode").color_hex == "#000000"
    assert parse_intent("theme #a0522d").color_hex == "#A0522D"


def test_theme_without_known_color_is_unknown() -> None:
    intent = parse_intent("change the theme please")
    assert intent.action == Action.unknown
    assert intent.raw == "change the theme please"


def test_safe_drink_for_age() -> None:
    intent = parse_intent("safe drink for age 12")
    assert intent.action == Action.safe_drink
    assert intent.age == 12

    assert parse_intent("which drinks are safe").age == DEFAULT_SAFE_AGE


def test_max_and_min() -> None:
    highest = parse_intent("which drink has the highest calories")
    assert highest.action == Action.max_value
    assert highest.column == Measure.calories

    lowest = parse_intent("lowest sugar drink")
    assert lowest.action == Action.min_value
    assert lowest.column == Measure.sugar


def test_filter_by_category() -> None:
    assert parse_intent("show only cold drinks").value == "Cold Drinks"
    assert parse_intent("filter lattes").value == "Latte"

    # No category mentioned: the default category is used.
    intent = parse_intent("only show those")
    assert intent.action == Action.filter
    assert intent.value == "Latte"


def test_calories_versus_sugar_is_not_a_vendor_comparison() -> None:
    intent = parse_intent("compare calories and sugar")
    assert intent.action == Action.compare_calories_sugar

    assert parse_intent("calories vs sugar").action == Action.compare_calories_sugar


def test_text_size_changes() -> None:
    assert parse_intent("increase text size").change == "increase"
    assert parse_intent("make the font smaller").change == "decrease"
    assert parse_intent("font size").action == Action.unknown


def test_rule_order_theme_wins_over_top() -> None:
    intent = parse_intent("top theme in red")
    assert intent.action == Action.apply_theme
    assert intent.color_hex == "#FF0000"


def test_custom_vocabulary_is_used() -> None:
    context = CommandContext(vendors=("Blue Bottle", "Peets"), categories=("Espresso",))
    intent = parse_intent("compare blue bottle and peets calories", context)
    assert intent.vendor1 == "Blue Bottle"
    assert intent.vendor2 == "Peets"
    assert intent.metric == Measure.calories


def test_out_of_range_values_yield_unknown() -> None:
    assert parse_intent("safe drink for age 500").action == Action.unknown
    assert parse_intent("top 0 caffeine drinks").action == Action.unknown


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "hello there",
        "!!!???",
        "compare",
        "top 9999 sugar",
        "éèê",
        "DROP TABLE drinks; --",
        "theme\x00red",
    ],
)
def test_parser_is_total(text: str) -> None:
    intent = parse_intent(text)
    assert intent.action in set(Action)
