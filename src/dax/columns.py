"""Allowlisted DAX identifiers.

All table and column references in generated DAX must come from these mappings; no user-provided
identifier is ever interpolated into a query.
"""

from __future__ import annotations

from src.intent.schema import Measure

DRINKS_TABLE = "'Coffee Detail'"
AGE_LIMIT_TABLE = "'AgeSafeLimit'"

MEASURE_COLUMNS: dict[Measure, str] = {
    Measure.caffeine: "'Coffee Detail'[Caffeine (mg)]",
    Measure.sugar: "'Coffee Detail'[Sugars (g)]",
    Measure.calories: "'Coffee Detail'[Calories]",
}

VENDOR_COLUMN = "'Coffee Detail'[Vendor]"
CATEGORY_COLUMN = "'Coffee Detail'[Category]"

AGE_COLUMN = "'AgeSafeLimit'[Age]"
SAFE_CAFFEINE_COLUMN = "'AgeSafeLimit'[Safe Caffeine]"
