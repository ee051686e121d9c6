"""Per-command vocabulary shared by both parsers."""

from __future__ import annotations

import json
from dataclasses import dataclass

from src.intent.dictionaries import (
    CAFFEINE_COLUMN,
    CALORIES_COLUMN,
    COLOR_NAMES,
    DEFAULT_CATEGORIES,
    DEFAULT_VENDORS,
    SUGAR_COLUMN,
)


@dataclass(frozen=True)
class CommandContext:
    """Enumerable vendor/category vocabulary a command is interpreted against."""

    vendors: tuple[str, ...] = DEFAULT_VENDORS
    categories: tuple[str, ...] = DEFAULT_CATEGORIES

    def to_prompt_json(self) -> str:
        """Serialize the vocabulary for the LLM system prompt."""

        return json.dumps(
            {
                "measures": [CAFFEINE_COLUMN, SUGAR_COLUMN, CALORIES_COLUMN],
                "vendors": list(self.vendors),
                "categories": list(self.categories),
                "colors": sorted(COLOR_NAMES),
            },
            ensure_ascii=False,
        )


DEFAULT_CONTEXT = CommandContext()
