"""Document-mutation descriptions produced by the builder and applied by the store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


@dataclass(frozen=True)
class SetTheme:
    """Replace the report theme (last write wins)."""

    theme: dict[str, Any]
    kind: Literal["set-theme"] = "set-theme"


@dataclass(frozen=True)
class AppendCard:
    """Append a card to the report."""

    card: dict[str, Any]
    kind: Literal["append-card"] = "append-card"


@dataclass(frozen=True)
class AppendComparisonPage:
    """Append a comparison page; `page["name"]` is made unique on append."""

    page: dict[str, Any]
    kind: Literal["append-comparison-page"] = "append-comparison-page"


@dataclass(frozen=True)
class AppendTopNPage:
    """Append a ranked (top/bottom N) page; `page["name"]` is made unique on append."""

    page: dict[str, Any]
    kind: Literal["append-top-n-page"] = "append-top-n-page"


@dataclass(frozen=True)
class SetTextSize:
    """Step the theme's base font size up or down."""

    change: Literal["increase", "decrease"]
    step: int = 2
    bounds: tuple[int, int] = (8, 32)
    kind: Literal["set-text-size"] = "set-text-size"


DocumentPatch = SetTheme | AppendCard | AppendComparisonPage | AppendTopNPage | SetTextSize
