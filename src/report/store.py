"""Process-wide report document with single-writer mutation.

Every mutation is read-modify-write-save under one `asyncio.Lock`; the in-memory document is only
replaced after the save succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from src.report.document import ReportDocument
from src.report.patches import (
    AppendCard,
    AppendComparisonPage,
    AppendTopNPage,
    DocumentPatch,
    SetTextSize,
    SetTheme,
)
from src.report.storage import DocumentStorage

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 10


def _unique_name(base: str, taken: set[str]) -> str:
    base = base or "page"
    name = base
    suffix = 2
    while name in taken:
        name = f"{base}-{suffix}"
        suffix += 1
    return name


def _append_page(document: ReportDocument, page: dict[str, Any]) -> dict[str, Any]:
    new_page = dict(page)
    new_page["name"] = _unique_name(str(page.get("name") or ""), document.page_names())
    document.sections.append(new_page)
    return {"page": new_page["name"]}


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _font_size(value: Any) -> int:
    """Stored font size, or the default when the document holds something unusable."""

    if isinstance(value, bool):
        return DEFAULT_FONT_SIZE
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_FONT_SIZE


def _set_text_size(document: ReportDocument, patch: SetTextSize) -> dict[str, Any]:
    theme = _as_dict(document.theme)
    text_classes = _as_dict(theme.get("textClasses"))
    label = _as_dict(text_classes.get("label"))

    current = _font_size(label.get("fontSize"))
    delta = patch.step if patch.change == "increase" else -patch.step
    low, high = patch.bounds
    label["fontSize"] = max(low, min(high, current + delta))

    text_classes["label"] = label
    theme["textClasses"] = text_classes
    document.theme = theme
    return {"fontSize": label["fontSize"]}


def apply_patch(document: ReportDocument, patch: DocumentPatch) -> dict[str, Any]:
    """Apply a patch to `document` in place and return a short summary of the change."""

    if isinstance(patch, SetTheme):
        document.theme = dict(patch.theme)
        return {"theme": patch.theme.get("name")}
    if isinstance(patch, AppendCard):
        document.cards.append(dict(patch.card))
        return {"card": patch.card.get("title")}
    if isinstance(patch, (AppendComparisonPage, AppendTopNPage)):
        return _append_page(document, patch.page)
    if isinstance(patch, SetTextSize):
        return _set_text_size(document, patch)
    raise TypeError(f"Unsupported document patch: {patch!r}")


class DocumentStore:
    """Shared report document, loaded once and saved after every mutation."""

    def __init__(self, storage: DocumentStorage) -> None:
        self._storage = storage
        self._document: ReportDocument | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._document is not None

    async def load(self) -> ReportDocument:
        """Load the baseline document.

        Raises:
            StorageError: If no baseline document can be produced (fatal at startup).
        """

        async with self._lock:
            self._document = await asyncio.to_thread(self._storage.load)
            logger.info(
                "report loaded cards=%d pages=%d",
                len(self._document.cards),
                len(self._document.sections),
            )
            return self._document.model_copy(deep=True)

    async def apply(self, patch: DocumentPatch) -> dict[str, Any]:
        """Apply `patch` and persist the whole document before returning.

        Raises:
            StorageError: If the document cannot be loaded or saved; the in-memory state is kept
                unchanged in that case.
        """

        async with self._lock:
            if self._document is None:
                self._document = await asyncio.to_thread(self._storage.load)

            updated = self._document.model_copy(deep=True)
            summary = apply_patch(updated, patch)
            await asyncio.to_thread(self._storage.save, updated)
            self._document = updated

        logger.info("report patched kind=%s summary=%s", patch.kind, summary)
        return summary

    async def snapshot(self) -> ReportDocument:
        """Return a deep copy of the current document (loading it lazily)."""

        async with self._lock:
            if self._document is None:
                self._document = await asyncio.to_thread(self._storage.load)
            return self._document.model_copy(deep=True)
