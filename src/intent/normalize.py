"""Text normalization for deterministic intent parsing."""

from __future__ import annotations

import re
import unicodedata

_NON_WORD_RE = re.compile(r"[^0-9a-z#_\-\s]+")
_MULTISPACE_RE = re.compile(r"\s+")


def fold(text: str) -> str:
    """Lowercase and strip diacritics (`Caffè` -> `caffe`)."""

    decomposed = unicodedata.normalize("NFKD", (text or "").strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase and strip diacritics.
        - Replace punctuation with spaces (`#` is kept for hex colors).
        - Collapse whitespace.

    The goal is deterministic tokenization, not linguistic lemmatization.
    """

    value = fold(text)

    # Normalize common unicode dashes to ASCII hyphen.
    value = value.replace("—", "-").replace("–", "-")

    # Treat quotes/backticks as separators but preserve the contents.
    value = value.replace("`", " ").replace('"', " ").replace("'", " ")

    value = _NON_WORD_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value
