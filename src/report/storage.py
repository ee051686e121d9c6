"""JSON file persistence for the local report document."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from src.report.document import ReportDocument

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the report document cannot be loaded or saved."""


class DocumentStorage:
    """Load/save a `ReportDocument` as pretty-printed JSON at `path`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> ReportDocument:
        """Read the document; a missing file yields an empty baseline document.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """

        if not self.path.exists():
            logger.warning("report not found, starting from an empty document path=%s", self.path)
            return ReportDocument()

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return ReportDocument.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Cannot load report document {self.path}: {exc}") from exc

    def save(self, document: ReportDocument) -> None:
        """Write the whole document, replacing the file atomically.

        Raises:
            StorageError: On any I/O failure.
        """

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(document.model_dump(mode="json"), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Cannot save report document {self.path}: {exc}") from exc

        logger.info("report saved path=%s", self.path)
