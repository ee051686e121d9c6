"""Local report definition (the PBIP `report.json` document)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReportDocument(BaseModel):
    """The parts of a report the pipeline mutates.

    Any other top-level keys of the PBIP document are kept verbatim (`extra="allow"`).
    """

    model_config = ConfigDict(extra="allow")

    theme: dict[str, Any] | None = None
    cards: list[dict[str, Any]] = Field(default_factory=list)
    sections: list[dict[str, Any]] = Field(default_factory=list)

    def page_names(self) -> set[str]:
        """Names of all pages currently in the report."""

        return {str(page.get("name")) for page in self.sections if page.get("name")}
