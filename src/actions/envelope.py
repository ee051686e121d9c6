"""Uniform result envelope returned for every command."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResultEnvelope(BaseModel):
    """`{status, action, ...echo fields, result | message}`.

    Action parameters are echoed as extra top-level fields (camelCase, as in the intent JSON).
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: Literal["ok", "error"]
    action: str
    source: str | None = None
    state: str | None = None
    path: Literal["remote", "local"] | None = None
    result: Any = None
    message: str | None = None
    fallback: bool | None = None
    remote_error: str | None = Field(default=None, alias="remoteError")
    warnings: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict without empty optional fields."""

        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not data.get("warnings"):
            data.pop("warnings", None)
        return data


def ok_envelope(action: str, result: Any, **fields: Any) -> ResultEnvelope:
    return ResultEnvelope(status="ok", action=str(action), result=result, **fields)


def error_envelope(action: str, message: str, **fields: Any) -> ResultEnvelope:
    return ResultEnvelope(status="error", action=str(action), message=message, **fields)
