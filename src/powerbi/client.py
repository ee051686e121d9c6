"""Power BI REST client (the remote analytic/reporting backend).

Every call has an explicit timeout. Transport errors, timeouts, non-2xx responses and token
failures are all surfaced as `BackendError`; callers decide whether a local fallback exists.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from src.powerbi.credentials import AuthError

logger = logging.getLogger(__name__)

EXPORT_FORMATS: frozenset[str] = frozenset({"PDF", "PPTX", "PNG"})


class BackendError(RuntimeError):
    """Raised when a remote analytic/report service call fails."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class TokenProvider(Protocol):
    async def get_token(self) -> str: ...


@dataclass(frozen=True)
class PowerBIConfig:
    """Identifiers and limits for the Power BI REST API."""

    workspace_id: str
    dataset_id: str
    report_id: str | None = None
    api_base: str = "https://api.powerbi.com/v1.0/myorg"
    theme_update_url: str | None = None
    timeout_s: float = 30.0
    export_poll_interval_s: float = 5.0
    export_max_polls: int = 60


class PowerBIBackend:
    """Run DAX queries, update the theme, refresh the dataset and export the report."""

    def __init__(
            self,
            config: PowerBIConfig,
            credentials: TokenProvider,
            *,
            transport: httpx.AsyncBaseTransport | None = None,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._credentials = credentials
        self._transport = transport
        self._sleep = sleep

    @property
    def _dataset_url(self) -> str:
        cfg = self._config
        return f"{cfg.api_base.rstrip('/')}/groups/{cfg.workspace_id}/datasets/{cfg.dataset_id}"

    @property
    def _report_url(self) -> str:
        cfg = self._config
        if not cfg.report_id:
            raise BackendError("POWERBI_REPORT_ID is not configured")
        return f"{cfg.api_base.rstrip('/')}/groups/{cfg.workspace_id}/reports/{cfg.report_id}"

    async def _request(
            self,
            method: str,
            url: str,
            *,
            json: Any = None,
            authorized: bool = True,
    ) -> httpx.Response:
        headers: dict[str, str] = {}
        if authorized:
            try:
                headers["Authorization"] = f"Bearer {await self._credentials.get_token()}"
            except AuthError as exc:
                raise BackendError(f"authentication failed: {exc}", status=401) from exc

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_s, transport=self._transport) as client:
                response = await client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise BackendError(f"{method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            logger.warning("backend error method=%s status=%d", method, response.status_code)
            raise BackendError(
                f"{method} {url} returned HTTP {response.status_code}",
                status=response.status_code,
                body=response.text[:2000],
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("backend returned invalid JSON", status=response.status_code) from exc

    async def run_query(self, dax: str) -> list[dict[str, Any]]:
        """Execute a DAX query against the dataset and return the first table's rows."""

        response = await self._request(
            "POST",
            f"{self._dataset_url}/executeQueries",
            json={"queries": [{"query": dax}], "serializerSettings": {"includeNulls": True}},
        )
        body = self._json(response)
        try:
            result = body["results"][0]
            if "error" in result:
                raise BackendError(f"query failed: {result['error']}", status=response.status_code)
            return list(result["tables"][0]["rows"])
        except (KeyError, IndexError, TypeError) as exc:
            raise BackendError("unexpected executeQueries response format") from exc

    async def update_theme(self, theme: dict[str, Any]) -> None:
        """Push a theme descriptor to the theme-update endpoint."""

        if not self._config.theme_update_url:
            raise BackendError("THEME_UPDATE_URL is not configured")
        await self._request("POST", self._config.theme_update_url, json=theme, authorized=False)

    async def refresh_dataset(self) -> None:
        """Trigger an asynchronous dataset refresh."""

        await self._request(
            "POST",
            f"{self._dataset_url}/refreshes",
            json={"notifyOption": "NoNotification"},
        )

    async def list_tables(self) -> list[dict[str, Any]]:
        """Return the dataset's table metadata."""

        response = await self._request("GET", f"{self._dataset_url}/tables")
        body = self._json(response)
        if not isinstance(body, dict) or not isinstance(body.get("value"), list):
            raise BackendError("unexpected tables response format")
        return body["value"]

    async def export_report(self, file_format: str = "PDF") -> bytes:
        """Export the report to a file, polling the export job until it is terminal.

        Raises:
            ValueError: For unsupported formats.
            BackendError: If the job fails, never finishes within `export_max_polls`, or any call
                fails.
        """

        fmt = file_format.upper()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"unsupported export format: {file_format}")

        response = await self._request("POST", f"{self._report_url}/ExportTo", json={"format": fmt})
        body = self._json(response)
        export_id = body.get("id") if isinstance(body, dict) else None
        if not export_id:
            raise BackendError("export job id missing from response")

        status_url = f"{self._report_url}/exports/{export_id}"
        for attempt in range(self._config.export_max_polls):
            body = self._json(await self._request("GET", status_url))
            status = body.get("status") if isinstance(body, dict) else None
            logger.info("export poll id=%s attempt=%d status=%s", export_id, attempt + 1, status)
            if status == "Succeeded":
                file_response = await self._request("GET", f"{status_url}/file")
                return file_response.content
            if status == "Failed":
                raise BackendError(f"export job {export_id} failed")
            await self._sleep(self._config.export_poll_interval_s)

        raise BackendError(f"export job {export_id} did not finish in time")
