"""Publish the report document to a GitHub repository (contents API).

Publishing is best-effort: callers turn `PublishError` into a warning and never fail the command.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class PublishError(RuntimeError):
    """Raised when the document cannot be committed."""


@dataclass(frozen=True)
class GitHubConfig:
    """Target file in a GitHub repository."""

    token: str
    repo: str
    branch: str = "main"
    file_path: str = "Coffee.Report/report.json"
    api_base: str = GITHUB_API
    timeout_s: float = 30.0


class GitHubPublisher:
    """Commit the local report file to GitHub, creating or updating it."""

    def __init__(
            self,
            config: GitHubConfig,
            source_path: str | Path,
            *,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._source_path = Path(source_path)
        self._transport = transport

    @property
    def _contents_url(self) -> str:
        cfg = self._config
        return f"{cfg.api_base.rstrip('/')}/repos/{cfg.repo}/contents/{cfg.file_path.lstrip('/')}"

    async def commit(self, message: str) -> str | None:
        """Create or update the file with the current local document.

        Returns:
            The new commit SHA when GitHub reports one.

        Raises:
            PublishError: On read errors, transport errors or non-2xx responses.
        """

        try:
            content = self._source_path.read_bytes()
        except OSError as exc:
            raise PublishError(f"cannot read {self._source_path}: {exc}") from exc

        headers = {
            "Authorization": f"token {self._config.token}",
            "Accept": "application/vnd.github+json",
        }
        try:
            async with httpx.AsyncClient(
                    timeout=self._config.timeout_s,
                    transport=self._transport,
                    headers=headers,
            ) as client:
                sha = await self._current_sha(client)
                payload = {
                    "message": message,
                    "content": base64.b64encode(content).decode("ascii"),
                    "branch": self._config.branch,
                }
                if sha:
                    payload["sha"] = sha

                response = await client.put(self._contents_url, json=payload)
                response.raise_for_status()
                commit_sha = (response.json().get("commit") or {}).get("sha")
        except httpx.HTTPStatusError as exc:
            raise PublishError(f"GitHub returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise PublishError(f"GitHub request failed: {exc}") from exc
        except (ValueError, AttributeError) as exc:
            raise PublishError("unexpected GitHub response format") from exc

        logger.info(
            "report published repo=%s branch=%s commit=%s",
            self._config.repo,
            self._config.branch,
            commit_sha,
        )
        return commit_sha

    async def _current_sha(self, client: httpx.AsyncClient) -> str | None:
        response = await client.get(self._contents_url, params={"ref": self._config.branch})
        if response.status_code == 404:
            logger.info("report not in repository yet, creating it")
            return None
        response.raise_for_status()
        return response.json().get("sha")
