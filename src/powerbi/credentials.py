"""Azure AD client-credentials token provider for the Power BI REST API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

logger = logging.getLogger(__name__)

AUTHORITY = "https://login.microsoftonline.com"
POWERBI_SCOPE = "https://analysis.windows.net/powerbi/api/.default"

# Refresh cached tokens this many seconds before they expire.
REFRESH_MARGIN_S = 300


class AuthError(RuntimeError):
    """Raised when an access token cannot be acquired."""


class ClientCredentialsProvider:
    """Acquire and cache an app-only access token.

    Successful tokens are cached until `REFRESH_MARGIN_S` before expiry; failures are never cached,
    so the next call retries.
    """

    def __init__(
            self,
            tenant_id: str,
            client_id: str,
            client_secret: str,
            *,
            timeout_s: float = 30.0,
            authority: str = AUTHORITY,
            transport: httpx.AsyncBaseTransport | None = None,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout_s = timeout_s
        self._transport = transport
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Return a valid access token.

        Raises:
            AuthError: On transport errors, timeouts, non-2xx responses or a malformed body.
        """

        async with self._lock:
            if self._token is not None and self._clock() < self._expires_at:
                return self._token

            token, expires_in = await self._fetch_token()
            self._token = token
            self._expires_at = self._clock() + max(0, expires_in - REFRESH_MARGIN_S)
            logger.info("access token acquired expires_in=%d", expires_in)
            return token

    async def _fetch_token(self) -> tuple[str, int]:
        form = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": POWERBI_SCOPE,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                response = await client.post(self._token_url, data=form)
            response.raise_for_status()
            body = response.json()
            return str(body["access_token"]), int(body.get("expires_in", 3600))
        except httpx.HTTPStatusError as exc:
            raise AuthError(f"token request failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"token request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthError("unexpected token response format") from exc
