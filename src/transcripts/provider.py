"""HTTP client for the SerpAPI search-engine-style transcript provider."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from src.config import NotConfiguredError, settings

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Transport, HTTP-status or malformed-JSON failure of one provider call.

    ``payload`` holds the decoded response body when there was one, so callers
    can still inspect fields such as alternative transcript lists.
    """

    def __init__(self, message: str, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.payload = payload


class SerpApiClient:
    """Thin async wrapper over SerpAPI's JSON endpoints.

    Every call either returns a decoded JSON object or raises
    :class:`ProviderError`; there are no retries here.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = settings.serpapi_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.serpapi_base_url).rstrip("/")
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def search(self, params: dict[str, str]) -> dict[str, Any]:
        """Call ``/search.json`` with *params* plus the API key."""
        return await self._get(f"{self.base_url}/search.json", params)

    async def fetch_link(self, url: str) -> dict[str, Any]:
        """Follow a provider-issued ``serpapi_link`` (adds the API key)."""
        parts = urlsplit(url)
        params = dict(parse_qsl(parts.query))
        bare = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        return await self._get(bare, params)

    async def _get(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        if not self.configured:
            raise NotConfiguredError("SerpAPI key not configured")

        query = {**params, "api_key": self.api_key}
        safe_params = {k: v for k, v in params.items() if k != "api_key"}
        logger.debug("SerpAPI GET %s %s", url, urlencode(safe_params))

        try:
            response = await self._client().get(
                url, params=query, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Network error calling SerpAPI: {exc}") from exc

        try:
            data = response.json() if response.content else {}
        except (json.JSONDecodeError, ValueError) as exc:
            raise ProviderError("Invalid JSON from SerpAPI") from exc

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected SerpAPI response type: {type(data).__name__}")

        if response.status_code >= 400:
            message = data.get("error") or f"HTTP {response.status_code}"
            raise ProviderError(f"SerpAPI error: {message}", payload=data)

        if data.get("error"):
            raise ProviderError(f"SerpAPI error: {data['error']}", payload=data)

        return data
