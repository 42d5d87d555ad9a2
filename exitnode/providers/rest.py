"""Base for provider API clients built on HttpClient.

Reads are retried on 429/503. Writes go out exactly once: a retried
create could leave a second server behind.
"""

from __future__ import annotations

from typing import Any

from exitnode.core.exceptions import NotFoundError, ProviderAPIError, ProviderError
from exitnode.infra.http import HttpClient, HttpError, JsonBody
from exitnode.infra.retry import on_status_code, retry
from exitnode.observability.logger import logger


class RestClient:
    provider: str = "rest"

    def __init__(self, http: HttpClient) -> None:
        self._http = http
        self._log = logger.bind(provider=self.provider)

    def _error(self, e: HttpError, operation: str, resource: str) -> ProviderError:
        if e.not_found:
            return NotFoundError(self.provider, operation, resource, detail="not found")
        detail = f"HTTP {e.status}: {e.body[:300]}" if e.status else e.body
        return ProviderAPIError(self.provider, operation, resource, detail=detail)

    @retry(on=on_status_code(429, 503), max_attempts=5, base_delay=1.0)
    async def _get_with_retry(self, path: str, params: dict[str, Any] | None) -> Any:
        return await self._http.get(path, params=params)

    async def _read(
        self,
        path: str,
        operation: str,
        resource: str = "",
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            return await self._get_with_retry(path, params)
        except HttpError as e:
            raise self._error(e, operation, resource) from e

    async def _write(
        self,
        method: str,
        path: str,
        operation: str,
        resource: str = "",
        *,
        json: JsonBody | None = None,
        text: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            return await self._http.request(method, path, json=json, text=text, params=params)
        except HttpError as e:
            raise self._error(e, operation, resource) from e

    async def close(self) -> None:
        await self._http.close()
