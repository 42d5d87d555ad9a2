"""Small aiohttp JSON client shared by the REST-based providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import aiohttp

from exitnode.observability.logger import logger

type JsonBody = dict[str, Any] | list[Any]

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    status: int
    body: str
    method: str = ""
    path: str = ""

    def __str__(self) -> str:
        where = f" {self.method} {self.path}" if self.method else ""
        return f"HTTP {self.status}{where}: {self.body}"

    @property
    def not_found(self) -> bool:
        return self.status == 404


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    def headers(self) -> dict[str, str]: ...


class BearerAuth:
    def __init__(self, token: str) -> None:
        self._token = token

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}


class HeaderTokenAuth:
    """Sends the token verbatim in a provider-specific header (e.g. X-Auth-Token)."""

    def __init__(self, header: str, token: str) -> None:
        self._header = header
        self._token = token

    def headers(self) -> dict[str, str]:
        return {self._header: self._token}


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._default_headers = {"Accept": "application/json", **(default_headers or {})}
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = dict(self._default_headers)
        if self._auth:
            headers.update(self._auth.headers())
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: JsonBody | None = None,
        params: dict[str, Any] | None = None,
        text: str | None = None,
        content_type: str = "text/plain",
        timeout: float | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty).

        ``text`` sends a raw body with ``content_type`` instead of JSON.

        Every call is bounded by ``timeout`` seconds, falling back to the
        client default. Non-2xx responses and transport failures raise
        HttpError; status 0 means the request never got a response.
        """
        session = self._ensure_session()
        self._log.debug("{method} {path}", method=method, path=path)
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)
        headers = self._headers()
        if text is not None:
            headers["Content-Type"] = content_type

        try:
            async with session.request(
                method,
                self._url(path),
                headers=headers,
                json=json,
                data=text.encode() if text is not None else None,
                params=params,
                timeout=client_timeout,
            ) as resp:
                body = await resp.read()
                if resp.status >= 400:
                    detail = body.decode(errors="replace")
                    self._log.warning(
                        "HTTP {status} from {method} {path}: {body}",
                        status=resp.status, method=method, path=path, body=detail[:500],
                    )
                    raise HttpError(status=resp.status, body=detail, method=method, path=path)
                if not body:
                    return None
                return await resp.json(content_type=None)
        except TimeoutError as e:
            raise HttpError(status=0, body="request timed out", method=method, path=path) from e
        except aiohttp.ClientError as e:
            raise HttpError(status=0, body=str(e), method=method, path=path) from e

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: JsonBody | None = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: JsonBody | None = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, *, json: JsonBody | None = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, params=params)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session and not self._session.closed:
            self._log.debug("Closing HTTP session")
            await self._session.close()

    async def __aenter__(self) -> HttpClient:
        self._ensure_session()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
