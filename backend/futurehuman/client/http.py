"""Authenticated JSON-over-HTTP client for the FutureHuman API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from futurehuman.config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for every non-2xx response.

    `message` comes from the server's error envelope when there is one,
    otherwise from the HTTP reason phrase.
    """

    def __init__(self, status: int, message: str, details: Any = None) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.details = details

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            return cls(
                response.status_code,
                error.get("message") or response.reason_phrase,
                error.get("details"),
            )
        if isinstance(body, dict) and "detail" in body:
            return cls(response.status_code, str(body["detail"]))
        return cls(response.status_code, response.reason_phrase or "Request failed")


class TokenProvider(Protocol):
    """Source of the bearer credential (see futurehuman.client.session)."""

    @property
    def access_token(self) -> str | None: ...

    async def refresh(self) -> bool: ...


class ApiClient:
    """Async API client backed by httpx.

    The token provider is injected; on a 401 it is asked to refresh once
    and the request is replayed. Concurrent 401s share a single refresh.
    """

    def __init__(
        self,
        base_url: str | None = None,
        auth: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url or settings.api_url
        self._auth = auth
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._refresh_lock = asyncio.Lock()

    @property
    def auth(self) -> TokenProvider | None:
        return self._auth

    @auth.setter
    def auth(self, provider: TokenProvider | None) -> None:
        self._auth = provider

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self, authenticate: bool) -> dict[str, str]:
        token = self._auth.access_token if self._auth and authenticate else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _refresh_once(self, stale_token: str | None) -> bool:
        async with self._refresh_lock:
            # Another caller already refreshed while we waited
            if self._auth.access_token and self._auth.access_token != stale_token:
                return True
            return await self._auth.refresh()

    async def _send(
        self, method: str, path: str, body: Any, authenticate: bool
    ) -> httpx.Response:
        return await self._get_client().request(
            method, path, json=body, headers=self._headers(authenticate)
        )

    async def request(
        self, method: str, path: str, body: Any = None, authenticate: bool = True
    ) -> Any:
        """Send a JSON request and return the decoded body (None when empty).

        With `authenticate=False` no bearer is attached and a 401 is final
        (login, register and token refresh).

        Raises:
            ApiError: On any non-2xx response
        """
        sent_token = self._auth.access_token if self._auth and authenticate else None
        response = await self._send(method, path, body, authenticate)

        if response.status_code == 401 and sent_token:
            logger.debug("401 on %s %s, refreshing credentials", method, path)
            if await self._refresh_once(sent_token):
                response = await self._send(method, path, body, authenticate)

        if response.is_error:
            error = ApiError.from_response(response)
            logger.debug("%s %s failed: %s", method, path, error)
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()
