"""Auth session: holds the token pair and the signed-in user.

The session is the token provider handed to `ApiClient`, so every
resource built on that client authenticates through it.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from futurehuman.client.http import ApiClient, ApiError
from futurehuman.client.resources import AuthResource

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(self, api: ApiClient) -> None:
        self._api = api
        self._auth = AuthResource(api)
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._user: dict | None = None
        api.auth = self

    # ── Token provider ───────────────────────────────────────

    @property
    def access_token(self) -> str | None:
        return self._access_token

    async def refresh(self) -> bool:
        """Swap the refresh token for a new pair; False clears the session."""
        if not self._refresh_token:
            return False
        try:
            tokens = await self._auth.refresh(self._refresh_token)
        except ApiError as e:
            logger.info("Token refresh rejected (%s), signing out", e.status)
            self._clear()
            return False
        self._store(tokens)
        return True

    # ── Session ──────────────────────────────────────────────

    @property
    def current_user(self) -> dict | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    async def login(self, email: str, password: str) -> dict:
        self._store(await self._auth.login(email, password))
        return self._user

    async def register(self, **fields: Any) -> dict:
        self._store(await self._auth.register(fields))
        return self._user

    async def load_current_user(self) -> dict | None:
        """Re-fetch the profile for a restored session."""
        if not self.is_authenticated:
            return None
        self._user = await self._auth.me()
        return self._user

    async def logout(self) -> None:
        """Revoke server-side when possible; local credentials always go."""
        if self.is_authenticated:
            try:
                await self._auth.logout(self._refresh_token)
            except (ApiError, httpx.HTTPError) as e:
                logger.warning("Logout request failed: %s", e)
            finally:
                self._clear()

    def restore(self, access_token: str, refresh_token: str | None = None) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token

    def _store(self, tokens: dict) -> None:
        self._access_token = tokens["access_token"]
        self._refresh_token = tokens.get("refresh_token")
        self._user = tokens.get("user")

    def _clear(self) -> None:
        self._access_token = None
        self._refresh_token = None
        self._user = None
