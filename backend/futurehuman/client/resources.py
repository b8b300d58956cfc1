"""Typed request functions per API resource.

Each resource is a thin wrapper over `ApiClient.request`; payloads and
results are plain JSON dicts in the server's snake_case shape.
"""

from __future__ import annotations

from typing import Any

from futurehuman.client.http import ApiClient


class AgentResource:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def list(self, limit: int = 50, offset: int = 0) -> list[dict]:
        page = await self._api.request("GET", f"/api/agents/?limit={limit}&offset={offset}")
        return page["items"]

    async def get(self, agent_id: int) -> dict:
        return await self._api.request("GET", f"/api/agents/{agent_id}")

    async def create(self, payload: dict) -> dict:
        return await self._api.request("POST", "/api/agents/", payload)

    async def update(self, agent_id: int, payload: dict) -> dict:
        return await self._api.request("PATCH", f"/api/agents/{agent_id}", payload)

    async def delete(self, agent_id: int) -> None:
        await self._api.request("DELETE", f"/api/agents/{agent_id}")


class ConnectionResource:
    """Connections of one agent: /api/agents/{agent_id}/connections."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    @staticmethod
    def _path(agent_id: int, connection_id: int | None = None) -> str:
        base = f"/api/agents/{agent_id}/connections/"
        return base if connection_id is None else f"{base}{connection_id}"

    async def list(self, agent_id: int) -> list[dict]:
        return await self._api.request("GET", self._path(agent_id))

    async def create(self, agent_id: int, fields: dict[str, Any]) -> dict:
        return await self._api.request("POST", self._path(agent_id), fields)

    async def update(self, agent_id: int, connection_id: int, fields: dict[str, Any]) -> dict:
        return await self._api.request("PATCH", self._path(agent_id, connection_id), fields)

    async def delete(self, agent_id: int, connection_id: int) -> None:
        await self._api.request("DELETE", self._path(agent_id, connection_id))


class AccountResource:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def get(self) -> dict:
        return await self._api.request("GET", "/api/account/")

    async def update(self, fields: dict[str, Any]) -> dict:
        return await self._api.request("PATCH", "/api/account/", fields)

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._api.request(
            "PATCH",
            "/api/account/password",
            {"current_password": current_password, "new_password": new_password},
        )


class AuthResource:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def register(self, payload: dict[str, Any]) -> dict:
        return await self._api.request("POST", "/api/auth/register", payload, authenticate=False)

    async def login(self, email: str, password: str) -> dict:
        return await self._api.request(
            "POST", "/api/auth/login", {"email": email, "password": password},
            authenticate=False,
        )

    async def refresh(self, refresh_token: str) -> dict:
        return await self._api.request(
            "POST", "/api/auth/refresh", {"refresh_token": refresh_token},
            authenticate=False,
        )

    async def logout(self, refresh_token: str | None = None) -> None:
        body = {"refresh_token": refresh_token} if refresh_token else None
        await self._api.request("POST", "/api/auth/logout", body)

    async def me(self) -> dict:
        return await self._api.request("GET", "/api/auth/me")
