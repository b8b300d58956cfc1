"""Account (own profile) endpoint tests."""

import pytest
from httpx import AsyncClient

from futurehuman.models.user import User


@pytest.mark.api
@pytest.mark.asyncio
class TestAccount:
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/account/")
        assert response.status_code == 401

    async def test_get_profile(self, client: AsyncClient, auth_headers: dict, test_user: User):
        response = await client.get("/api/account/", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == test_user.email
        assert data["role"] == "user"

    async def test_update_profile(self, client: AsyncClient, auth_headers: dict):
        response = await client.patch(
            "/api/account/",
            headers=auth_headers,
            json={"first_name": "Renamed", "country": "ZA"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Renamed"
        assert data["country"] == "ZA"
        assert data["full_name"] == "Renamed Tester"

    async def test_email_is_not_editable(self, client: AsyncClient, auth_headers: dict, test_user: User):
        response = await client.patch(
            "/api/account/",
            headers=auth_headers,
            json={"email": "hijack@futurehuman.io"},
        )

        assert response.status_code == 200
        assert response.json()["email"] == test_user.email

    async def test_blank_name_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.patch(
            "/api/account/", headers=auth_headers, json={"last_name": "   "}
        )
        assert response.status_code == 400

    async def test_change_password(self, client: AsyncClient, auth_headers: dict, test_user: User, revocation):
        response = await client.patch(
            "/api/account/password",
            headers=auth_headers,
            json={"current_password": "testpassword123", "new_password": "brandnew456"},
        )
        assert response.status_code == 200
        assert test_user.id in revocation.user_markers

        login = await client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "brandnew456"},
        )
        assert login.status_code == 200

    async def test_change_password_wrong_current(self, client: AsyncClient, auth_headers: dict, revocation):
        response = await client.patch(
            "/api/account/password",
            headers=auth_headers,
            json={"current_password": "nope", "new_password": "brandnew456"},
        )
        assert response.status_code == 400
        assert revocation.user_markers == {}
