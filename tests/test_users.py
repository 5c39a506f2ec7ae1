"""Tests for the current-user routes."""

import pytest
from httpx import AsyncClient

from tests.conftest import DEFAULT_PASSWORD, auth_headers, create_user


async def _login(client: AsyncClient, email: str, password: str) -> int:
    response = await client.post(
        "/api/auth/login", json={"email": email, "password": password}
    )
    return response.status_code


@pytest.mark.asyncio
async def test_update_profile(client: AsyncClient, async_session):
    user = await create_user(async_session, "profile@example.com", name="Old Name")

    response = await client.put(
        "/api/user/profile",
        json={"name": "New Name", "email": "renamed@example.com"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    data = response.json()["user"]
    assert data["name"] == "New Name"
    assert data["email"] == "renamed@example.com"


@pytest.mark.asyncio
async def test_update_profile_email_in_use(client: AsyncClient, async_session):
    user = await create_user(async_session, "profile@example.com")
    await create_user(async_session, "taken@example.com")

    response = await client.put(
        "/api/user/profile",
        json={"email": "taken@example.com"},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "This email is already in use"


@pytest.mark.asyncio
async def test_change_password_wrong_current_password(
    client: AsyncClient, async_session
):
    user = await create_user(async_session, "pw@example.com")

    response = await client.put(
        "/api/user/password",
        json={"currentPassword": "not-my-password", "newPassword": "new-password-1"},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Current password is incorrect"

    # Password unchanged: old one still works, new one doesn't
    assert await _login(client, "pw@example.com", DEFAULT_PASSWORD) == 200
    assert await _login(client, "pw@example.com", "new-password-1") == 401


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, async_session):
    user = await create_user(async_session, "pw@example.com")

    response = await client.put(
        "/api/user/password",
        json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "new-password-1"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert await _login(client, "pw@example.com", "new-password-1") == 200
    assert await _login(client, "pw@example.com", DEFAULT_PASSWORD) == 401


@pytest.mark.asyncio
async def test_change_password_rejects_password_over_72_bytes(
    client: AsyncClient, async_session
):
    user = await create_user(async_session, "pw@example.com")

    response = await client.put(
        "/api/user/password",
        json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "é" * 72},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "newPassword"
    assert await _login(client, "pw@example.com", DEFAULT_PASSWORD) == 200


@pytest.mark.asyncio
async def test_user_routes_require_session(client: AsyncClient):
    assert (await client.put("/api/user/profile", json={})).status_code == 401
    assert (await client.get("/api/user/settings")).status_code == 401


@pytest.mark.asyncio
async def test_settings_defaults_created_on_first_read(
    client: AsyncClient, async_session
):
    user = await create_user(async_session, "settings@example.com")

    response = await client.get("/api/user/settings", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["preferences"] == {
        "emailEnabled": True,
        "smsEnabled": False,
        "pushEnabled": True,
        "reminderDaysBefore": 1,
        "reminderOnDay": True,
    }


@pytest.mark.asyncio
async def test_update_settings_partial(client: AsyncClient, async_session):
    user = await create_user(async_session, "settings@example.com")

    response = await client.put(
        "/api/user/settings",
        json={"smsEnabled": True, "reminderDaysBefore": 3},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    preferences = response.json()["preferences"]
    assert preferences["smsEnabled"] is True
    assert preferences["reminderDaysBefore"] == 3
    assert preferences["emailEnabled"] is True

    again = await client.get("/api/user/settings", headers=auth_headers(user))
    assert again.json()["preferences"] == preferences


@pytest.mark.asyncio
async def test_update_settings_out_of_range(client: AsyncClient, async_session):
    user = await create_user(async_session, "settings@example.com")

    response = await client.put(
        "/api/user/settings",
        json={"reminderDaysBefore": 31},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "reminderDaysBefore"
