"""Tests for registration, login and token refresh."""

import pytest
from httpx import AsyncClient

from eventpix.core.security import create_refresh_token
from eventpix.services.users import get_user_by_email

AUTH = "/api/v1/auth"


async def register(client: AsyncClient, email: str = "new.user@example.com") -> dict:
    response = await client.post(
        f"{AUTH}/register",
        json={"email": email, "name": "New User", "password": "correct-horse"},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_register_and_login(client: AsyncClient):
    user = await register(client, "New.User@Example.com")
    assert user["email"] == "new.user@example.com"
    assert user["is_super_admin"] is False
    assert "hashed_password" not in user

    response = await client.post(
        f"{AUTH}/login", json={"email": "new.user@example.com", "password": "correct-horse"}
    )
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"

    me = await client.get(
        f"{AUTH}/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_duplicate_registration(client: AsyncClient):
    await register(client)

    response = await client.post(
        f"{AUTH}/register",
        json={"email": "NEW.USER@example.com", "password": "another-pass"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_with_wrong_password(client: AsyncClient):
    await register(client)

    response = await client.post(
        f"{AUTH}/login", json={"email": "new.user@example.com", "password": "wrong-pass"}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_refresh_issues_new_pair(client: AsyncClient, host):
    response = await client.post(
        f"{AUTH}/refresh", json={"refresh_token": create_refresh_token(host.id)}
    )

    assert response.status_code == 200
    me = await client.get(
        f"{AUTH}/me", headers={"Authorization": f"Bearer {response.json()['access_token']}"}
    )
    assert me.json()["email"] == host.email


@pytest.mark.asyncio
async def test_access_token_is_not_a_refresh_token(client: AsyncClient, host, host_headers):
    access_token = host_headers["Authorization"].split()[1]

    response = await client.post(f"{AUTH}/refresh", json={"refresh_token": access_token})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_bad_token_is_rejected(client: AsyncClient):
    response = await client.get(f"{AUTH}/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401

    assert (await client.get(f"{AUTH}/me")).status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_cannot_refresh(client: AsyncClient, db_session, host):
    host.is_active = False
    db_session.add(host)
    await db_session.commit()

    response = await client.post(
        f"{AUTH}/refresh", json={"refresh_token": create_refresh_token(host.id)}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_email_lookup_ignores_case_and_spaces(db_session, host):
    assert (await get_user_by_email(db_session, "  HOST@Example.com ")).id == host.id
    assert await get_user_by_email(db_session, "nobody@example.com") is None
