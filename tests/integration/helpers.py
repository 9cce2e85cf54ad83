"""Shared helpers for integration tests."""

import uuid

from httpx import AsyncClient

Headers = dict[str, str]


def unique_user(role: str = "listener") -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"{role}_{uid}",
        "email": f"{role}_{uid}@example.com",
        "password": "TestPass1",
        "role": role,
    }


async def register_and_login(client: AsyncClient, role: str = "listener") -> tuple[str, Headers]:
    """Register a fresh user and return (user_id, auth headers)."""
    user = unique_user(role)
    reg = await client.post("/api/v1/auth/register", json=user)
    assert reg.status_code == 201, reg.text
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
    )
    data = resp.json()["data"]
    return data["user"]["user_id"], {"Authorization": f"Bearer {data['access_token']}"}
