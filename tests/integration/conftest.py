"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Pre-condition: PostgreSQL migrated to head (alembic upgrade head) and Redis up.
"""

import uuid
from collections.abc import Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.hv_common.database import async_session_factory
from src.main import app
from tests.integration.helpers import Headers, register_and_login


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> Headers:
    """Admins are never self-registered: promote a fresh user in the DB."""
    user_id, headers = await register_and_login(client)
    async with async_session_factory() as session:
        await session.execute(
            text("UPDATE users SET role = 'admin' WHERE id = CAST(:id AS UUID)"), {"id": user_id}
        )
        await session.commit()
    return headers


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def artist_headers(client: AsyncClient) -> Headers:
    _, headers = await register_and_login(client, role="artist")
    return headers


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def publish_song(
    client: AsyncClient, artist_headers: Headers, admin_headers: Headers
) -> Callable[..., Awaitable[str]]:
    """Factory: upload a song as the artist, approve it as admin, return its id."""

    async def _publish(price_credits: int = 20, title: str | None = None) -> str:
        resp = await client.post(
            "/api/v1/songs",
            json={
                "title": title or f"Track {uuid.uuid4().hex[:6]}",
                "price_credits": price_credits,
                "genre": "Indie",
            },
            headers=artist_headers,
        )
        assert resp.status_code == 201, resp.text
        song_id = resp.json()["data"]["id"]
        mod = await client.post(
            f"/api/v1/admin/songs/{song_id}/moderate",
            json={"approve": True},
            headers=admin_headers,
        )
        assert mod.status_code == 200, mod.text
        return str(song_id)

    return _publish
