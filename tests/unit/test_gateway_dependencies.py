"""Tests for hv_gateway.auth.dependencies."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from config.settings import settings
from src.hv_common.enums import UserRole
from src.hv_common.errors import AccountDisabledError, PermissionDeniedError
from src.hv_gateway.auth.dependencies import (
    build_context,
    client_ip,
    get_current_user,
    require_admin,
    require_artist,
)
from src.hv_gateway.auth.jwt_handler import create_access_token, create_refresh_token
from src.hv_gateway.user.db_models import UserModel


def _user(role: str = "listener", is_active: bool = True) -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "alice"
    user.role = role
    user.is_active = is_active
    return user


def _request(headers: dict[str, str] | None = None, client=("127.0.0.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def _db_returning(user):
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return db


class TestGetCurrentUser:
    async def test_valid_token(self) -> None:
        user = _user()
        got = await get_current_user(create_access_token(str(user.id)), _db_returning(user))
        assert got is user

    async def test_invalid_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("garbage", _db_returning(None))
        assert exc_info.value.status_code == 401

    async def test_refresh_token_is_401(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(create_refresh_token("u-1"), _db_returning(_user()))

    async def test_unknown_user_is_401(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(create_access_token(str(uuid.uuid4())), _db_returning(None))

    async def test_disabled_user(self) -> None:
        user = _user(is_active=False)
        with pytest.raises(AccountDisabledError):
            await get_current_user(create_access_token(str(user.id)), _db_returning(user))


class TestRoleGuards:
    async def test_artist_passes_artist_guard(self) -> None:
        user = _user("artist")
        assert await require_artist(user) is user

    async def test_admin_passes_artist_guard(self) -> None:
        user = _user("admin")
        assert await require_artist(user) is user

    async def test_listener_blocked_from_artist_routes(self) -> None:
        with pytest.raises(PermissionDeniedError):
            await require_artist(_user("listener"))

    async def test_admin_guard(self) -> None:
        admin = _user("admin")
        assert await require_admin(admin) is admin
        with pytest.raises(PermissionDeniedError):
            await require_admin(_user("artist"))


class TestRequestContext:
    def test_forwarded_for_first_hop_from_trusted_proxy(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "TRUSTED_PROXY_IPS", "10.0.0.2, 127.0.0.1")
        req = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert client_ip(req) == "203.0.113.9"

    def test_forwarded_for_ignored_from_untrusted_peer(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "TRUSTED_PROXY_IPS", "10.0.0.2")
        req = _request({"X-Forwarded-For": "203.0.113.9"}, client=("198.51.100.4", 5000))
        assert client_ip(req) == "198.51.100.4"

    def test_forwarded_for_ignored_when_no_proxy_configured(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "TRUSTED_PROXY_IPS", "")
        req = _request({"X-Forwarded-For": "203.0.113.9"})
        assert client_ip(req) == "127.0.0.1"

    def test_socket_peer_fallback(self) -> None:
        assert client_ip(_request()) == "127.0.0.1"

    def test_no_client(self) -> None:
        assert client_ip(_request(client=None)) is None

    def test_build_context(self) -> None:
        user = _user("artist")
        req = _request({"X-Device-Fingerprint": "fp-123"})
        req.state.request_id = "req_abc"

        ctx = build_context(req, user)

        assert ctx.user_id == str(user.id)
        assert ctx.role == UserRole.ARTIST
        assert ctx.ip_address == "127.0.0.1"
        assert ctx.device_fingerprint == "fp-123"
        assert ctx.request_id == "req_abc"
