"""Tests for hv_common.retry.with_store_retry."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.hv_common.errors import SongNotFoundError, TransientStoreError
from src.hv_common.retry import is_transient, with_store_retry


def _op_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, ConnectionError("reset"))


class TestIsTransient:
    def test_operational_error(self) -> None:
        assert is_transient(_op_error())

    def test_integrity_error_is_not(self) -> None:
        assert not is_transient(IntegrityError("INSERT", {}, Exception("dup")))

    def test_app_error_is_not(self) -> None:
        assert not is_transient(SongNotFoundError("s"))


class TestWithStoreRetry:
    async def test_success_first_try(self) -> None:
        op = AsyncMock(return_value=42)
        assert await with_store_retry(op, "t", max_attempts=2, backoff_seconds=0) == 42
        assert op.await_count == 1

    async def test_retries_once_then_succeeds(self) -> None:
        op = AsyncMock(side_effect=[_op_error(), "ok"])
        assert await with_store_retry(op, "t", max_attempts=2, backoff_seconds=0) == "ok"
        assert op.await_count == 2

    async def test_gives_up_after_budget(self) -> None:
        op = AsyncMock(side_effect=_op_error())
        with pytest.raises(TransientStoreError):
            await with_store_retry(op, "t", max_attempts=2, backoff_seconds=0)
        assert op.await_count == 2

    async def test_business_error_not_retried(self) -> None:
        op = AsyncMock(side_effect=SongNotFoundError("s"))
        with pytest.raises(SongNotFoundError):
            await with_store_retry(op, "t", max_attempts=2, backoff_seconds=0)
        assert op.await_count == 1

    async def test_uses_settings_budget_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from config.settings import settings

        monkeypatch.setattr(settings, "STORE_RETRY_ATTEMPTS", 3)
        monkeypatch.setattr(settings, "STORE_RETRY_BACKOFF_SECONDS", 0)
        op = AsyncMock(side_effect=_op_error())
        with pytest.raises(TransientStoreError):
            await with_store_retry(op, "t")
        assert op.await_count == 3
