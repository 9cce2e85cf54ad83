"""Tests for AccountApplicationService.get_balance."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.hv_account.application.service import AccountApplicationService
from src.hv_account.domain.models import Account
from src.hv_common.errors import AccountNotFoundError


def _account(**kwargs) -> Account:
    defaults = dict(
        id="acc-1", user_id="u-1", balance=100,
        free_slot_used=0, free_slot_reset_at=None, version=0,
    )
    defaults.update(kwargs)
    return Account(**defaults)


class TestGetBalance:
    async def test_fresh_account(self) -> None:
        repo = MagicMock()
        repo.get_account_by_user_id = AsyncMock(return_value=_account())
        resp = await AccountApplicationService(repo).get_balance(MagicMock(), "u-1")

        assert resp.balance_credits == 100
        assert resp.free_slot_available is True
        assert resp.next_free_slot_at is None

    async def test_used_slot_reports_next_monday(self) -> None:
        repo = MagicMock()
        repo.get_account_by_user_id = AsyncMock(
            return_value=_account(free_slot_used=1, free_slot_reset_at=datetime.now(UTC))
        )
        resp = await AccountApplicationService(repo).get_balance(MagicMock(), "u-1")

        assert resp.free_slot_available is False
        assert resp.next_free_slot_at is not None
        assert datetime.fromisoformat(resp.next_free_slot_at).weekday() == 0

    async def test_missing_account(self) -> None:
        repo = MagicMock()
        repo.get_account_by_user_id = AsyncMock(return_value=None)
        with pytest.raises(AccountNotFoundError):
            await AccountApplicationService(repo).get_balance(MagicMock(), "u-1")
