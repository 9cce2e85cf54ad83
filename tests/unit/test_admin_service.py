"""Tests for AdminService with mocked repositories."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from config.settings import settings
from src.hv_account.domain.models import Account
from src.hv_admin.application.service import AdminService
from src.hv_admin.infrastructure.audit import AuditEntry, AuditRepository
from src.hv_catalog.domain.models import Song
from src.hv_common.context import RequestContext
from src.hv_common.enums import UserRole
from src.hv_common.errors import (
    InvalidTopUpError,
    SongNotFoundError,
    SongNotModeratableError,
    TransactionNotFoundError,
    TransientStoreError,
)
from src.hv_ledger.domain.models import CreditTransaction

ADMIN = RequestContext(user_id="admin-1", role=UserRole.ADMIN, ip_address="10.1.1.1")


@pytest.fixture(autouse=True)
def _fast_retry(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "STORE_RETRY_BACKOFF_SECONDS", 0)
    monkeypatch.setattr(settings, "STORE_RETRY_ATTEMPTS", 2)


def _op_error() -> OperationalError:
    return OperationalError("UPDATE accounts", {}, ConnectionError("reset"))


def _tx(**kwargs) -> CreditTransaction:
    defaults = dict(
        id="tx-1", user_id="u-1", transaction_type="top-up", amount_credits=100,
        amount_minor=8000, artist_share_minor=0, platform_cut_minor=8000,
        song_id=None, transaction_reference="UPI0000000001", admin_verified=False,
        verified_by_admin_id=None, verified_at=None, ip_address=None,
        device_fingerprint=None, fraud_flag=False, created_at=datetime.now(UTC),
    )
    defaults.update(kwargs)
    return CreditTransaction(**defaults)


def _song(**kwargs) -> Song:
    defaults = dict(
        id="s-1", artist_id="a-1", title="T", price_credits=20,
        price_tier="Y", upload_status="pending",
    )
    defaults.update(kwargs)
    return Song(**defaults)


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repos():
    accounts = MagicMock()
    accounts.credit = AsyncMock(
        return_value=Account("acc-1", "u-1", 200, 0, None, 1)
    )
    txs = MagicMock()
    songs = MagicMock()
    audit = MagicMock()
    audit.log = AsyncMock()
    return accounts, txs, songs, audit


def _service(repos) -> AdminService:
    accounts, txs, songs, audit = repos
    return AdminService(accounts=accounts, transactions=txs, songs=songs, audit=audit)


class TestVerifyTopUp:
    async def test_credits_payer_and_audits(self, db, repos) -> None:
        accounts, txs, _, audit = repos
        txs.verify_top_up = AsyncMock(return_value=_tx(admin_verified=True))

        resp = await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        assert resp.credited is True
        assert resp.balance_credits == 200
        accounts.credit.assert_awaited_once_with(db, "u-1", 100)
        kwargs = audit.log.call_args.kwargs
        assert kwargs["action_type"] == "TOP_UP_VERIFIED"
        assert kwargs["admin_user_id"] == "admin-1"
        assert kwargs["user_id"] == "u-1"
        assert kwargs["details"]["transaction_id"] == "tx-1"
        db.commit.assert_awaited_once()

    async def test_second_verify_is_a_no_op(self, db, repos) -> None:
        accounts, txs, _, audit = repos
        txs.verify_top_up = AsyncMock(return_value=None)
        txs.get_by_id = AsyncMock(return_value=_tx(admin_verified=True))

        resp = await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        assert resp.credited is False
        assert resp.balance_credits is None
        accounts.credit.assert_not_awaited()
        audit.log.assert_not_awaited()
        db.commit.assert_not_awaited()

    async def test_unknown_transaction(self, db, repos) -> None:
        _, txs, _, _ = repos
        txs.verify_top_up = AsyncMock(return_value=None)
        txs.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(TransactionNotFoundError):
            await _service(repos).verify_top_up(db, ADMIN, "nope")
        db.rollback.assert_awaited()

    async def test_not_a_top_up(self, db, repos) -> None:
        _, txs, _, _ = repos
        txs.verify_top_up = AsyncMock(return_value=None)
        txs.get_by_id = AsyncMock(return_value=_tx(transaction_type="unlock"))

        with pytest.raises(TransactionNotFoundError):
            await _service(repos).verify_top_up(db, ADMIN, "tx-1")

    async def test_credit_failure_rolls_back(self, db, repos) -> None:
        accounts, txs, _, audit = repos
        txs.verify_top_up = AsyncMock(return_value=_tx(admin_verified=True))
        accounts.credit = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        db.rollback.assert_awaited_once()
        audit.log.assert_not_awaited()

    async def test_transient_credit_failure_retried_once(self, db, repos) -> None:
        accounts, txs, _, audit = repos
        txs.verify_top_up = AsyncMock(return_value=_tx(admin_verified=True))
        accounts.credit = AsyncMock(
            side_effect=[_op_error(), Account("acc-1", "u-1", 200, 0, None, 1)]
        )

        resp = await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        assert resp.credited is True
        assert resp.balance_credits == 200
        assert accounts.credit.await_count == 2
        assert db.rollback.await_count == 1
        db.commit.assert_awaited_once()
        audit.log.assert_awaited_once()

    async def test_persistent_failure_surfaces_as_transient_store_error(
        self, db, repos
    ) -> None:
        accounts, txs, _, audit = repos
        txs.verify_top_up = AsyncMock(return_value=_tx(admin_verified=True))
        accounts.credit = AsyncMock(side_effect=_op_error())

        with pytest.raises(TransientStoreError):
            await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        assert accounts.credit.await_count == 2
        db.commit.assert_not_awaited()

    async def test_lost_commit_ack_does_not_credit_twice(self, db, repos) -> None:
        accounts, txs, _, _ = repos
        txs.verify_top_up = AsyncMock(side_effect=[_tx(admin_verified=True), None])
        txs.get_by_id = AsyncMock(return_value=_tx(admin_verified=True))
        db.commit = AsyncMock(side_effect=[_op_error()])

        resp = await _service(repos).verify_top_up(db, ADMIN, "tx-1")

        assert resp.credited is False
        accounts.credit.assert_awaited_once()


class TestRejectTopUp:
    async def test_deletes_unverified_and_audits(self, db, repos) -> None:
        _, txs, _, audit = repos
        txs.get_by_id = AsyncMock(return_value=_tx())
        txs.reject_top_up = AsyncMock(return_value=True)

        await _service(repos).reject_top_up(db, ADMIN, "tx-1")

        assert audit.log.call_args.kwargs["action_type"] == "TOP_UP_REJECTED"
        db.commit.assert_awaited_once()

    async def test_verified_cannot_be_rejected(self, db, repos) -> None:
        _, txs, _, audit = repos
        txs.get_by_id = AsyncMock(return_value=_tx(admin_verified=True))
        txs.reject_top_up = AsyncMock(return_value=False)

        with pytest.raises(InvalidTopUpError):
            await _service(repos).reject_top_up(db, ADMIN, "tx-1")
        audit.log.assert_not_awaited()

    async def test_unknown(self, db, repos) -> None:
        _, txs, _, _ = repos
        txs.get_by_id = AsyncMock(return_value=None)
        with pytest.raises(TransactionNotFoundError):
            await _service(repos).reject_top_up(db, ADMIN, "nope")


class TestModerateSong:
    async def test_approve(self, db, repos) -> None:
        _, _, songs, audit = repos
        songs.set_moderation_result = AsyncMock(return_value=_song(upload_status="published"))

        resp = await _service(repos).moderate_song(db, ADMIN, "s-1", True, "ok")

        assert resp.upload_status == "published"
        songs.set_moderation_result.assert_awaited_once_with(db, "s-1", "published", "ok")
        assert audit.log.call_args.kwargs["action_type"] == "SONG_APPROVED"
        assert audit.log.call_args.kwargs["user_id"] == "a-1"

    async def test_reject(self, db, repos) -> None:
        _, _, songs, audit = repos
        songs.set_moderation_result = AsyncMock(return_value=_song(upload_status="rejected"))

        await _service(repos).moderate_song(db, ADMIN, "s-1", False, "bad audio")

        assert songs.set_moderation_result.call_args.args[2] == "rejected"
        assert audit.log.call_args.kwargs["action_type"] == "SONG_REJECTED"

    async def test_already_published(self, db, repos) -> None:
        _, _, songs, _ = repos
        songs.set_moderation_result = AsyncMock(return_value=None)
        songs.get_song_by_id = AsyncMock(return_value=_song(upload_status="published"))

        with pytest.raises(SongNotModeratableError):
            await _service(repos).moderate_song(db, ADMIN, "s-1", True, None)

    async def test_missing(self, db, repos) -> None:
        _, _, songs, _ = repos
        songs.set_moderation_result = AsyncMock(return_value=None)
        songs.get_song_by_id = AsyncMock(return_value=None)

        with pytest.raises(SongNotFoundError):
            await _service(repos).moderate_song(db, ADMIN, "s-1", True, None)


class TestFlagTransaction:
    async def test_flag(self, db, repos) -> None:
        _, txs, _, audit = repos
        txs.set_fraud_flag = AsyncMock(return_value=_tx(fraud_flag=True))

        item = await _service(repos).flag_transaction(db, ADMIN, "tx-1", True, "velocity")

        assert item.fraud_flag is True
        kwargs = audit.log.call_args.kwargs
        assert kwargs["action_type"] == "TRANSACTION_FLAGGED"
        assert kwargs["details"]["reason"] == "velocity"

    async def test_unflag(self, db, repos) -> None:
        _, txs, _, audit = repos
        txs.set_fraud_flag = AsyncMock(return_value=_tx(fraud_flag=False))
        await _service(repos).flag_transaction(db, ADMIN, "tx-1", False)
        assert audit.log.call_args.kwargs["action_type"] == "TRANSACTION_UNFLAGGED"

    async def test_unknown(self, db, repos) -> None:
        _, txs, _, _ = repos
        txs.set_fraud_flag = AsyncMock(return_value=None)
        with pytest.raises(TransactionNotFoundError):
            await _service(repos).flag_transaction(db, ADMIN, "nope", True)


class TestAuditRepository:
    async def test_log_serializes_details(self) -> None:
        row = MagicMock(
            id="al-1", user_id="u-1", admin_user_id="admin-1", action_type="TOP_UP_VERIFIED",
            details={"transaction_id": "tx-1"}, ip_address=None, timestamp=datetime.now(UTC),
        )
        result = MagicMock()
        result.fetchone.return_value = row
        db = MagicMock()
        db.execute = AsyncMock(return_value=result)

        entry = await AuditRepository().log(
            db, "admin-1", "TOP_UP_VERIFIED", user_id="u-1", details={"transaction_id": "tx-1"}
        )

        params = db.execute.call_args.args[1]
        assert json.loads(params["details"]) == {"transaction_id": "tx-1"}
        assert entry.details == {"transaction_id": "tx-1"}

    async def test_list_audit_logs(self, db, repos) -> None:
        _, _, _, audit = repos
        audit.list_recent = AsyncMock(
            return_value=[AuditEntry("al-1", "u-1", "admin-1", "SONG_APPROVED", {"song_id": "s"})]
        )

        resp = await _service(repos).list_audit_logs(db, 50, "SONG_APPROVED")

        assert resp.items[0].action_type == "SONG_APPROVED"
        audit.list_recent.assert_awaited_once_with(db, 50, "SONG_APPROVED")
