"""UnlockEngine — spends credits (or the weekly free slot) on songs.

One unlock or undo is one DB transaction spanning the Balance Store, the
Unlock Ledger, song/fan stats and the Transaction Log. Either every write
commits or none does, so there is never a debit without an unlock record
or an unlock record without its debit.

Concurrency:
  * an asyncio.Lock per account serialises calls inside one worker;
  * across workers, the conditional UPDATEs (balance >= price, free slot
    unused this week, refund_expires_at > now) and the (user_id, song_id)
    primary key re-validate every invariant at commit time.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hv_account.domain.models import Account
from src.hv_account.domain.repository import AccountRepositoryProtocol
from src.hv_account.infrastructure.persistence import AccountRepository
from src.hv_catalog.domain.repository import SongRepositoryProtocol
from src.hv_catalog.infrastructure.persistence import SongRepository
from src.hv_common.context import RequestContext
from src.hv_common.credits import ZERO_SPLIT, split_revenue
from src.hv_common.datetime_utils import utc_now, week_start
from src.hv_common.enums import TransactionType, UnlockState, UploadStatus
from src.hv_common.errors import (
    AccountNotFoundError,
    AlreadyUnlockedError,
    RefundNotEligibleError,
    SongNotAvailableError,
    SongNotFoundError,
)
from src.hv_common.retry import with_store_retry
from src.hv_ledger.domain.models import NewTransaction
from src.hv_ledger.domain.repository import TransactionRepositoryProtocol
from src.hv_ledger.infrastructure.persistence import TransactionRepository
from src.hv_unlock.domain.models import UndoHandle, UndoResult, UnlockRecord, UnlockResult
from src.hv_unlock.domain.repository import UnlockRepositoryProtocol
from src.hv_unlock.infrastructure.persistence import UnlockRepository

logger = logging.getLogger(__name__)

STATUS_UNLOCKED = "unlocked"
STATUS_ALREADY_UNLOCKED = "already_unlocked"
STATUS_UNDONE = "undone"
STATUS_ALREADY_UNDONE = "already_undone"


class UnlockEngine:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        songs: SongRepositoryProtocol | None = None,
        unlocks: UnlockRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = (
            accounts if accounts is not None else AccountRepository()
        )
        self._songs: SongRepositoryProtocol = songs if songs is not None else SongRepository()
        self._unlocks: UnlockRepositoryProtocol = (
            unlocks if unlocks is not None else UnlockRepository()
        )
        self._txs: TransactionRepositoryProtocol = (
            transactions if transactions is not None else TransactionRepository()
        )
        self._clock = clock
        # Entries live only while some call holds or waits on the lock
        self._account_locks: dict[str, asyncio.Lock] = {}
        self._lock_waiters: dict[str, int] = {}

    @asynccontextmanager
    async def _account_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._account_locks.get(user_id)
        if lock is None:
            lock = self._account_locks[user_id] = asyncio.Lock()
        self._lock_waiters[user_id] = self._lock_waiters.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_waiters[user_id] -= 1
            if self._lock_waiters[user_id] == 0:
                del self._lock_waiters[user_id]
                del self._account_locks[user_id]

    @property
    def undo_window(self) -> timedelta:
        return timedelta(seconds=settings.UNDO_WINDOW_SECONDS)

    # ------------------------------------------------------------------
    # unlock
    # ------------------------------------------------------------------

    async def unlock(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        song_id: str,
        use_free_slot: bool = False,
    ) -> UnlockResult:
        """Grant ctx.user_id permanent access to song_id.

        Returns status "already_unlocked" instead of raising when an active
        record exists; the caller must not retry the debit in that case.
        """
        async with self._account_lock(ctx.user_id):
            return await with_store_retry(
                lambda: self._unlock_once(db, ctx, song_id, use_free_slot),
                label=f"unlock user={ctx.user_id} song={song_id}",
            )

    async def _unlock_once(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        song_id: str,
        use_free_slot: bool,
    ) -> UnlockResult:
        now = self._clock()
        try:
            song = await self._songs.get_song_by_id(db, song_id)
            if song is None:
                raise SongNotFoundError(song_id)
            if song.upload_status != UploadStatus.PUBLISHED.value:
                raise SongNotAvailableError(song_id, song.upload_status)

            # Cheap early answer; record_unlock below is the real guard
            if await self._unlocks.is_unlocked(db, ctx.user_id, song_id):
                raise AlreadyUnlockedError(song_id)

            if use_free_slot:
                account = await self._accounts.claim_free_slot(
                    db, ctx.user_id, now, week_start(now, settings.FREE_SLOT_TIMEZONE)
                )
                credits = 0
                split = ZERO_SPLIT
                tx_type = TransactionType.FREE_TESTER
            else:
                account = await self._accounts.debit(db, ctx.user_id, song.price_credits)
                credits = song.price_credits
                split = split_revenue(
                    credits, settings.CREDIT_VALUE_MINOR, settings.ARTIST_SHARE_BPS
                )
                tx_type = TransactionType.UNLOCK

            record = await self._unlocks.record_unlock(
                db, ctx.user_id, song_id, now, self.undo_window, credits, use_free_slot
            )
            await self._songs.apply_unlock_stats(
                db, song_id, credits, settings.HEAT_SCORE_DELTA
            )
            await self._songs.apply_fan_stats(
                db, ctx.user_id, song.artist_id, credits, settings.HEAT_SCORE_DELTA
            )
            tx = await self._txs.append(
                db,
                NewTransaction(
                    user_id=ctx.user_id,
                    transaction_type=tx_type.value,
                    amount_credits=credits,
                    split=split,
                    song_id=song_id,
                    ip_address=ctx.ip_address,
                    device_fingerprint=ctx.device_fingerprint,
                    admin_verified=True,
                ),
            )
            await db.commit()
        except AlreadyUnlockedError:
            await db.rollback()
            return await self._already_unlocked(db, ctx, song_id, now)
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Unlocked: user=%s song=%s credits=%d free_slot=%s tx=%s balance=%d",
            ctx.user_id, song_id, credits, use_free_slot, tx.id, account.balance,
            extra=_log_fields(ctx, song_id, tx.id),
        )
        return UnlockResult(
            song_id=song_id,
            status=STATUS_UNLOCKED,
            balance=account.balance,
            free_slot_available=account.can_use_free_slot(now, settings.FREE_SLOT_TIMEZONE),
            credits_spent=credits,
            used_free_slot=use_free_slot,
            transaction_id=tx.id,
            undo=UndoHandle(song_id=song_id, refund_expires_at=record.refund_expires_at),
        )

    async def _already_unlocked(
        self, db: AsyncSession, ctx: RequestContext, song_id: str, now: datetime
    ) -> UnlockResult:
        account = await self._require_account(db, ctx.user_id)
        record = await self._unlocks.get_record(db, ctx.user_id, song_id)
        undo = None
        if record is not None and record.state(now) == UnlockState.UNLOCKED:
            undo = UndoHandle(song_id=song_id, refund_expires_at=record.refund_expires_at)
        logger.info(
            "Already unlocked: user=%s song=%s", ctx.user_id, song_id,
            extra=_log_fields(ctx, song_id),
        )
        return UnlockResult(
            song_id=song_id,
            status=STATUS_ALREADY_UNLOCKED,
            balance=account.balance,
            free_slot_available=account.can_use_free_slot(now, settings.FREE_SLOT_TIMEZONE),
            credits_spent=record.credits_spent if record else 0,
            used_free_slot=record.used_free_slot if record else False,
            undo=undo,
        )

    # ------------------------------------------------------------------
    # undo
    # ------------------------------------------------------------------

    async def undo(self, db: AsyncSession, ctx: RequestContext, song_id: str) -> UndoResult:
        """Reverse an unlock while its stored refund window is open.

        Raises RefundNotEligibleError after the window or on a second undo,
        UnlockNotFoundError if the pair was never unlocked. When a retried
        attempt finds the record already refunded, the first attempt had
        committed before its connection dropped; the current state comes back
        with status "already_undone" and nothing is refunded twice.
        """
        started_at = self._clock()
        attempts = 0

        async def attempt() -> UndoResult:
            nonlocal attempts
            attempts += 1
            return await self._undo_once(db, ctx, song_id, started_at, retried=attempts > 1)

        async with self._account_lock(ctx.user_id):
            return await with_store_retry(
                attempt, label=f"undo user={ctx.user_id} song={song_id}"
            )

    async def _undo_once(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        song_id: str,
        started_at: datetime,
        retried: bool,
    ) -> UndoResult:
        now = self._clock()
        try:
            record = await self._unlocks.mark_refunded(db, ctx.user_id, song_id, now)
            song = await self._songs.get_song_by_id(db, song_id)

            if record.used_free_slot:
                account = await self._accounts.release_free_slot(db, ctx.user_id)
                split = ZERO_SPLIT
            else:
                account = await self._accounts.credit(db, ctx.user_id, record.credits_spent)
                split = split_revenue(
                    record.credits_spent, settings.CREDIT_VALUE_MINOR, settings.ARTIST_SHARE_BPS
                ).negated()

            await self._songs.revert_unlock_stats(
                db, song_id, record.credits_spent, settings.HEAT_SCORE_DELTA
            )
            if song is not None:
                await self._songs.revert_fan_stats(
                    db, ctx.user_id, song.artist_id, record.credits_spent,
                    settings.HEAT_SCORE_DELTA,
                )
            tx = await self._txs.append(
                db,
                NewTransaction(
                    user_id=ctx.user_id,
                    transaction_type=TransactionType.REFUND.value,
                    amount_credits=record.credits_spent,
                    split=split,
                    song_id=song_id,
                    ip_address=ctx.ip_address,
                    device_fingerprint=ctx.device_fingerprint,
                    admin_verified=True,
                ),
            )
            await db.commit()
        except RefundNotEligibleError:
            await db.rollback()
            if retried:
                previous = await self._unlocks.get_record(db, ctx.user_id, song_id)
                if (
                    previous is not None
                    and previous.refunded
                    and previous.refund_expires_at > started_at
                ):
                    return await self._already_undone(db, ctx, previous, now)
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Undo: user=%s song=%s refunded=%d free_slot=%s tx=%s balance=%d",
            ctx.user_id, song_id, record.credits_spent, record.used_free_slot,
            tx.id, account.balance,
            extra=_log_fields(ctx, song_id, tx.id),
        )
        return UndoResult(
            song_id=song_id,
            balance=account.balance,
            credits_refunded=record.credits_spent,
            free_slot_released=record.used_free_slot,
            free_slot_available=account.can_use_free_slot(now, settings.FREE_SLOT_TIMEZONE),
            transaction_id=tx.id,
            status=STATUS_UNDONE,
        )

    async def _already_undone(
        self, db: AsyncSession, ctx: RequestContext, record: UnlockRecord, now: datetime
    ) -> UndoResult:
        account = await self._require_account(db, ctx.user_id)
        logger.info(
            "Undo already applied: user=%s song=%s", ctx.user_id, record.song_id,
            extra=_log_fields(ctx, record.song_id),
        )
        return UndoResult(
            song_id=record.song_id,
            balance=account.balance,
            credits_refunded=record.credits_spent,
            free_slot_released=record.used_free_slot,
            free_slot_available=account.can_use_free_slot(now, settings.FREE_SLOT_TIMEZONE),
            transaction_id=None,
            status=STATUS_ALREADY_UNDONE,
        )

    async def _require_account(self, db: AsyncSession, user_id: str) -> Account:
        account = await self._accounts.get_account_by_user_id(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account


def _log_fields(
    ctx: RequestContext, song_id: str, transaction_id: str | None = None
) -> dict[str, str]:
    fields = {"user_id": ctx.user_id, "song_id": song_id}
    if ctx.request_id is not None:
        fields["request_id"] = ctx.request_id
    if transaction_id is not None:
        fields["transaction_id"] = transaction_id
    return fields
