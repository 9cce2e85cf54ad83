"""Admin application service: top-up review, song moderation, fraud flags.

Each action commits together with its audit_logs row.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_account.domain.repository import AccountRepositoryProtocol
from src.hv_account.infrastructure.persistence import AccountRepository
from src.hv_admin.application.schemas import (
    AuditLogItem,
    AuditLogListResponse,
    PendingTopUpsResponse,
    TopUpVerificationResponse,
)
from src.hv_admin.infrastructure.audit import AuditRepository
from src.hv_catalog.application.schemas import SongListResponse, SongResponse
from src.hv_catalog.domain.repository import SongRepositoryProtocol
from src.hv_catalog.infrastructure.persistence import SongRepository
from src.hv_common.context import RequestContext
from src.hv_common.datetime_utils import utc_now
from src.hv_common.enums import AuditAction, TransactionType, UploadStatus
from src.hv_common.errors import (
    InvalidTopUpError,
    SongNotFoundError,
    SongNotModeratableError,
    TransactionNotFoundError,
)
from src.hv_common.retry import with_store_retry
from src.hv_ledger.application.schemas import TransactionItem
from src.hv_ledger.domain.repository import TransactionRepositoryProtocol
from src.hv_ledger.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        songs: SongRepositoryProtocol | None = None,
        audit: AuditRepository | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = (
            accounts if accounts is not None else AccountRepository()
        )
        self._txs: TransactionRepositoryProtocol = (
            transactions if transactions is not None else TransactionRepository()
        )
        self._songs: SongRepositoryProtocol = songs if songs is not None else SongRepository()
        self._audit = audit if audit is not None else AuditRepository()

    # --- top-ups ---

    async def list_pending_top_ups(self, db: AsyncSession, limit: int) -> PendingTopUpsResponse:
        txs = await self._txs.list_pending_top_ups(db, limit)
        items = [TransactionItem.from_domain(tx) for tx in txs]
        return PendingTopUpsResponse(items=items, total=len(items))

    async def verify_top_up(
        self, db: AsyncSession, ctx: RequestContext, transaction_id: str
    ) -> TopUpVerificationResponse:
        """Mark verified and credit the payer, once.

        A second verify of the same top-up changes nothing and reports
        credited=False. The conditional verify UPDATE makes a retried attempt
        after a lost commit acknowledgement land on that same no-op path.
        """
        return await with_store_retry(
            lambda: self._verify_once(db, ctx, transaction_id),
            label=f"verify top-up tx={transaction_id}",
        )

    async def _verify_once(
        self, db: AsyncSession, ctx: RequestContext, transaction_id: str
    ) -> TopUpVerificationResponse:
        try:
            tx = await self._txs.verify_top_up(db, transaction_id, ctx.user_id, utc_now())
            if tx is None:
                existing = await self._txs.get_by_id(db, transaction_id)
                if existing is None or existing.transaction_type != TransactionType.TOP_UP:
                    raise TransactionNotFoundError(transaction_id)
                await db.rollback()
                logger.info("Top-up already verified, no-op: tx=%s", transaction_id)
                return TopUpVerificationResponse(
                    transaction=TransactionItem.from_domain(existing),
                    credited=False,
                    balance_credits=None,
                )

            account = await self._accounts.credit(db, tx.user_id, tx.amount_credits)
            await self._audit.log(
                db,
                admin_user_id=ctx.user_id,
                action_type=AuditAction.TOP_UP_VERIFIED.value,
                user_id=tx.user_id,
                details={
                    "transaction_id": tx.id,
                    "amount_credits": tx.amount_credits,
                    "transaction_reference": tx.transaction_reference,
                },
                ip_address=ctx.ip_address,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Top-up verified: tx=%s user=%s credits=%d by=%s",
            tx.id, tx.user_id, tx.amount_credits, ctx.user_id,
        )
        return TopUpVerificationResponse(
            transaction=TransactionItem.from_domain(tx),
            credited=True,
            balance_credits=account.balance,
        )

    async def reject_top_up(
        self, db: AsyncSession, ctx: RequestContext, transaction_id: str
    ) -> None:
        try:
            existing = await self._txs.get_by_id(db, transaction_id)
            if existing is None or existing.transaction_type != TransactionType.TOP_UP:
                raise TransactionNotFoundError(transaction_id)
            if not await self._txs.reject_top_up(db, transaction_id):
                raise InvalidTopUpError("top-up already verified, cannot reject")
            await self._audit.log(
                db,
                admin_user_id=ctx.user_id,
                action_type=AuditAction.TOP_UP_REJECTED.value,
                user_id=existing.user_id,
                details={
                    "transaction_id": existing.id,
                    "amount_credits": existing.amount_credits,
                    "transaction_reference": existing.transaction_reference,
                },
                ip_address=ctx.ip_address,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Top-up rejected: tx=%s by=%s", transaction_id, ctx.user_id)

    # --- songs ---

    async def list_pending_songs(self, db: AsyncSession, limit: int) -> SongListResponse:
        songs = await self._songs.list_pending(db, limit)
        items = [SongResponse.from_domain(s) for s in songs]
        return SongListResponse(items=items, total=len(items))

    async def moderate_song(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        song_id: str,
        approve: bool,
        notes: str | None,
    ) -> SongResponse:
        status = UploadStatus.PUBLISHED if approve else UploadStatus.REJECTED
        try:
            song = await self._songs.set_moderation_result(db, song_id, status.value, notes)
            if song is None:
                current = await self._songs.get_song_by_id(db, song_id)
                if current is None:
                    raise SongNotFoundError(song_id)
                raise SongNotModeratableError(song_id, current.upload_status)
            await self._audit.log(
                db,
                admin_user_id=ctx.user_id,
                action_type=(
                    AuditAction.SONG_APPROVED if approve else AuditAction.SONG_REJECTED
                ).value,
                user_id=song.artist_id,
                details={"song_id": song_id, "notes": notes},
                ip_address=ctx.ip_address,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Song moderated: song=%s status=%s by=%s", song_id, status.value, ctx.user_id)
        return SongResponse.from_domain(song)

    # --- fraud ---

    async def flag_transaction(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        transaction_id: str,
        flagged: bool,
        reason: str | None = None,
    ) -> TransactionItem:
        try:
            tx = await self._txs.set_fraud_flag(db, transaction_id, flagged)
            if tx is None:
                raise TransactionNotFoundError(transaction_id)
            await self._audit.log(
                db,
                admin_user_id=ctx.user_id,
                action_type=(
                    AuditAction.TRANSACTION_FLAGGED
                    if flagged
                    else AuditAction.TRANSACTION_UNFLAGGED
                ).value,
                user_id=tx.user_id,
                details={"transaction_id": tx.id, "reason": reason},
                ip_address=ctx.ip_address,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Transaction fraud flag=%s: tx=%s user=%s by=%s",
            flagged, tx.id, tx.user_id, ctx.user_id,
        )
        return TransactionItem.from_domain(tx)

    async def list_audit_logs(
        self, db: AsyncSession, limit: int, action_type: str | None
    ) -> AuditLogListResponse:
        entries = await self._audit.list_recent(db, limit, action_type)
        return AuditLogListResponse(items=[AuditLogItem.from_entry(e) for e in entries])
