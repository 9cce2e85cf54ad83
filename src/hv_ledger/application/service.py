"""LedgerApplicationService — top-up submission and transaction history.

A submitted top-up is only a claim: credits reach the balance when an admin
verifies it (see hv_admin). Payment itself is manual (UPI), there is no
gateway integration.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hv_common.context import RequestContext
from src.hv_common.credits import RevenueSplit, minor_to_display
from src.hv_common.enums import TransactionType
from src.hv_common.errors import DuplicateTopUpReferenceError, InvalidTopUpError
from src.hv_common.retry import with_store_retry
from src.hv_ledger.application.schemas import (
    BundleItem,
    BundleListResponse,
    TopUpRequest,
    TopUpResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.hv_ledger.domain.models import CreditTransaction, NewTransaction
from src.hv_ledger.domain.repository import TransactionRepositoryProtocol
from src.hv_ledger.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)

_POPULAR_BUNDLE = 100


class LedgerApplicationService:
    def __init__(self, repo: TransactionRepositoryProtocol | None = None) -> None:
        self._repo: TransactionRepositoryProtocol = (
            repo if repo is not None else TransactionRepository()
        )

    def list_bundles(self) -> BundleListResponse:
        items = [
            BundleItem(
                credits=credits,
                price_minor=credits * settings.CREDIT_VALUE_MINOR,
                price_display=minor_to_display(credits * settings.CREDIT_VALUE_MINOR),
                popular=credits == _POPULAR_BUNDLE,
            )
            for credits in settings.TOP_UP_BUNDLES
        ]
        return BundleListResponse(items=items)

    async def submit_top_up(
        self, db: AsyncSession, ctx: RequestContext, body: TopUpRequest
    ) -> TopUpResponse:
        if body.bundle_credits not in settings.TOP_UP_BUNDLES:
            raise InvalidTopUpError(f"unknown bundle {body.bundle_credits}")
        reference = body.upi_reference.strip()
        if len(reference) < 10:
            raise InvalidTopUpError("UPI transaction ID must be at least 10 characters")

        amount_minor = body.bundle_credits * settings.CREDIT_VALUE_MINOR
        attempts = 0

        async def attempt() -> CreditTransaction:
            nonlocal attempts
            attempts += 1
            return await self._submit_once(
                db, ctx, body, reference, amount_minor, retried=attempts > 1
            )

        tx = await with_store_retry(
            attempt, label=f"top-up user={ctx.user_id} ref={reference}"
        )

        logger.info(
            "Top-up submitted: tx=%s user=%s credits=%d ref=%s",
            tx.id, ctx.user_id, body.bundle_credits, reference,
        )
        return TopUpResponse(
            transaction_id=tx.id,
            bundle_credits=body.bundle_credits,
            amount_minor=amount_minor,
            amount_display=minor_to_display(amount_minor),
            admin_verified=tx.admin_verified,
        )

    async def _submit_once(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        body: TopUpRequest,
        reference: str,
        amount_minor: int,
        retried: bool,
    ) -> CreditTransaction:
        try:
            if await self._repo.reference_exists(db, reference):
                raise DuplicateTopUpReferenceError(reference)
            tx = await self._repo.append(
                db,
                NewTransaction(
                    user_id=ctx.user_id,
                    transaction_type=TransactionType.TOP_UP.value,
                    amount_credits=body.bundle_credits,
                    split=RevenueSplit(amount_minor, 0, amount_minor),
                    transaction_reference=reference,
                    ip_address=ctx.ip_address,
                    device_fingerprint=body.device_fingerprint or ctx.device_fingerprint,
                ),
            )
            await db.commit()
        except DuplicateTopUpReferenceError:
            await db.rollback()
            if retried:
                # A retry that finds our own row means the first commit landed
                existing = await self._repo.get_by_reference(db, reference)
                if existing is not None and existing.user_id == ctx.user_id:
                    return existing
            raise
        except IntegrityError:
            # Lost the race on uq_tx_top_up_reference
            await db.rollback()
            raise DuplicateTopUpReferenceError(reference) from None
        except Exception:
            await db.rollback()
            raise
        return tx

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> TransactionListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        txs = await self._repo.list_for_user(
            db, user_id, cursor_ts, cursor_id, limit + 1, transaction_type
        )
        has_more = len(txs) > limit
        page = txs[:limit]
        items = [TransactionItem.from_domain(tx) for tx in page]
        last = page[-1] if page else None
        next_cursor = (
            cursor_encode(last.created_at, last.id)
            if has_more and last is not None and last.created_at is not None
            else None
        )
        return TransactionListResponse(items=items, next_cursor=next_cursor, has_more=has_more)
