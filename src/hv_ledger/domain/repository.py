"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_ledger.domain.models import CreditTransaction, NewTransaction


class TransactionRepositoryProtocol(Protocol):
    async def append(
        self, db: AsyncSession, tx: NewTransaction
    ) -> CreditTransaction: ...

    async def get_by_id(
        self, db: AsyncSession, transaction_id: str
    ) -> CreditTransaction | None: ...

    async def reference_exists(
        self, db: AsyncSession, reference: str
    ) -> bool: ...

    async def get_by_reference(
        self, db: AsyncSession, reference: str
    ) -> CreditTransaction | None: ...

    async def list_pending_top_ups(
        self, db: AsyncSession, limit: int
    ) -> list[CreditTransaction]: ...

    async def verify_top_up(
        self, db: AsyncSession, transaction_id: str, admin_id: str, now: datetime
    ) -> CreditTransaction | None: ...

    async def reject_top_up(
        self, db: AsyncSession, transaction_id: str
    ) -> bool: ...

    async def set_fraud_flag(
        self, db: AsyncSession, transaction_id: str, flagged: bool
    ) -> CreditTransaction | None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]: ...
