"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_account.domain.models import Account


class AccountRepositoryProtocol(Protocol):
    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def create_account(
        self, db: AsyncSession, user_id: str, starting_balance: int
    ) -> Account: ...

    async def debit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> Account: ...

    async def credit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> Account: ...

    async def claim_free_slot(
        self, db: AsyncSession, user_id: str, now: datetime, week_start: datetime
    ) -> Account: ...

    async def release_free_slot(
        self, db: AsyncSession, user_id: str
    ) -> Account: ...
