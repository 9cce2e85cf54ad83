"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_unlock.domain.models import UnlockRecord


class UnlockRepositoryProtocol(Protocol):
    async def record_unlock(
        self,
        db: AsyncSession,
        user_id: str,
        song_id: str,
        now: datetime,
        window: timedelta,
        credits_spent: int,
        used_free_slot: bool,
    ) -> UnlockRecord: ...

    async def mark_refunded(
        self, db: AsyncSession, user_id: str, song_id: str, now: datetime
    ) -> UnlockRecord: ...

    async def is_unlocked(
        self, db: AsyncSession, user_id: str, song_id: str
    ) -> bool: ...

    async def get_record(
        self, db: AsyncSession, user_id: str, song_id: str
    ) -> UnlockRecord | None: ...

    async def list_unlocked_song_ids(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[str]: ...
