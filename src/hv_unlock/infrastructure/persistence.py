"""UnlockRepository — the unlocked_songs table.

(user_id, song_id) is the primary key, so at most one row per pair exists.
A refunded row may be re-armed by a later unlock; an active row never is.

Transaction ownership: the CALLER commits.
"""

from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_common.errors import (
    AlreadyUnlockedError,
    RefundNotEligibleError,
    UnlockNotFoundError,
)
from src.hv_unlock.domain.models import UnlockRecord

_RECORD_COLUMNS = """
    user_id, song_id, unlocked_at, can_be_refunded,
    refund_expires_at, refunded, credits_spent, used_free_slot
"""

# DO UPDATE only fires for a refunded row; an active row returns nothing
_RECORD_UNLOCK_SQL = text(f"""
    INSERT INTO unlocked_songs
        (user_id, song_id, unlocked_at, can_be_refunded,
         refund_expires_at, refunded, credits_spent, used_free_slot)
    VALUES
        (:user_id, :song_id, :now, TRUE,
         :expires_at, FALSE, :credits_spent, :used_free_slot)
    ON CONFLICT (user_id, song_id) DO UPDATE
    SET unlocked_at       = EXCLUDED.unlocked_at,
        can_be_refunded   = TRUE,
        refund_expires_at = EXCLUDED.refund_expires_at,
        refunded          = FALSE,
        credits_spent     = EXCLUDED.credits_spent,
        used_free_slot    = EXCLUDED.used_free_slot
    WHERE unlocked_songs.refunded = TRUE
    RETURNING {_RECORD_COLUMNS}
""")

_MARK_REFUNDED_SQL = text(f"""
    UPDATE unlocked_songs
    SET refunded = TRUE,
        can_be_refunded = FALSE
    WHERE user_id = :user_id
      AND song_id = :song_id
      AND refunded = FALSE
      AND can_be_refunded = TRUE
      AND refund_expires_at > :now
    RETURNING {_RECORD_COLUMNS}
""")

_GET_RECORD_SQL = text(f"""
    SELECT {_RECORD_COLUMNS}
    FROM unlocked_songs
    WHERE user_id = :user_id AND song_id = :song_id
""")

_IS_UNLOCKED_SQL = text("""
    SELECT 1 FROM unlocked_songs
    WHERE user_id = :user_id AND song_id = :song_id AND refunded = FALSE
""")

_LIST_UNLOCKED_SQL = text("""
    SELECT song_id FROM unlocked_songs
    WHERE user_id = :user_id AND refunded = FALSE
    ORDER BY unlocked_at DESC
    LIMIT :limit
""")


def _row_to_record(row: object) -> UnlockRecord:
    return UnlockRecord(
        user_id=row.user_id,  # type: ignore[attr-defined]
        song_id=row.song_id,  # type: ignore[attr-defined]
        unlocked_at=row.unlocked_at,  # type: ignore[attr-defined]
        can_be_refunded=row.can_be_refunded,  # type: ignore[attr-defined]
        refund_expires_at=row.refund_expires_at,  # type: ignore[attr-defined]
        refunded=row.refunded,  # type: ignore[attr-defined]
        credits_spent=row.credits_spent,  # type: ignore[attr-defined]
        used_free_slot=row.used_free_slot,  # type: ignore[attr-defined]
    )


class UnlockRepository:
    async def record_unlock(
        self,
        db: AsyncSession,
        user_id: str,
        song_id: str,
        now: datetime,
        window: timedelta,
        credits_spent: int,
        used_free_slot: bool,
    ) -> UnlockRecord:
        """Create (or re-arm a refunded) record. Raises AlreadyUnlockedError."""
        result = await db.execute(
            _RECORD_UNLOCK_SQL,
            {
                "user_id": user_id,
                "song_id": song_id,
                "now": now,
                "expires_at": now + window,
                "credits_spent": credits_spent,
                "used_free_slot": used_free_slot,
            },
        )
        row = result.fetchone()
        if row is None:
            raise AlreadyUnlockedError(song_id)
        return _row_to_record(row)

    async def mark_refunded(
        self, db: AsyncSession, user_id: str, song_id: str, now: datetime
    ) -> UnlockRecord:
        """One-way UNLOCKED → REFUNDED, only while refund_expires_at > now."""
        result = await db.execute(
            _MARK_REFUNDED_SQL, {"user_id": user_id, "song_id": song_id, "now": now}
        )
        row = result.fetchone()
        if row is not None:
            return _row_to_record(row)
        if await self.get_record(db, user_id, song_id) is None:
            raise UnlockNotFoundError(song_id)
        raise RefundNotEligibleError(song_id)

    async def is_unlocked(self, db: AsyncSession, user_id: str, song_id: str) -> bool:
        result = await db.execute(_IS_UNLOCKED_SQL, {"user_id": user_id, "song_id": song_id})
        return result.fetchone() is not None

    async def get_record(
        self, db: AsyncSession, user_id: str, song_id: str
    ) -> UnlockRecord | None:
        result = await db.execute(_GET_RECORD_SQL, {"user_id": user_id, "song_id": song_id})
        row = result.fetchone()
        return _row_to_record(row) if row else None

    async def list_unlocked_song_ids(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[str]:
        result = await db.execute(_LIST_UNLOCKED_SQL, {"user_id": user_id, "limit": limit})
        return [row.song_id for row in result.fetchall()]
