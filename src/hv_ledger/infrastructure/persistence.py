"""TransactionRepository — append-only credit transaction log.

The only UPDATEs allowed on credit_transactions are the one-time top-up
verification (guarded by admin_verified = FALSE) and the fraud flag.
The only DELETE is rejecting an unverified top-up.

Transaction ownership: the CALLER commits.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_common.errors import InternalError
from src.hv_ledger.domain.models import CreditTransaction, NewTransaction

_TX_COLUMNS = """
    id, user_id, transaction_type, amount_credits,
    amount_minor, artist_share_minor, platform_cut_minor,
    song_id, transaction_reference,
    admin_verified, verified_by_admin_id, verified_at,
    ip_address, device_fingerprint, fraud_flag, created_at
"""

_INSERT_TX_SQL = text(f"""
    INSERT INTO credit_transactions
        (user_id, transaction_type, amount_credits,
         amount_minor, artist_share_minor, platform_cut_minor,
         song_id, transaction_reference, admin_verified,
         ip_address, device_fingerprint)
    VALUES
        (:user_id, :transaction_type, :amount_credits,
         :amount_minor, :artist_share_minor, :platform_cut_minor,
         :song_id, :transaction_reference, :admin_verified,
         :ip_address, :device_fingerprint)
    RETURNING {_TX_COLUMNS}
""")

_GET_TX_SQL = text(f"SELECT {_TX_COLUMNS} FROM credit_transactions WHERE id = :id")

_REFERENCE_EXISTS_SQL = text("""
    SELECT 1 FROM credit_transactions
    WHERE transaction_type = 'top-up' AND transaction_reference = :reference
    LIMIT 1
""")

_GET_BY_REFERENCE_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM credit_transactions
    WHERE transaction_type = 'top-up' AND transaction_reference = :reference
""")

_LIST_PENDING_TOP_UPS_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM credit_transactions
    WHERE transaction_type = 'top-up' AND admin_verified = FALSE
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_VERIFY_TOP_UP_SQL = text(f"""
    UPDATE credit_transactions
    SET admin_verified = TRUE,
        verified_by_admin_id = :admin_id,
        verified_at = :now
    WHERE id = :id
      AND transaction_type = 'top-up'
      AND admin_verified = FALSE
    RETURNING {_TX_COLUMNS}
""")

_REJECT_TOP_UP_SQL = text("""
    DELETE FROM credit_transactions
    WHERE id = :id
      AND transaction_type = 'top-up'
      AND admin_verified = FALSE
    RETURNING id
""")

_SET_FRAUD_FLAG_SQL = text(f"""
    UPDATE credit_transactions
    SET fraud_flag = :flagged
    WHERE id = :id
    RETURNING {_TX_COLUMNS}
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM credit_transactions
    WHERE user_id = :user_id
      AND (CAST(:transaction_type AS TEXT) IS NULL
           OR transaction_type = CAST(:transaction_type AS TEXT))
      AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
         OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
         OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
            AND id < CAST(:cursor_id AS TEXT)
         )
      )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_tx(row: object) -> CreditTransaction:
    return CreditTransaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        amount_credits=row.amount_credits,  # type: ignore[attr-defined]
        amount_minor=row.amount_minor,  # type: ignore[attr-defined]
        artist_share_minor=row.artist_share_minor,  # type: ignore[attr-defined]
        platform_cut_minor=row.platform_cut_minor,  # type: ignore[attr-defined]
        song_id=row.song_id,  # type: ignore[attr-defined]
        transaction_reference=row.transaction_reference,  # type: ignore[attr-defined]
        admin_verified=row.admin_verified,  # type: ignore[attr-defined]
        verified_by_admin_id=row.verified_by_admin_id,  # type: ignore[attr-defined]
        verified_at=row.verified_at,  # type: ignore[attr-defined]
        ip_address=row.ip_address,  # type: ignore[attr-defined]
        device_fingerprint=row.device_fingerprint,  # type: ignore[attr-defined]
        fraud_flag=row.fraud_flag,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TransactionRepository:
    async def append(
        self, db: AsyncSession, tx: NewTransaction
    ) -> CreditTransaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "user_id": tx.user_id,
                "transaction_type": tx.transaction_type,
                "amount_credits": tx.amount_credits,
                "amount_minor": tx.split.amount_minor,
                "artist_share_minor": tx.split.artist_share_minor,
                "platform_cut_minor": tx.split.platform_cut_minor,
                "song_id": tx.song_id,
                "transaction_reference": tx.transaction_reference,
                "admin_verified": tx.admin_verified,
                "ip_address": tx.ip_address,
                "device_fingerprint": tx.device_fingerprint,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows — this should never happen")
        return _row_to_tx(row)

    async def get_by_id(
        self, db: AsyncSession, transaction_id: str
    ) -> CreditTransaction | None:
        row = (await db.execute(_GET_TX_SQL, {"id": transaction_id})).fetchone()
        return _row_to_tx(row) if row else None

    async def reference_exists(self, db: AsyncSession, reference: str) -> bool:
        row = (await db.execute(_REFERENCE_EXISTS_SQL, {"reference": reference})).fetchone()
        return row is not None

    async def get_by_reference(
        self, db: AsyncSession, reference: str
    ) -> CreditTransaction | None:
        row = (await db.execute(_GET_BY_REFERENCE_SQL, {"reference": reference})).fetchone()
        return _row_to_tx(row) if row else None

    async def list_pending_top_ups(
        self, db: AsyncSession, limit: int
    ) -> list[CreditTransaction]:
        result = await db.execute(_LIST_PENDING_TOP_UPS_SQL, {"limit": limit})
        return [_row_to_tx(row) for row in result.fetchall()]

    async def verify_top_up(
        self, db: AsyncSession, transaction_id: str, admin_id: str, now: datetime
    ) -> CreditTransaction | None:
        """Set verification fields once. None means not an unverified top-up."""
        result = await db.execute(
            _VERIFY_TOP_UP_SQL, {"id": transaction_id, "admin_id": admin_id, "now": now}
        )
        row = result.fetchone()
        return _row_to_tx(row) if row else None

    async def reject_top_up(self, db: AsyncSession, transaction_id: str) -> bool:
        result = await db.execute(_REJECT_TOP_UP_SQL, {"id": transaction_id})
        return result.fetchone() is not None

    async def set_fraud_flag(
        self, db: AsyncSession, transaction_id: str, flagged: bool
    ) -> CreditTransaction | None:
        result = await db.execute(
            _SET_FRAUD_FLAG_SQL, {"id": transaction_id, "flagged": flagged}
        )
        row = result.fetchone()
        return _row_to_tx(row) if row else None

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "user_id": user_id,
                "transaction_type": transaction_type,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_tx(row) for row in result.fetchall()]
