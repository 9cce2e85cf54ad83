"""AccountRepository — the Balance Store.

Every balance mutation is a single conditional UPDATE ... RETURNING. The
WHERE clause re-validates the invariant at commit time (compare-and-swap);
0 rows returned means the business constraint did not hold and nothing
was written.

Transaction ownership: the CALLER (application service / unlock engine)
opens and commits the transaction.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_account.domain.models import Account
from src.hv_common.errors import (
    AccountNotFoundError,
    FreeSlotUnavailableError,
    InsufficientCreditsError,
    InternalError,
)

_ACCOUNT_COLUMNS = (
    "id, user_id, balance, free_slot_used, free_slot_reset_at, version, created_at, updated_at"
)

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_id = :user_id
""")

_CREATE_ACCOUNT_SQL = text(f"""
    INSERT INTO accounts (user_id, balance, free_slot_used, version)
    VALUES (:user_id, :balance, 0, 0)
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

# Slot is free when unused, never claimed, or last claimed before this week's Monday.
_CLAIM_FREE_SLOT_SQL = text(f"""
    UPDATE accounts
    SET free_slot_used = 1,
        free_slot_reset_at = :now,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND (
            free_slot_used = 0
         OR free_slot_reset_at IS NULL
         OR free_slot_reset_at < :week_start
      )
    RETURNING {_ACCOUNT_COLUMNS}
""")

_RELEASE_FREE_SLOT_SQL = text(f"""
    UPDATE accounts
    SET free_slot_used = 0,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        free_slot_used=row.free_slot_used,  # type: ignore[attr-defined]
        free_slot_reset_at=row.free_slot_reset_at,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _require_positive(amount: int) -> None:
    # Programming error, not a business outcome: fail fast.
    if amount <= 0:
        raise ValueError(f"amount must be > 0, got {amount}")


class AccountRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_account_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def create_account(
        self, db: AsyncSession, user_id: str, starting_balance: int
    ) -> Account:
        if starting_balance < 0:
            raise ValueError(f"starting_balance must be >= 0, got {starting_balance}")
        result = await db.execute(
            _CREATE_ACCOUNT_SQL, {"user_id": user_id, "balance": starting_balance}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Account insert returned no rows — this should never happen")
        return _row_to_account(row)

    async def debit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> Account:
        _require_positive(amount)
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            account = await self.get_account_by_user_id(db, user_id)
            if account is None:
                raise AccountNotFoundError(user_id)
            raise InsufficientCreditsError(amount, account.balance)
        return _row_to_account(row)

    async def credit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> Account:
        _require_positive(amount)
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise AccountNotFoundError(user_id)
        return _row_to_account(row)

    async def claim_free_slot(
        self, db: AsyncSession, user_id: str, now: datetime, week_start: datetime
    ) -> Account:
        result = await db.execute(
            _CLAIM_FREE_SLOT_SQL,
            {"user_id": user_id, "now": now, "week_start": week_start},
        )
        row = result.fetchone()
        if row is None:
            if await self.get_account_by_user_id(db, user_id) is None:
                raise AccountNotFoundError(user_id)
            raise FreeSlotUnavailableError()
        return _row_to_account(row)

    async def release_free_slot(
        self, db: AsyncSession, user_id: str
    ) -> Account:
        result = await db.execute(_RELEASE_FREE_SLOT_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            raise AccountNotFoundError(user_id)
        return _row_to_account(row)
