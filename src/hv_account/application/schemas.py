"""Pydantic schemas for hv_account API."""

from datetime import datetime

from pydantic import BaseModel

from src.hv_account.domain.models import Account


class BalanceResponse(BaseModel):
    user_id: str
    balance_credits: int
    free_slot_available: bool
    free_slot_reset_at: str | None
    next_free_slot_at: str | None  # None while the slot is available

    @classmethod
    def from_account(
        cls,
        account: Account,
        free_slot_available: bool,
        next_free_slot_at: datetime,
    ) -> "BalanceResponse":
        return cls(
            user_id=account.user_id,
            balance_credits=account.balance,
            free_slot_available=free_slot_available,
            free_slot_reset_at=(
                account.free_slot_reset_at.isoformat() if account.free_slot_reset_at else None
            ),
            next_free_slot_at=None if free_slot_available else next_free_slot_at.isoformat(),
        )
