"""Domain models for hv_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.hv_common.datetime_utils import week_start


@dataclass
class Account:
    id: str
    user_id: str
    balance: int                        # credits, never negative
    free_slot_used: int                 # 0 or 1 within the slot's week
    free_slot_reset_at: datetime | None  # when the slot was last claimed
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def can_use_free_slot(self, now: datetime, tz_name: str = "UTC") -> bool:
        """True when no free slot has been used in the calendar week of `now`."""
        if self.free_slot_used == 0 or self.free_slot_reset_at is None:
            return True
        return self.free_slot_reset_at < week_start(now, tz_name)

    def can_afford(self, price: int) -> bool:
        return self.balance >= price
