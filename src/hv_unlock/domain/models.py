"""Domain models for hv_unlock — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.hv_common.enums import UnlockState


@dataclass
class UnlockRecord:
    user_id: str
    song_id: str
    unlocked_at: datetime
    can_be_refunded: bool
    refund_expires_at: datetime
    refunded: bool
    credits_spent: int          # 0 for a free-slot unlock
    used_free_slot: bool

    def state(self, now: datetime) -> UnlockState:
        """NONE → UNLOCKED → {REFUNDED | FINAL}; FINAL is implied by time."""
        if self.refunded:
            return UnlockState.REFUNDED
        if self.can_be_refunded and now < self.refund_expires_at:
            return UnlockState.UNLOCKED
        return UnlockState.FINAL

    def is_active(self) -> bool:
        return not self.refunded


@dataclass(frozen=True)
class UndoHandle:
    """What the caller gets back to drive its countdown.

    Only refund_expires_at decides eligibility; seconds_remaining is display.
    """

    song_id: str
    refund_expires_at: datetime

    def seconds_remaining(self, now: datetime) -> float:
        return max(0.0, (self.refund_expires_at - now).total_seconds())

    def is_open(self, now: datetime) -> bool:
        return now < self.refund_expires_at


@dataclass
class UnlockResult:
    song_id: str
    status: str                 # "unlocked" | "already_unlocked"
    balance: int
    free_slot_available: bool
    credits_spent: int
    used_free_slot: bool
    transaction_id: str | None = None
    undo: UndoHandle | None = None


@dataclass
class UndoResult:
    song_id: str
    balance: int
    credits_refunded: int
    free_slot_released: bool
    free_slot_available: bool
    transaction_id: str | None
    status: str = "undone"     # "undone" | "already_undone"
