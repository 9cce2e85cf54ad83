"""Pydantic schemas for hv_unlock API."""

from datetime import datetime

from pydantic import BaseModel

from src.hv_catalog.application.schemas import SongResponse
from src.hv_unlock.domain.models import UndoResult, UnlockResult


class UnlockRequest(BaseModel):
    use_free_slot: bool = False


class UnlockResponse(BaseModel):
    song_id: str
    status: str
    balance_credits: int
    free_slot_available: bool
    credits_spent: int
    used_free_slot: bool
    transaction_id: str | None
    refund_expires_at: str | None      # ISO8601, the only authority for undo
    undo_seconds_remaining: float

    @classmethod
    def from_result(cls, result: UnlockResult, now: datetime) -> "UnlockResponse":
        undo = result.undo
        return cls(
            song_id=result.song_id,
            status=result.status,
            balance_credits=result.balance,
            free_slot_available=result.free_slot_available,
            credits_spent=result.credits_spent,
            used_free_slot=result.used_free_slot,
            transaction_id=result.transaction_id,
            refund_expires_at=undo.refund_expires_at.isoformat() if undo else None,
            undo_seconds_remaining=undo.seconds_remaining(now) if undo else 0.0,
        )


class UndoResponse(BaseModel):
    song_id: str
    status: str
    balance_credits: int
    credits_refunded: int
    free_slot_released: bool
    free_slot_available: bool
    transaction_id: str | None

    @classmethod
    def from_result(cls, result: UndoResult) -> "UndoResponse":
        return cls(
            song_id=result.song_id,
            status=result.status,
            balance_credits=result.balance,
            credits_refunded=result.credits_refunded,
            free_slot_released=result.free_slot_released,
            free_slot_available=result.free_slot_available,
            transaction_id=result.transaction_id,
        )

    def summary(self) -> str:
        """Human-readable outcome for the response envelope."""
        if self.free_slot_released:
            return "Unlock undone, weekly free slot released"
        return f"Unlock undone, {self.credits_refunded} credits returned"


class LibraryResponse(BaseModel):
    items: list[SongResponse]
    total: int
