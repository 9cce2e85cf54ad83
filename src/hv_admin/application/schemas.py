"""Pydantic schemas for the admin API."""

from pydantic import BaseModel, Field

from src.hv_admin.infrastructure.audit import AuditEntry
from src.hv_ledger.application.schemas import TransactionItem


class ModerateSongRequest(BaseModel):
    approve: bool
    notes: str | None = Field(None, max_length=1000)


class FlagTransactionRequest(BaseModel):
    flagged: bool = True
    reason: str | None = Field(None, max_length=500)


class PendingTopUpsResponse(BaseModel):
    items: list[TransactionItem]
    total: int


class TopUpVerificationResponse(BaseModel):
    transaction: TransactionItem
    credited: bool                  # False when it had already been verified
    balance_credits: int | None


class AuditLogItem(BaseModel):
    id: str
    user_id: str | None
    admin_user_id: str | None
    action_type: str
    details: dict
    ip_address: str | None
    timestamp: str

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditLogItem":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            admin_user_id=entry.admin_user_id,
            action_type=entry.action_type,
            details=entry.details,
            ip_address=entry.ip_address,
            timestamp=entry.timestamp.isoformat() if entry.timestamp else "",
        )


class AuditLogListResponse(BaseModel):
    items: list[AuditLogItem]
