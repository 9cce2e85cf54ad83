"""Pydantic schemas and cursor utilities for hv_ledger API."""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.hv_common.credits import minor_to_display
from src.hv_ledger.domain.models import CreditTransaction

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(created_at: datetime, tx_id: str) -> str:
    """Encode the (created_at, id) sort key into an opaque Base64 cursor."""
    payload = json.dumps({"ts": created_at.isoformat(), "id": tx_id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Decode a cursor back to (created_at, id). Returns (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(payload["ts"]), str(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TopUpRequest(BaseModel):
    bundle_credits: int = Field(..., gt=0, description="One of the offered bundle sizes")
    upi_reference: str = Field(
        ..., min_length=10, max_length=64, description="UPI transaction ID from the payer's app"
    )
    device_fingerprint: str | None = Field(None, max_length=128)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BundleItem(BaseModel):
    credits: int
    price_minor: int
    price_display: str
    popular: bool


class BundleListResponse(BaseModel):
    items: list[BundleItem]


class TransactionItem(BaseModel):
    id: str
    transaction_type: str
    amount_credits: int
    amount_minor: int
    amount_display: str
    artist_share_minor: int
    platform_cut_minor: int
    song_id: str | None
    transaction_reference: str | None
    admin_verified: bool
    fraud_flag: bool
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: CreditTransaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            transaction_type=tx.transaction_type,
            amount_credits=tx.amount_credits,
            amount_minor=tx.amount_minor,
            amount_display=minor_to_display(tx.amount_minor),
            artist_share_minor=tx.artist_share_minor,
            platform_cut_minor=tx.platform_cut_minor,
            song_id=tx.song_id,
            transaction_reference=tx.transaction_reference,
            admin_verified=tx.admin_verified,
            fraud_flag=tx.fraud_flag,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class TopUpResponse(BaseModel):
    transaction_id: str
    bundle_credits: int
    amount_minor: int
    amount_display: str
    admin_verified: bool
