"""Domain models for hv_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.hv_common.credits import ZERO_SPLIT, RevenueSplit


@dataclass
class NewTransaction:
    """Append-only entry as written by the engine, signup or top-up submission."""

    user_id: str
    transaction_type: str               # TransactionType value
    amount_credits: int                 # >= 0; direction is implied by the type
    split: RevenueSplit = ZERO_SPLIT
    song_id: str | None = None
    transaction_reference: str | None = None
    ip_address: str | None = None
    device_fingerprint: str | None = None
    admin_verified: bool = False

    def __post_init__(self) -> None:
        if self.amount_credits < 0:
            raise ValueError(f"amount_credits must be >= 0, got {self.amount_credits}")


@dataclass
class CreditTransaction:
    id: str
    user_id: str
    transaction_type: str
    amount_credits: int
    amount_minor: int
    artist_share_minor: int
    platform_cut_minor: int
    song_id: str | None
    transaction_reference: str | None
    admin_verified: bool
    verified_by_admin_id: str | None
    verified_at: datetime | None
    ip_address: str | None
    device_fingerprint: str | None
    fraud_flag: bool
    created_at: datetime | None = None
