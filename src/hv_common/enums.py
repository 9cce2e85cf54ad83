"""Global enums — values must match DB CHECK constraints exactly."""

from enum import Enum


class UserRole(str, Enum):
    LISTENER = "listener"
    ARTIST = "artist"
    ADMIN = "admin"


class PriceTier(str, Enum):
    """Informational price band derived from price_credits."""
    X = "X"   # 5-15
    Y = "Y"   # 16-30
    Z = "Z"   # 31-50


class UploadStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class TransactionType(str, Enum):
    TOP_UP = "top-up"
    UNLOCK = "unlock"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"
    FREE_TESTER = "free-tester"
    SIGNUP_BONUS = "signup-bonus"


class UnlockState(str, Enum):
    """Derived per-record state. FINAL is never stored, it is implied by time."""
    NONE = "NONE"
    UNLOCKED = "UNLOCKED"
    REFUNDED = "REFUNDED"
    FINAL = "FINAL"


class SongSort(str, Enum):
    HEAT = "heat"
    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"


class AuditAction(str, Enum):
    TOP_UP_VERIFIED = "TOP_UP_VERIFIED"
    TOP_UP_REJECTED = "TOP_UP_REJECTED"
    SONG_APPROVED = "SONG_APPROVED"
    SONG_REJECTED = "SONG_REJECTED"
    TRANSACTION_FLAGGED = "TRANSACTION_FLAGGED"
    TRANSACTION_UNFLAGGED = "TRANSACTION_UNFLAGGED"
