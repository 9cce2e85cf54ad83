"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account / credits
  3xxx: Catalog (songs)
  4xxx: Unlock
  5xxx: Transaction log
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class PermissionDeniedError(AppError):
    def __init__(self, role: str) -> None:
        super().__init__(1006, f"Role '{role}' required", 403)


# --- 2xxx: Account / credits ---

class InsufficientCreditsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient credits: required {required}, available {available}",
            422,
        )
        self.required = required
        self.available = available


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


class FreeSlotUnavailableError(AppError):
    def __init__(self) -> None:
        super().__init__(
            2003, "Free tester slot already used this week; next slot available Monday", 422
        )


# --- 3xxx: Catalog ---

class SongNotFoundError(AppError):
    def __init__(self, song_id: str) -> None:
        super().__init__(3001, f"Song not found: {song_id}", 404)


class SongNotAvailableError(AppError):
    def __init__(self, song_id: str, status: str) -> None:
        super().__init__(3002, f"Song {song_id} is not published (status={status})", 422)


class InvalidSongPriceError(AppError):
    def __init__(self, price: int) -> None:
        super().__init__(3003, f"Price must be between 5 and 50 credits, got {price}", 422)


class SongNotModeratableError(AppError):
    def __init__(self, song_id: str, status: str) -> None:
        super().__init__(3004, f"Song {song_id} in status {status} cannot be moderated", 422)


# --- 4xxx: Unlock ---

class AlreadyUnlockedError(AppError):
    """ConflictError: an active unlock exists. Callers treat it as success."""

    def __init__(self, song_id: str) -> None:
        super().__init__(4001, f"Song already unlocked: {song_id}", 409)


class RefundNotEligibleError(AppError):
    def __init__(self, song_id: str) -> None:
        super().__init__(
            4002, f"Undo window expired or already refunded for song {song_id}", 422
        )


class UnlockNotFoundError(AppError):
    def __init__(self, song_id: str) -> None:
        super().__init__(4003, f"No unlock found for song {song_id}", 404)


# --- 5xxx: Transaction log ---

class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(5001, f"Transaction not found: {transaction_id}", 404)


class DuplicateTopUpReferenceError(AppError):
    def __init__(self, reference: str) -> None:
        super().__init__(5002, f"Top-up reference already submitted: {reference}", 409)


class InvalidTopUpError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5003, f"Invalid top-up: {detail}", 422)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class TransientStoreError(AppError):
    """Storage failed without a definitive outcome; the user may retry."""

    def __init__(self, detail: str = "Storage temporarily unavailable, please retry") -> None:
        super().__init__(9003, detail, 503)
