"""User service: register, login, refresh.

Registration creates the user, its account row with the signup bonus and
the matching signup-bonus ledger entry in one transaction, so a new
listener can never exist without a balance history.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hv_account.domain.repository import AccountRepositoryProtocol
from src.hv_account.infrastructure.persistence import AccountRepository
from src.hv_common.credits import ZERO_SPLIT
from src.hv_common.enums import TransactionType
from src.hv_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.hv_common.retry import with_store_retry
from src.hv_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.hv_gateway.auth.password import hash_password, verify_password
from src.hv_gateway.user.db_models import UserModel
from src.hv_ledger.domain.models import NewTransaction
from src.hv_ledger.domain.repository import TransactionRepositoryProtocol
from src.hv_ledger.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = (
            account_repo if account_repo is not None else AccountRepository()
        )
        self._txs: TransactionRepositoryProtocol = (
            tx_repo if tx_repo is not None else TransactionRepository()
        )

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
        role: str = "listener",
        display_name: str | None = None,
    ) -> UserModel:
        """Insert the user, its account and the signup-bonus entry.

        Does not commit; signup() owns the transaction.
        """
        # DB UNIQUE constraints are the final guard
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            display_name=display_name,
            role=role,
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing

        bonus = settings.SIGNUP_BONUS_CREDITS
        await self._accounts.create_account(db, str(user.id), starting_balance=bonus)
        if bonus > 0:
            await self._txs.append(
                db,
                NewTransaction(
                    user_id=str(user.id),
                    transaction_type=TransactionType.SIGNUP_BONUS.value,
                    amount_credits=bonus,
                    split=ZERO_SPLIT,
                    admin_verified=True,
                ),
            )
        logger.info("User registered: id=%s role=%s bonus=%d", user.id, role, bonus)
        return user

    async def signup(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
        role: str = "listener",
        display_name: str | None = None,
    ) -> UserModel:
        """register() in its own transaction, retried once on a transient failure.

        If a retry finds the username already taken by a row with the same
        email and password, the first attempt had committed before its
        connection dropped; that user is returned instead of UsernameExistsError.
        """
        attempts = 0

        async def attempt() -> UserModel:
            nonlocal attempts
            attempts += 1
            try:
                user = await self.register(
                    username, email, password, db, role=role, display_name=display_name
                )
                await db.commit()
            except UsernameExistsError:
                await db.rollback()
                if attempts > 1:
                    existing = await self._find_own_signup(db, username, email, password)
                    if existing is not None:
                        return existing
                raise
            except Exception:
                await db.rollback()
                raise
            return user

        return await with_store_retry(attempt, label=f"register username={username}")

    async def _find_own_signup(
        self, db: AsyncSession, username: str, email: str, password: str
    ) -> UserModel | None:
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()
        if user is None or user.email != email:
            return None
        return user if verify_password(password, user.password_hash) else None

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate and return (user, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), role=user.role),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))
