"""AccountApplicationService — read side of the Balance Store.

Mutations are never exposed directly: credits move only through the unlock
engine, admin top-up verification and signup.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hv_account.application.schemas import BalanceResponse
from src.hv_account.domain.repository import AccountRepositoryProtocol
from src.hv_account.infrastructure.persistence import AccountRepository
from src.hv_common.datetime_utils import next_week_start, utc_now
from src.hv_common.errors import AccountNotFoundError


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo if repo is not None else AccountRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account_by_user_id(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        now = utc_now()
        return BalanceResponse.from_account(
            account,
            free_slot_available=account.can_use_free_slot(now, settings.FREE_SLOT_TIMEZONE),
            next_free_slot_at=next_week_start(now, settings.FREE_SLOT_TIMEZONE),
        )
