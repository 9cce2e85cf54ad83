"""UnlockApplicationService — REST-facing wrapper around the UnlockEngine.

Besides delegating to the engine it keeps one UndoCountdown per fresh
unlock, so the worker logs when an unlock becomes final and cancels the
timer when the listener undoes in time.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_catalog.application.schemas import SongResponse
from src.hv_catalog.domain.repository import SongRepositoryProtocol
from src.hv_catalog.infrastructure.persistence import SongRepository
from src.hv_common.context import RequestContext
from src.hv_common.datetime_utils import utc_now
from src.hv_unlock.application.countdown import CountdownRegistry
from src.hv_unlock.application.engine import STATUS_UNLOCKED, UnlockEngine
from src.hv_unlock.application.schemas import LibraryResponse, UndoResponse, UnlockResponse
from src.hv_unlock.domain.repository import UnlockRepositoryProtocol
from src.hv_unlock.infrastructure.persistence import UnlockRepository


class UnlockApplicationService:
    def __init__(
        self,
        engine: UnlockEngine | None = None,
        unlocks: UnlockRepositoryProtocol | None = None,
        songs: SongRepositoryProtocol | None = None,
        countdowns: CountdownRegistry | None = None,
    ) -> None:
        self.engine = engine if engine is not None else UnlockEngine()
        self._unlocks: UnlockRepositoryProtocol = (
            unlocks if unlocks is not None else UnlockRepository()
        )
        self._songs: SongRepositoryProtocol = songs if songs is not None else SongRepository()
        self.countdowns = countdowns if countdowns is not None else CountdownRegistry()

    async def unlock(
        self, db: AsyncSession, ctx: RequestContext, song_id: str, use_free_slot: bool
    ) -> UnlockResponse:
        result = await self.engine.unlock(db, ctx, song_id, use_free_slot)
        if result.status == STATUS_UNLOCKED and result.undo is not None:
            self.countdowns.start(ctx.user_id, result.undo)
        return UnlockResponse.from_result(result, utc_now())

    async def undo(self, db: AsyncSession, ctx: RequestContext, song_id: str) -> UndoResponse:
        result = await self.engine.undo(db, ctx, song_id)
        self.countdowns.cancel(ctx.user_id, song_id)
        return UndoResponse.from_result(result)

    async def get_library(self, db: AsyncSession, user_id: str, limit: int) -> LibraryResponse:
        song_ids = await self._unlocks.list_unlocked_song_ids(db, user_id, limit)
        if not song_ids:
            return LibraryResponse(items=[], total=0)
        by_id = {s.id: s for s in await self._songs.list_by_ids(db, song_ids)}
        # Keep most-recently-unlocked first
        items = [SongResponse.from_domain(by_id[sid]) for sid in song_ids if sid in by_id]
        return LibraryResponse(items=items, total=len(items))

    def shutdown(self) -> None:
        self.countdowns.cancel_all()
