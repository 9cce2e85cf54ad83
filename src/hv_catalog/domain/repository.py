"""Repository Protocol — dependency inversion for testability."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_catalog.domain.models import ArtistEarnings, NewSong, Song


class SongRepositoryProtocol(Protocol):
    async def get_song_by_id(
        self, db: AsyncSession, song_id: str
    ) -> Song | None: ...

    async def create_song(
        self, db: AsyncSession, new_song: NewSong, price_tier: str
    ) -> Song: ...

    async def list_published(
        self,
        db: AsyncSession,
        genre: str | None,
        search: str | None,
        sort: str,
        limit: int,
    ) -> list[Song]: ...

    async def list_pending(self, db: AsyncSession, limit: int) -> list[Song]: ...

    async def list_by_ids(
        self, db: AsyncSession, song_ids: list[str]
    ) -> list[Song]: ...

    async def set_moderation_result(
        self, db: AsyncSession, song_id: str, status: str, notes: str | None
    ) -> Song | None: ...

    async def apply_unlock_stats(
        self, db: AsyncSession, song_id: str, credits: int, heat_delta: int
    ) -> Song: ...

    async def revert_unlock_stats(
        self, db: AsyncSession, song_id: str, credits: int, heat_delta: int
    ) -> Song: ...

    async def apply_fan_stats(
        self, db: AsyncSession, user_id: str, artist_id: str, credits: int, heat_delta: int
    ) -> None: ...

    async def revert_fan_stats(
        self, db: AsyncSession, user_id: str, artist_id: str, credits: int, heat_delta: int
    ) -> None: ...

    async def get_artist_earnings(
        self, db: AsyncSession, artist_id: str
    ) -> ArtistEarnings: ...
