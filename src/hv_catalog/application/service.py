"""CatalogApplicationService — upload collaborator and catalog reads.

Songs are pure data to the ledger: this service only creates them
(pending, tier derived from price) and lists them. Stats are written by
the unlock engine.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_catalog.application.schemas import (
    ArtistEarningsResponse,
    CreateSongRequest,
    SongListResponse,
    SongResponse,
)
from src.hv_catalog.domain.models import NewSong
from src.hv_catalog.domain.repository import SongRepositoryProtocol
from src.hv_catalog.infrastructure.persistence import SongRepository
from src.hv_common.credits import price_tier
from src.hv_common.enums import SongSort, UploadStatus
from src.hv_common.errors import InvalidSongPriceError, SongNotFoundError

logger = logging.getLogger(__name__)


class CatalogApplicationService:
    def __init__(self, repo: SongRepositoryProtocol | None = None) -> None:
        self._repo: SongRepositoryProtocol = repo if repo is not None else SongRepository()

    async def create_song(
        self, db: AsyncSession, artist_id: str, body: CreateSongRequest
    ) -> SongResponse:
        try:
            tier = price_tier(body.price_credits)
        except ValueError:
            raise InvalidSongPriceError(body.price_credits) from None

        new_song = NewSong(
            artist_id=artist_id,
            title=body.title,
            price_credits=body.price_credits,
            genre=body.genre,
            description=body.description,
            cover_art_url=str(body.cover_art_url) if body.cover_art_url else None,
            audio_url=str(body.audio_url) if body.audio_url else None,
            file_size_bytes=body.file_size_bytes,
            duration_seconds=body.duration_seconds,
        )
        try:
            song = await self._repo.create_song(db, new_song, tier.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Song uploaded: song=%s artist=%s price=%d tier=%s",
            song.id, artist_id, song.price_credits, song.price_tier,
        )
        return SongResponse.from_domain(song)

    async def get_song(
        self, db: AsyncSession, song_id: str, viewer_id: str | None = None
    ) -> SongResponse:
        song = await self._repo.get_song_by_id(db, song_id)
        # Unpublished songs are visible to their artist only
        if song is None or (
            song.upload_status != UploadStatus.PUBLISHED and song.artist_id != viewer_id
        ):
            raise SongNotFoundError(song_id)
        return SongResponse.from_domain(song)

    async def list_published(
        self,
        db: AsyncSession,
        genre: str | None,
        search: str | None,
        sort: SongSort,
        limit: int,
    ) -> SongListResponse:
        songs = await self._repo.list_published(db, genre, search, sort.value, limit)
        items = [SongResponse.from_domain(s) for s in songs]
        return SongListResponse(items=items, total=len(items))

    async def get_artist_earnings(
        self, db: AsyncSession, artist_id: str
    ) -> ArtistEarningsResponse:
        earnings = await self._repo.get_artist_earnings(db, artist_id)
        return ArtistEarningsResponse.from_domain(earnings)
