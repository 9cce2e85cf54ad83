"""SongRepository — concrete implementation of SongRepositoryProtocol.

Raw text() SQL. apply_unlock_stats / revert_unlock_stats are the heat score
updater: an unlock adds heat_delta, a refund removes it floored at 0 with
GREATEST. Each is a single UPDATE ... RETURNING so concurrent unlocks of the
same song never lose an increment.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL for optional filters.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hv_catalog.domain.models import ArtistEarnings, NewSong, Song
from src.hv_common.enums import SongSort, UploadStatus
from src.hv_common.errors import InternalError, SongNotFoundError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_SONG_COLUMNS = """
    id, artist_id, title, genre, description,
    price_credits, price_tier, cover_art_url, audio_url,
    file_size_bytes, duration_seconds, upload_status, moderation_notes,
    total_unlocks, total_credits_earned, heat_score,
    created_at, updated_at
"""

_GET_SONG_SQL = text(f"SELECT {_SONG_COLUMNS} FROM songs WHERE id = :song_id")

_INSERT_SONG_SQL = text(f"""
    INSERT INTO songs
        (artist_id, title, genre, description, price_credits, price_tier,
         cover_art_url, audio_url, file_size_bytes, duration_seconds, upload_status)
    VALUES
        (:artist_id, :title, :genre, :description, :price_credits, :price_tier,
         :cover_art_url, :audio_url, :file_size_bytes, :duration_seconds, :upload_status)
    RETURNING {_SONG_COLUMNS}
""")

_LIST_PUBLISHED_BASE = f"""
    SELECT {_SONG_COLUMNS}
    FROM songs
    WHERE upload_status = 'published'
      AND (CAST(:genre AS TEXT) IS NULL OR genre = CAST(:genre AS TEXT))
      AND (
            CAST(:search AS TEXT) IS NULL
         OR title ILIKE '%' || CAST(:search AS TEXT) || '%'
         OR description ILIKE '%' || CAST(:search AS TEXT) || '%'
      )
"""

# Whitelisted ORDER BY clauses; never interpolate user input.
_ORDER_BY = {
    SongSort.HEAT: "heat_score DESC, created_at DESC",
    SongSort.NEWEST: "created_at DESC, id DESC",
    SongSort.PRICE_LOW: "price_credits ASC, created_at DESC",
    SongSort.PRICE_HIGH: "price_credits DESC, created_at DESC",
}

_LIST_PUBLISHED_SQL = {
    sort: text(f"{_LIST_PUBLISHED_BASE} ORDER BY {clause} LIMIT :limit")
    for sort, clause in _ORDER_BY.items()
}

_LIST_PENDING_SQL = text(f"""
    SELECT {_SONG_COLUMNS}
    FROM songs
    WHERE upload_status = 'pending'
    ORDER BY created_at DESC
    LIMIT :limit
""")

_LIST_BY_IDS_SQL = text(f"""
    SELECT {_SONG_COLUMNS}
    FROM songs
    WHERE id = ANY(CAST(:song_ids AS VARCHAR[]))
    ORDER BY created_at DESC
""")

_SET_MODERATION_SQL = text(f"""
    UPDATE songs
    SET upload_status = :status,
        moderation_notes = :notes,
        updated_at = NOW()
    WHERE id = :song_id AND upload_status = 'pending'
    RETURNING {_SONG_COLUMNS}
""")

_APPLY_UNLOCK_STATS_SQL = text(f"""
    UPDATE songs
    SET total_unlocks = total_unlocks + 1,
        total_credits_earned = total_credits_earned + :credits,
        heat_score = heat_score + :heat_delta,
        updated_at = NOW()
    WHERE id = :song_id
    RETURNING {_SONG_COLUMNS}
""")

_REVERT_UNLOCK_STATS_SQL = text(f"""
    UPDATE songs
    SET total_unlocks = GREATEST(0, total_unlocks - 1),
        total_credits_earned = GREATEST(0, total_credits_earned - :credits),
        heat_score = GREATEST(0, heat_score - :heat_delta),
        updated_at = NOW()
    WHERE id = :song_id
    RETURNING {_SONG_COLUMNS}
""")

_APPLY_FAN_STATS_SQL = text("""
    INSERT INTO fan_relationships
        (user_id, artist_id, total_credits_spent, total_unlocks, hh_contribution_score)
    VALUES (:user_id, :artist_id, :credits, 1, :heat_delta)
    ON CONFLICT (user_id, artist_id) DO UPDATE
        SET total_credits_spent = fan_relationships.total_credits_spent + EXCLUDED.total_credits_spent,
            total_unlocks = fan_relationships.total_unlocks + 1,
            hh_contribution_score =
                fan_relationships.hh_contribution_score + EXCLUDED.hh_contribution_score
""")

_REVERT_FAN_STATS_SQL = text("""
    UPDATE fan_relationships
    SET total_credits_spent = GREATEST(0, total_credits_spent - :credits),
        total_unlocks = GREATEST(0, total_unlocks - 1),
        hh_contribution_score = GREATEST(0, hh_contribution_score - :heat_delta)
    WHERE user_id = :user_id AND artist_id = :artist_id
""")

# Refund rows carry a negated split, so a plain SUM nets them out.
_ARTIST_EARNINGS_SQL = text("""
    SELECT
        COALESCE(SUM(CASE
            WHEN t.transaction_type IN ('unlock', 'free-tester') THEN 1
            WHEN t.transaction_type = 'refund' THEN -1
            ELSE 0 END), 0) AS net_unlocks,
        COALESCE(SUM(CASE
            WHEN t.transaction_type = 'unlock' THEN t.amount_credits
            WHEN t.transaction_type = 'refund' THEN -t.amount_credits
            ELSE 0 END), 0) AS net_credits,
        COALESCE(SUM(t.artist_share_minor), 0) AS net_artist_share_minor
    FROM credit_transactions t
    JOIN songs s ON s.id = t.song_id
    WHERE s.artist_id = :artist_id
      AND t.transaction_type IN ('unlock', 'free-tester', 'refund')
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_song(row: object) -> Song:
    return Song(
        id=row.id,  # type: ignore[attr-defined]
        artist_id=row.artist_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        genre=row.genre,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        price_credits=row.price_credits,  # type: ignore[attr-defined]
        price_tier=row.price_tier,  # type: ignore[attr-defined]
        cover_art_url=row.cover_art_url,  # type: ignore[attr-defined]
        audio_url=row.audio_url,  # type: ignore[attr-defined]
        file_size_bytes=row.file_size_bytes,  # type: ignore[attr-defined]
        duration_seconds=row.duration_seconds,  # type: ignore[attr-defined]
        upload_status=row.upload_status,  # type: ignore[attr-defined]
        moderation_notes=row.moderation_notes,  # type: ignore[attr-defined]
        total_unlocks=row.total_unlocks,  # type: ignore[attr-defined]
        total_credits_earned=row.total_credits_earned,  # type: ignore[attr-defined]
        heat_score=row.heat_score,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _check_heat_delta(heat_delta: int) -> None:
    if heat_delta < 0:
        raise ValueError(f"heat delta must be >= 0, got {heat_delta}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SongRepository:
    async def get_song_by_id(
        self, db: AsyncSession, song_id: str
    ) -> Song | None:
        result = await db.execute(_GET_SONG_SQL, {"song_id": song_id})
        row = result.fetchone()
        return _row_to_song(row) if row else None

    async def create_song(
        self, db: AsyncSession, new_song: NewSong, price_tier: str
    ) -> Song:
        result = await db.execute(
            _INSERT_SONG_SQL,
            {
                "artist_id": new_song.artist_id,
                "title": new_song.title,
                "genre": new_song.genre,
                "description": new_song.description,
                "price_credits": new_song.price_credits,
                "price_tier": price_tier,
                "cover_art_url": new_song.cover_art_url,
                "audio_url": new_song.audio_url,
                "file_size_bytes": new_song.file_size_bytes,
                "duration_seconds": new_song.duration_seconds,
                "upload_status": UploadStatus.PENDING.value,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Song insert returned no rows — this should never happen")
        return _row_to_song(row)

    async def list_published(
        self,
        db: AsyncSession,
        genre: str | None,
        search: str | None,
        sort: str,
        limit: int,
    ) -> list[Song]:
        stmt = _LIST_PUBLISHED_SQL[SongSort(sort)]
        result = await db.execute(
            stmt, {"genre": genre, "search": search, "limit": limit}
        )
        return [_row_to_song(row) for row in result.fetchall()]

    async def list_pending(self, db: AsyncSession, limit: int) -> list[Song]:
        result = await db.execute(_LIST_PENDING_SQL, {"limit": limit})
        return [_row_to_song(row) for row in result.fetchall()]

    async def list_by_ids(
        self, db: AsyncSession, song_ids: list[str]
    ) -> list[Song]:
        if not song_ids:
            return []
        result = await db.execute(_LIST_BY_IDS_SQL, {"song_ids": song_ids})
        return [_row_to_song(row) for row in result.fetchall()]

    async def set_moderation_result(
        self, db: AsyncSession, song_id: str, status: str, notes: str | None
    ) -> Song | None:
        """Conditional pending → published|rejected. None if not pending."""
        result = await db.execute(
            _SET_MODERATION_SQL, {"song_id": song_id, "status": status, "notes": notes}
        )
        row = result.fetchone()
        return _row_to_song(row) if row else None

    async def apply_unlock_stats(
        self, db: AsyncSession, song_id: str, credits: int, heat_delta: int
    ) -> Song:
        _check_heat_delta(heat_delta)
        result = await db.execute(
            _APPLY_UNLOCK_STATS_SQL,
            {"song_id": song_id, "credits": credits, "heat_delta": heat_delta},
        )
        row = result.fetchone()
        if row is None:
            raise SongNotFoundError(song_id)
        return _row_to_song(row)

    async def revert_unlock_stats(
        self, db: AsyncSession, song_id: str, credits: int, heat_delta: int
    ) -> Song:
        _check_heat_delta(heat_delta)
        result = await db.execute(
            _REVERT_UNLOCK_STATS_SQL,
            {"song_id": song_id, "credits": credits, "heat_delta": heat_delta},
        )
        row = result.fetchone()
        if row is None:
            raise SongNotFoundError(song_id)
        return _row_to_song(row)

    async def apply_fan_stats(
        self, db: AsyncSession, user_id: str, artist_id: str, credits: int, heat_delta: int
    ) -> None:
        await db.execute(
            _APPLY_FAN_STATS_SQL,
            {
                "user_id": user_id,
                "artist_id": artist_id,
                "credits": credits,
                "heat_delta": heat_delta,
            },
        )

    async def revert_fan_stats(
        self, db: AsyncSession, user_id: str, artist_id: str, credits: int, heat_delta: int
    ) -> None:
        await db.execute(
            _REVERT_FAN_STATS_SQL,
            {
                "user_id": user_id,
                "artist_id": artist_id,
                "credits": credits,
                "heat_delta": heat_delta,
            },
        )

    async def get_artist_earnings(
        self, db: AsyncSession, artist_id: str
    ) -> ArtistEarnings:
        row = (await db.execute(_ARTIST_EARNINGS_SQL, {"artist_id": artist_id})).fetchone()
        return ArtistEarnings(
            artist_id=artist_id,
            net_unlocks=int(row.net_unlocks) if row else 0,
            net_credits=int(row.net_credits) if row else 0,
            net_artist_share_minor=int(row.net_artist_share_minor) if row else 0,
        )
