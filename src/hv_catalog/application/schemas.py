"""Pydantic schemas for hv_catalog API."""

from pydantic import BaseModel, Field, HttpUrl, field_validator

from src.hv_catalog.domain.models import ArtistEarnings, Song
from src.hv_common.credits import MAX_SONG_PRICE, MIN_SONG_PRICE, minor_to_display

GENRES = ("Hip-Hop", "Pop", "Rock", "Electronic", "Classical", "Indie", "Jazz", "R&B")


class CreateSongRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    price_credits: int = Field(..., ge=MIN_SONG_PRICE, le=MAX_SONG_PRICE)
    genre: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=2000)
    cover_art_url: HttpUrl | None = None
    audio_url: HttpUrl | None = None
    file_size_bytes: int | None = Field(None, gt=0, le=50 * 1024 * 1024)
    duration_seconds: int | None = Field(None, gt=0)

    @field_validator("genre")
    @classmethod
    def known_genre(cls, v: str | None) -> str | None:
        if v is not None and v not in GENRES:
            raise ValueError(f"Genre must be one of: {', '.join(GENRES)}")
        return v


class SongResponse(BaseModel):
    id: str
    artist_id: str
    title: str
    genre: str | None
    description: str | None
    price_credits: int
    price_tier: str
    cover_art_url: str | None
    audio_url: str | None
    upload_status: str
    moderation_notes: str | None
    total_unlocks: int
    total_credits_earned: int
    heat_score: int
    created_at: str | None

    @classmethod
    def from_domain(cls, song: Song) -> "SongResponse":
        return cls(
            id=song.id,
            artist_id=song.artist_id,
            title=song.title,
            genre=song.genre,
            description=song.description,
            price_credits=song.price_credits,
            price_tier=song.price_tier,
            cover_art_url=song.cover_art_url,
            audio_url=song.audio_url,
            upload_status=song.upload_status,
            moderation_notes=song.moderation_notes,
            total_unlocks=song.total_unlocks,
            total_credits_earned=song.total_credits_earned,
            heat_score=song.heat_score,
            created_at=song.created_at.isoformat() if song.created_at else None,
        )


class SongListResponse(BaseModel):
    items: list[SongResponse]
    total: int


class ArtistEarningsResponse(BaseModel):
    artist_id: str
    net_unlocks: int
    net_credits: int
    artist_share_minor: int
    artist_share_display: str

    @classmethod
    def from_domain(cls, earnings: ArtistEarnings) -> "ArtistEarningsResponse":
        return cls(
            artist_id=earnings.artist_id,
            net_unlocks=earnings.net_unlocks,
            net_credits=earnings.net_credits,
            artist_share_minor=earnings.net_artist_share_minor,
            artist_share_display=minor_to_display(earnings.net_artist_share_minor),
        )
