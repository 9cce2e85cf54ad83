"""Domain models for hv_catalog — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Song:
    id: str
    artist_id: str
    title: str
    price_credits: int
    price_tier: str
    upload_status: str
    genre: str | None = None
    description: str | None = None
    cover_art_url: str | None = None
    audio_url: str | None = None
    file_size_bytes: int | None = None
    duration_seconds: int | None = None
    moderation_notes: str | None = None
    total_unlocks: int = 0
    total_credits_earned: int = 0
    heat_score: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class NewSong:
    """Upload collaborator input; tier and status are derived, not supplied."""

    artist_id: str
    title: str
    price_credits: int
    genre: str | None = None
    description: str | None = None
    cover_art_url: str | None = None
    audio_url: str | None = None
    file_size_bytes: int | None = None
    duration_seconds: int | None = None


@dataclass
class FanRelationship:
    user_id: str
    artist_id: str
    total_credits_spent: int = 0
    total_unlocks: int = 0
    hh_contribution_score: int = 0
    fan_since: datetime | None = None


@dataclass
class ArtistEarnings:
    """Read-only accounting view; nothing here is a withdrawable balance."""

    artist_id: str
    net_unlocks: int
    net_credits: int
    net_artist_share_minor: int
