"""004: create songs table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE songs (
            id                   VARCHAR(64)  PRIMARY KEY DEFAULT gen_random_uuid()::text,
            artist_id            VARCHAR(64)  NOT NULL,
            title                VARCHAR(200) NOT NULL,
            genre                VARCHAR(50),
            description          TEXT,
            price_credits        INT          NOT NULL,
            price_tier           CHAR(1)      NOT NULL,
            cover_art_url        TEXT,
            audio_url            TEXT,
            file_size_bytes      BIGINT,
            duration_seconds     INT,
            upload_status        VARCHAR(16)  NOT NULL DEFAULT 'pending',
            moderation_notes     TEXT,
            total_unlocks        INT          NOT NULL DEFAULT 0,
            total_credits_earned BIGINT       NOT NULL DEFAULT 0,
            heat_score           BIGINT       NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_songs_price_range     CHECK (price_credits BETWEEN 5 AND 50),
            CONSTRAINT ck_songs_price_tier      CHECK (
                (price_tier = 'X' AND price_credits <= 15)
             OR (price_tier = 'Y' AND price_credits BETWEEN 16 AND 30)
             OR (price_tier = 'Z' AND price_credits >= 31)
            ),
            CONSTRAINT ck_songs_upload_status   CHECK (
                upload_status IN ('draft', 'pending', 'published', 'rejected')
            ),
            CONSTRAINT ck_songs_unlocks_gte_0   CHECK (total_unlocks >= 0),
            CONSTRAINT ck_songs_earned_gte_0    CHECK (total_credits_earned >= 0),
            CONSTRAINT ck_songs_heat_gte_0      CHECK (heat_score >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_songs_artist ON songs (artist_id);")
    op.execute(
        "CREATE INDEX idx_songs_published_heat ON songs (heat_score DESC) "
        "WHERE upload_status = 'published';"
    )
    op.execute(
        "CREATE INDEX idx_songs_pending ON songs (created_at DESC) "
        "WHERE upload_status = 'pending';"
    )
    op.execute("""
        CREATE TRIGGER trg_songs_updated_at
            BEFORE UPDATE ON songs
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS songs CASCADE;")
