"""005: create unlocked_songs table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE unlocked_songs (
            user_id           VARCHAR(64) NOT NULL,
            song_id           VARCHAR(64) NOT NULL REFERENCES songs (id),
            unlocked_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            can_be_refunded   BOOLEAN     NOT NULL DEFAULT TRUE,
            refund_expires_at TIMESTAMPTZ NOT NULL,
            refunded          BOOLEAN     NOT NULL DEFAULT FALSE,
            credits_spent     INT         NOT NULL DEFAULT 0,
            used_free_slot    BOOLEAN     NOT NULL DEFAULT FALSE,
            PRIMARY KEY (user_id, song_id),
            CONSTRAINT ck_unlocked_credits_gte_0    CHECK (credits_spent >= 0),
            CONSTRAINT ck_unlocked_free_slot_free   CHECK (NOT used_free_slot OR credits_spent = 0),
            CONSTRAINT ck_unlocked_expiry_after     CHECK (refund_expires_at >= unlocked_at)
        );
    """)
    op.execute(
        "CREATE INDEX idx_unlocked_songs_library ON unlocked_songs (user_id, unlocked_at DESC) "
        "WHERE refunded = FALSE;"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS unlocked_songs CASCADE;")
