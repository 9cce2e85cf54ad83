"""007: create fan_relationships table

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE fan_relationships (
            user_id               VARCHAR(64) NOT NULL,
            artist_id             VARCHAR(64) NOT NULL,
            total_credits_spent   BIGINT      NOT NULL DEFAULT 0,
            total_unlocks         INT         NOT NULL DEFAULT 0,
            hh_contribution_score BIGINT      NOT NULL DEFAULT 0,
            fan_since             TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, artist_id),
            CONSTRAINT ck_fan_spent_gte_0   CHECK (total_credits_spent >= 0),
            CONSTRAINT ck_fan_unlocks_gte_0 CHECK (total_unlocks >= 0),
            CONSTRAINT ck_fan_score_gte_0   CHECK (hh_contribution_score >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_fan_artist ON fan_relationships (artist_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS fan_relationships CASCADE;")
