"""006: create credit_transactions table

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_transactions (
            id                    VARCHAR(64) PRIMARY KEY DEFAULT gen_random_uuid()::text,
            user_id               VARCHAR(64) NOT NULL,
            transaction_type      VARCHAR(20) NOT NULL,
            amount_credits        INT         NOT NULL,
            amount_minor          BIGINT      NOT NULL DEFAULT 0,
            artist_share_minor    BIGINT      NOT NULL DEFAULT 0,
            platform_cut_minor    BIGINT      NOT NULL DEFAULT 0,
            song_id               VARCHAR(64) REFERENCES songs (id),
            transaction_reference VARCHAR(64),
            admin_verified        BOOLEAN     NOT NULL DEFAULT FALSE,
            verified_by_admin_id  VARCHAR(64),
            verified_at           TIMESTAMPTZ,
            ip_address            VARCHAR(64),
            device_fingerprint    VARCHAR(128),
            fraud_flag            BOOLEAN     NOT NULL DEFAULT FALSE,
            created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_tx_type CHECK (transaction_type IN (
                'top-up', 'unlock', 'refund', 'withdrawal', 'free-tester', 'signup-bonus'
            )),
            CONSTRAINT ck_tx_amount_gte_0     CHECK (amount_credits >= 0),
            CONSTRAINT ck_tx_split_sums       CHECK (
                artist_share_minor + platform_cut_minor = amount_minor
            ),
            CONSTRAINT ck_tx_free_tester_zero CHECK (
                transaction_type <> 'free-tester' OR amount_credits = 0
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_tx_user_created ON credit_transactions (user_id, created_at DESC, id DESC);"
    )
    op.execute(
        "CREATE INDEX idx_tx_pending_top_ups ON credit_transactions (created_at DESC) "
        "WHERE transaction_type = 'top-up' AND admin_verified = FALSE;"
    )
    op.execute(
        "CREATE UNIQUE INDEX uq_tx_top_up_reference ON credit_transactions (transaction_reference) "
        "WHERE transaction_type = 'top-up';"
    )
    op.execute("CREATE INDEX idx_tx_song ON credit_transactions (song_id);")
    op.execute(
        "COMMENT ON TABLE credit_transactions IS "
        "'Append-only log; only verification fields and fraud_flag are ever updated';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE;")
