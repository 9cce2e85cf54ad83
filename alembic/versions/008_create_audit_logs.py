"""008: create audit_logs table

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE audit_logs (
            id            VARCHAR(64) PRIMARY KEY DEFAULT gen_random_uuid()::text,
            user_id       VARCHAR(64),
            admin_user_id VARCHAR(64),
            action_type   VARCHAR(40) NOT NULL,
            details       JSONB       NOT NULL DEFAULT '{}'::jsonb,
            ip_address    VARCHAR(64),
            timestamp     TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_audit_logs_ts ON audit_logs (timestamp DESC);")
    op.execute("CREATE INDEX idx_audit_logs_action ON audit_logs (action_type, timestamp DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_logs CASCADE;")
