"""002: create rounds table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE rounds (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            session_id      UUID            NOT NULL REFERENCES sessions (id) ON DELETE CASCADE,
            round_number    INT             NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'waiting',
            started_at      TIMESTAMPTZ     DEFAULT NULL,
            ended_at        TIMESTAMPTZ     DEFAULT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_rounds_session_number UNIQUE (session_id, round_number),
            CONSTRAINT ck_rounds_status         CHECK (
                status IN ('waiting', 'active', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_rounds_number         CHECK (round_number > 0)
        );
    """)
    # At most one active round per session
    op.execute("""
        CREATE UNIQUE INDEX uq_rounds_one_active
        ON rounds (session_id) WHERE status = 'active';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS rounds CASCADE;")
