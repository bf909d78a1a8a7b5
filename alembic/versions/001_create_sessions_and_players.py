"""001: create sessions and players tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE sessions (
            id                   UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            code                 VARCHAR(16)     NOT NULL,
            game_type            VARCHAR(64)     NOT NULL DEFAULT 'double_auction',
            game_config          JSONB           NOT NULL DEFAULT '{}'::jsonb,
            status               VARCHAR(20)     NOT NULL DEFAULT 'waiting',
            market_size          INT             NOT NULL,
            num_rounds           INT             NOT NULL,
            time_per_round       INT             NOT NULL DEFAULT 180,
            valuation_min        INT             NOT NULL DEFAULT 0,
            valuation_max        INT             NOT NULL DEFAULT 0,
            valuation_increments INT             NOT NULL DEFAULT 1,
            cost_min             INT             NOT NULL DEFAULT 0,
            cost_max             INT             NOT NULL DEFAULT 0,
            cost_increments      INT             NOT NULL DEFAULT 1,
            bot_enabled          BOOLEAN         NOT NULL DEFAULT false,
            current_round        INT             NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            started_at           TIMESTAMPTZ     DEFAULT NULL,
            ended_at             TIMESTAMPTZ     DEFAULT NULL,
            CONSTRAINT uq_sessions_code          UNIQUE (code),
            CONSTRAINT ck_sessions_status        CHECK (
                status IN ('waiting', 'active', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_sessions_market_size   CHECK (market_size > 0),
            CONSTRAINT ck_sessions_num_rounds    CHECK (num_rounds > 0),
            CONSTRAINT ck_sessions_current_round CHECK (current_round BETWEEN 0 AND num_rounds)
        );
    """)
    op.execute("CREATE INDEX idx_sessions_status ON sessions (status, created_at DESC);")

    op.execute("""
        CREATE TABLE players (
            id               UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            session_id       UUID            NOT NULL REFERENCES sessions (id) ON DELETE CASCADE,
            name             VARCHAR(64)     DEFAULT NULL,
            role             VARCHAR(32)     NOT NULL,
            valuation        NUMERIC(12, 2)  DEFAULT NULL,
            production_cost  NUMERIC(12, 2)  DEFAULT NULL,
            total_profit     NUMERIC(14, 2)  NOT NULL DEFAULT 0,
            is_bot           BOOLEAN         NOT NULL DEFAULT false,
            is_active        BOOLEAN         NOT NULL DEFAULT true,
            created_at       TIMESTAMPTZ     NOT NULL DEFAULT clock_timestamp()
        );
    """)
    op.execute(
        "CREATE INDEX idx_players_session ON players (session_id, is_active, created_at);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS players CASCADE;")
    op.execute("DROP TABLE IF EXISTS sessions CASCADE;")
