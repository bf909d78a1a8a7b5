"""003: create bids, asks and trades tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_order_table(name: str) -> None:
    op.execute(f"""
        CREATE TABLE {name} (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            round_id        UUID            NOT NULL REFERENCES rounds (id) ON DELETE CASCADE,
            player_id       UUID            NOT NULL REFERENCES players (id) ON DELETE CASCADE,
            price           NUMERIC(12, 2)  NOT NULL,
            is_active       BOOLEAN         NOT NULL DEFAULT true,
            arrival_seq     BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_{name}_price CHECK (price > 0)
        );
    """)
    op.execute(
        f"CREATE INDEX idx_{name}_round_active ON {name} (round_id) WHERE is_active = true;"
    )


def upgrade() -> None:
    _create_order_table("bids")
    _create_order_table("asks")
    op.execute("""
        CREATE TABLE trades (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            round_id        UUID            NOT NULL REFERENCES rounds (id) ON DELETE CASCADE,
            buyer_id        UUID            NOT NULL REFERENCES players (id),
            seller_id       UUID            NOT NULL REFERENCES players (id),
            bid_id          UUID            NOT NULL REFERENCES bids (id),
            ask_id          UUID            NOT NULL REFERENCES asks (id),
            price           NUMERIC(12, 2)  NOT NULL,
            buyer_profit    NUMERIC(12, 2)  NOT NULL,
            seller_profit   NUMERIC(12, 2)  NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT clock_timestamp(),
            CONSTRAINT uq_trades_bid       UNIQUE (bid_id),
            CONSTRAINT uq_trades_ask       UNIQUE (ask_id),
            CONSTRAINT ck_trades_price     CHECK (price > 0),
            CONSTRAINT ck_trades_diff_side CHECK (buyer_id != seller_id)
        );
    """)
    op.execute("CREATE INDEX idx_trades_round_time ON trades (round_id, created_at);")
    op.execute("COMMENT ON TABLE trades IS 'DA executions; each bid and ask trades at most once';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
    op.execute("DROP TABLE IF EXISTS asks CASCADE;")
    op.execute("DROP TABLE IF EXISTS bids CASCADE;")
