"""004: create game_actions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE game_actions (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            round_id        UUID            NOT NULL REFERENCES rounds (id) ON DELETE CASCADE,
            player_id       UUID            NOT NULL REFERENCES players (id) ON DELETE CASCADE,
            action_type     VARCHAR(64)     NOT NULL,
            action_data     JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_game_actions_round_player ON game_actions (round_id, player_id);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS game_actions CASCADE;")
