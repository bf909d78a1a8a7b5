"""GameActionRepository — raw SQL persistence implementation."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_game.repository import GameActionRecord

_INSERT_ACTION_SQL = text("""
    INSERT INTO game_actions (id, round_id, player_id, action_type, action_data, created_at)
    VALUES (:id, :round_id, :player_id, :action_type,
            CAST(:action_data AS JSONB), COALESCE(:created_at, NOW()))
""")

_COLUMNS = "id, round_id, player_id, action_type, action_data, created_at"

_LIST_BY_ROUND_SQL = text(f"""
    SELECT {_COLUMNS} FROM game_actions
    WHERE round_id = :round_id
    ORDER BY created_at ASC
""")

_LIST_BY_ROUND_AND_PLAYER_SQL = text(f"""
    SELECT {_COLUMNS} FROM game_actions
    WHERE round_id = :round_id AND player_id = :player_id
    ORDER BY created_at ASC
""")


def _row_to_record(row: Any) -> GameActionRecord:
    data = row.action_data
    if isinstance(data, str):
        data = json.loads(data)
    return GameActionRecord(
        id=str(row.id),
        round_id=str(row.round_id),
        player_id=str(row.player_id),
        action_type=row.action_type,
        action_data=data or {},
        created_at=row.created_at,
    )


class GameActionRepository:
    """Concrete implementation of GameActionRepositoryProtocol using raw SQL."""

    async def save(self, record: GameActionRecord, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ACTION_SQL,
            {
                "id": record.id,
                "round_id": record.round_id,
                "player_id": record.player_id,
                "action_type": record.action_type,
                "action_data": json.dumps(record.action_data),
                "created_at": record.created_at,
            },
        )

    async def list_by_round(self, round_id: str, db: AsyncSession) -> list[GameActionRecord]:
        rows = (await db.execute(_LIST_BY_ROUND_SQL, {"round_id": round_id})).fetchall()
        return [_row_to_record(r) for r in rows]

    async def list_by_round_and_player(
        self, round_id: str, player_id: str, db: AsyncSession
    ) -> list[GameActionRecord]:
        rows = (
            await db.execute(
                _LIST_BY_ROUND_AND_PLAYER_SQL, {"round_id": round_id, "player_id": player_id}
            )
        ).fetchall()
        return [_row_to_record(r) for r in rows]
