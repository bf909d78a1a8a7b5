"""GameActionRepository Protocol — stored decisions of non-DA games."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class GameActionRecord:
    id: str
    round_id: str
    player_id: str
    action_type: str
    action_data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


class GameActionRepositoryProtocol(Protocol):
    async def save(self, record: GameActionRecord, db: AsyncSession) -> None: ...

    async def list_by_round(self, round_id: str, db: AsyncSession) -> list[GameActionRecord]: ...

    async def list_by_round_and_player(
        self, round_id: str, player_id: str, db: AsyncSession
    ) -> list[GameActionRecord]: ...
