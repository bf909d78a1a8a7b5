"""Contract every game engine implements."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_common.enums import GameType
from src.eg_common.errors import AppError


@dataclass
class ActionResult:
    success: bool
    error: str | None = None
    error_code: int = 0
    http_status: int = 200
    data: dict[str, Any] | None = None

    @classmethod
    def ok(cls, data: dict[str, Any] | None = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, exc: AppError) -> "ActionResult":
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            http_status=exc.http_status,
        )

    def raise_for_error(self) -> None:
        """Re-raise a failed result as an AppError (HTTP edge)."""
        if not self.success:
            raise AppError(self.error_code or 5002, self.error or "Action failed", self.http_status)


@dataclass
class PlayerResult:
    player_id: str
    profit: float
    result_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class RoundResult:
    player_results: list[PlayerResult] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)


class GameEngine(Protocol):
    game_type: GameType

    async def handle_action(
        self,
        round_id: str,
        player_id: str,
        action: dict[str, Any],
        session_code: str,
        db: AsyncSession,
    ) -> ActionResult: ...

    async def process_round_end(
        self, round_id: str, session_code: str, db: AsyncSession
    ) -> RoundResult:
        """Round-end hook. Runs with the round lock already held."""
        ...

    async def get_game_state(
        self, round_id: str, player_id: str | None, db: AsyncSession
    ) -> dict[str, Any]: ...
