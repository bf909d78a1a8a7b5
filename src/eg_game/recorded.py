"""RecordedActionEngine — the engine for every non-DA game type.

It owns the parts of a move every game shares: payload validation, the
round-active check under the round lock, one decision per player per round,
first-move-before-second-move ordering for paired games, persistence and the
broadcast. Payoff rules are game-specific and live outside this service; at
round end this engine only reports who acted.
"""

import logging
from collections import Counter
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_common.enums import GameType
from src.eg_common.errors import (
    AppError,
    InvalidActionError,
    PlayerNotFoundError,
    SessionNotFoundError,
)
from src.eg_common.id_generator import generate_id
from src.eg_common.locks import RoundLocks
from src.eg_common.timeutils import utc_now
from src.eg_game.actions import ACTION_MODELS, GameAction, parse_action
from src.eg_game.catalog import allows_multiple_actions
from src.eg_game.engine import ActionResult, PlayerResult, RoundResult
from src.eg_game.persistence import GameActionRepository
from src.eg_game.repository import GameActionRecord, GameActionRepositoryProtocol
from src.eg_gateway.broadcaster import BroadcastGateway, EventName, market_room
from src.eg_session.domain.models import Player
from src.eg_session.domain.repository import (
    PlayerRepositoryProtocol,
    RoundRepositoryProtocol,
    SessionRepositoryProtocol,
)
from src.eg_session.domain.roles import find_partner, first_mover_role, second_mover_role
from src.eg_session.domain.state_machine import check_accepts_submissions
from src.eg_session.infrastructure.persistence import (
    PlayerRepository,
    RoundRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)

FIRST_MOVE = "first_move"
SECOND_MOVE = "second_move"


class RecordedActionEngine:
    def __init__(
        self,
        game_type: GameType,
        broadcaster: BroadcastGateway,
        locks: RoundLocks,
        action_repo: GameActionRepositoryProtocol | None = None,
        session_repo: SessionRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
        player_repo: PlayerRepositoryProtocol | None = None,
    ) -> None:
        self.game_type = game_type
        self._broadcaster = broadcaster
        self._locks = locks
        self._action_repo: GameActionRepositoryProtocol = action_repo or GameActionRepository()
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()
        self._player_repo: PlayerRepositoryProtocol = player_repo or PlayerRepository()

    async def handle_action(
        self,
        round_id: str,
        player_id: str,
        action: dict[str, Any],
        session_code: str,
        db: AsyncSession,
    ) -> ActionResult:
        try:
            parsed = parse_action(self.game_type, action)
            record = await self._record(round_id, player_id, parsed, session_code, db)
        except AppError as exc:
            logger.info(
                "%s action rejected: session=%s round=%s player=%s code=%d %s",
                self.game_type.value, session_code, round_id, player_id, exc.code, exc.message,
            )
            return ActionResult.from_error(exc)
        return ActionResult.ok({"action_id": record.id, "stage": record.action_type})

    async def _record(
        self,
        round_id: str,
        player_id: str,
        parsed: GameAction,
        session_code: str,
        db: AsyncSession,
    ) -> GameActionRecord:
        async with self._locks.get(round_id):
            try:
                rnd = await self._round_repo.get_by_id(round_id, db)
                check_accepts_submissions(rnd, round_id)
                session = await self._session_repo.get_by_id(rnd.session_id, db)
                if session is None:
                    raise SessionNotFoundError(rnd.session_id)
                player = await self._player_repo.get_by_id(player_id, db)
                if player is None or player.session_id != session.id:
                    raise PlayerNotFoundError(player_id)

                mine = await self._action_repo.list_by_round_and_player(round_id, player_id, db)
                if mine and not allows_multiple_actions(self.game_type):
                    raise InvalidActionError("You have already submitted your decision this round")

                stage, partner = await self._sequential_stage(round_id, player, parsed, db)
                record = GameActionRecord(
                    id=generate_id(),
                    round_id=round_id,
                    player_id=player_id,
                    action_type=stage or parsed.type,
                    action_data=parsed.to_payload(),
                    created_at=utc_now(),
                )
                await self._action_repo.save(record, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        payload: dict[str, Any] = {
            "playerId": player.id,
            "playerName": player.name,
            "actionType": record.action_type,
        }
        if stage == FIRST_MOVE:
            payload["action"] = record.action_data
            payload["partnerId"] = partner.id if partner else None
            event = EventName.FIRST_MOVE_SUBMITTED
        else:
            event = EventName.ACTION_SUBMITTED
        await self._broadcaster.emit(market_room(session_code), event, payload)
        return record

    async def _sequential_stage(
        self, round_id: str, player: Player, parsed: GameAction, db: AsyncSession
    ) -> tuple[str | None, Player | None]:
        first_role = first_mover_role(self.game_type)
        if first_role is None:
            return None, None
        models = ACTION_MODELS.get(self.game_type, ())
        players = await self._player_repo.list_active_by_session(player.session_id, db)
        partner = find_partner(self.game_type, player, players)

        if player.role == first_role:
            if models and not isinstance(parsed, models[0]):
                raise InvalidActionError(f"first movers submit {models[0].__name__}")
            return FIRST_MOVE, partner

        if player.role != second_mover_role(self.game_type):
            raise InvalidActionError(f"role {player.role!r} does not move in {self.game_type.value}")
        if len(models) > 1 and not isinstance(parsed, models[1]):
            raise InvalidActionError(f"second movers submit {models[1].__name__}")
        if partner is None:
            raise InvalidActionError("No partner assigned yet")
        partner_actions = await self._action_repo.list_by_round_and_player(round_id, partner.id, db)
        if not any(a.action_type == FIRST_MOVE for a in partner_actions):
            raise InvalidActionError("Your partner has not submitted yet. Please wait.")
        return SECOND_MOVE, partner

    async def process_round_end(
        self, round_id: str, session_code: str, db: AsyncSession
    ) -> RoundResult:
        actions = await self._action_repo.list_by_round(round_id, db)
        acted = sorted({a.player_id for a in actions})
        return RoundResult(
            player_results=[PlayerResult(pid, 0.0, {"acted": True}) for pid in acted],
            summary={
                "totalActions": len(actions),
                "playersActed": len(acted),
                "byType": dict(Counter(a.action_type for a in actions)),
            },
        )

    async def get_game_state(
        self, round_id: str, player_id: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        actions = await self._action_repo.list_by_round(round_id, db)
        state: dict[str, Any] = {
            "totalActions": len(actions),
            "playersActed": len({a.player_id for a in actions}),
        }
        if player_id is not None:
            state["myActions"] = [
                {"type": a.action_type, "data": a.action_data}
                for a in actions
                if a.player_id == player_id
            ]
        return state
