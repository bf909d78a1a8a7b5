"""ActionSubmitter — the one path every action takes, whether a human or a bot sent it."""

import logging
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_common.enums import GameType
from src.eg_common.errors import AppError, RoundNotFoundError, SessionNotFoundError
from src.eg_game.engine import ActionResult
from src.eg_game.registry import GameRegistry
from src.eg_session.domain.models import Round, Session
from src.eg_session.domain.repository import (
    PlayerRepositoryProtocol,
    RoundRepositoryProtocol,
    SessionRepositoryProtocol,
)
from src.eg_session.domain.roles import find_partner, first_mover_role
from src.eg_session.domain.state_machine import check_accepts_submissions
from src.eg_session.infrastructure.persistence import (
    PlayerRepository,
    RoundRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)


class FirstMoveListener(Protocol):
    async def on_first_move_submitted(
        self,
        rnd: Round,
        bot_player_id: str,
        partner_action: dict[str, Any],
        session: Session,
    ) -> None: ...


class ActionSubmitter:
    def __init__(
        self,
        registry: GameRegistry,
        session_repo: SessionRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
        player_repo: PlayerRepositoryProtocol | None = None,
    ) -> None:
        self._registry = registry
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()
        self._player_repo: PlayerRepositoryProtocol = player_repo or PlayerRepository()
        self._first_move_listener: FirstMoveListener | None = None

    def set_first_move_listener(self, listener: FirstMoveListener | None) -> None:
        self._first_move_listener = listener

    async def submit(
        self,
        round_id: str,
        player_id: str,
        action: dict[str, Any],
        db: AsyncSession,
    ) -> ActionResult:
        """Route an action to its game's engine.

        The round-active check here is an early exit; the engine repeats it
        under the round lock, which is the check that counts.
        """
        try:
            rnd = await self._round_repo.get_by_id(round_id, db)
            if rnd is None:
                raise RoundNotFoundError(round_id)
            check_accepts_submissions(rnd, round_id)
            session = await self._session_repo.get_by_id(rnd.session_id, db)
            if session is None:
                raise SessionNotFoundError(rnd.session_id)
            engine = self._registry.get(session.game_type)
        except AppError as exc:
            return ActionResult.from_error(exc)

        result = await engine.handle_action(round_id, player_id, action, session.code, db)
        if result.success:
            await self._notify_bot_partner(rnd, player_id, action, session, db)
        return result

    async def _notify_bot_partner(
        self,
        rnd: Round,
        player_id: str,
        action: dict[str, Any],
        session: Session,
        db: AsyncSession,
    ) -> None:
        if self._first_move_listener is None:
            return
        game_type = GameType.parse(session.game_type)
        first_role = first_mover_role(game_type)
        if first_role is None:
            return
        player = await self._player_repo.get_by_id(player_id, db)
        if player is None or player.role != first_role:
            return
        players = await self._player_repo.list_active_by_session(session.id, db)
        partner = find_partner(game_type, player, players)
        if partner is None or not partner.is_bot:
            return
        logger.debug("first move by %s; bot partner %s to respond", player_id, partner.id)
        await self._first_move_listener.on_first_move_submitted(rnd, partner.id, action, session)
