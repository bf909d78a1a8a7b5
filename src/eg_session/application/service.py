"""RoundLifecycleService — drives sessions and rounds through their states.

Every transition is a conditional UPDATE (see persistence), so two concurrent
callers cannot both move the same row. Ending a round follows a fixed order:

  1. cancel the round's bot timers (synchronous, before anything else)
  2. take the round lock, the one bid/ask/action acceptance also takes
  3. active → completed, then the engine's round-end hook
     (DA: deactivate the remaining book)
  4. commit, release the lock, broadcast

Anything queued on the lock behind step 2 re-reads the round, sees it is no
longer active and is rejected with RoundNotActiveError.
"""

import logging
import random
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_bots.dispatcher import BotDispatcher
from src.eg_common.enums import RoundStatus, SessionStatus
from src.eg_common.errors import (
    RoundNotActiveError,
    RoundNotFoundError,
    RoundNotWaitingError,
    SessionFullError,
    SessionNotActiveError,
    SessionNotFoundError,
    SessionNotWaitingError,
)
from src.eg_common.locks import RoundLocks
from src.eg_common.timeutils import utc_now
from src.eg_game.engine import RoundResult
from src.eg_game.registry import GameRegistry
from src.eg_gateway.broadcaster import BroadcastGateway, EventName, market_room, session_room
from src.eg_session.domain.models import Player, Round, Session
from src.eg_session.domain.repository import (
    PlayerRepositoryProtocol,
    RoundRepositoryProtocol,
    SessionRepositoryProtocol,
)
from src.eg_session.domain.roles import choose_role
from src.eg_session.domain.state_machine import (
    check_can_end_round,
    check_can_start_round,
    check_can_start_session,
    check_session_active,
    check_session_transition,
    next_round_number,
)
from src.eg_session.infrastructure.persistence import (
    PlayerRepository,
    RoundRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)


class RoundLifecycleService:
    def __init__(
        self,
        broadcaster: BroadcastGateway,
        locks: RoundLocks,
        registry: GameRegistry,
        dispatcher: BotDispatcher | None = None,
        session_repo: SessionRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
        player_repo: PlayerRepositoryProtocol | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._locks = locks
        self._registry = registry
        self._dispatcher = dispatcher
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()
        self._player_repo: PlayerRepositoryProtocol = player_repo or PlayerRepository()
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_session(self, code: str, db: AsyncSession) -> Session:
        session = await self._session_repo.get_by_code(code, db)
        if session is None:
            raise SessionNotFoundError(code)
        return session

    async def get_round(self, round_id: str, db: AsyncSession) -> Round:
        rnd = await self._round_repo.get_by_id(round_id, db)
        if rnd is None:
            raise RoundNotFoundError(round_id)
        return rnd

    async def list_rounds(self, code: str, db: AsyncSession) -> tuple[Session, list[Round]]:
        session = await self.get_session(code, db)
        return session, await self._round_repo.list_by_session(session.id, db)

    async def list_players(self, code: str, db: AsyncSession) -> list[Player]:
        session = await self.get_session(code, db)
        return await self._player_repo.list_active_by_session(session.id, db)

    async def get_game_state(
        self, round_id: str, player_id: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        """Everything a reconnecting client needs for the round it is in."""
        rnd = await self.get_round(round_id, db)
        session = await self._session_repo.get_by_id(rnd.session_id, db)
        if session is None:
            raise SessionNotFoundError(rnd.session_id)
        engine = self._registry.get(session.game_type)
        state = await engine.get_game_state(round_id, player_id, db)
        return {
            "sessionCode": session.code,
            "gameType": session.game_type,
            "round": {"id": rnd.id, "roundNumber": rnd.round_number, "status": rnd.status},
            "timePerRound": session.time_per_round,
            "state": state,
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def join_session(self, code: str, name: str, db: AsyncSession) -> Player:
        session = await self.get_session(code, db)
        check_can_start_session(session)
        try:
            player = await self._player_repo.create_with_role_assignment(
                session.id,
                session.market_size,
                name,
                False,
                lambda seated: choose_role(session, seated, self._rng),
                db,
            )
            if player is None:
                raise SessionFullError(session.code, session.market_size)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Player %s joined %s as %s", player.id, session.code, player.role)
        await self._broadcaster.emit(
            session_room(session.code),
            EventName.PLAYER_JOINED,
            {"player": player.public_view(), "role": player.role},
        )
        return player

    async def start_session(self, code: str, db: AsyncSession) -> Session:
        session = await self.get_session(code, db)
        check_can_start_session(session)
        now = utc_now()
        try:
            rounds = await self._round_repo.list_by_session(session.id, db)
            if len(rounds) < session.num_rounds:
                await self._round_repo.create_batch(session.id, session.num_rounds, db)
            if session.bot_enabled and self._dispatcher is not None:
                await self._dispatcher.create_bots_for_session(session, db)

            moved = await self._session_repo.transition_status(
                session.id, (SessionStatus.WAITING.value,), SessionStatus.ACTIVE.value, db,
                started_at=now,
            )
            if not moved:
                raise SessionNotWaitingError(session.code, session.status)

            first = await self._round_repo.get_by_number(session.id, 1, db)
            if first is None:
                raise RoundNotFoundError(f"{session.code}#1")
            started = await self._round_repo.transition_status(
                first.id, RoundStatus.WAITING.value, RoundStatus.ACTIVE.value, db, started_at=now
            )
            if not started:
                raise RoundNotWaitingError(first.id, first.status)
            await self._session_repo.set_current_round(session.id, 1, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        session = await self.get_session(code, db)
        first = await self.get_round(first.id, db)
        logger.info("Session %s started (%s, %d rounds)", code, session.game_type, session.num_rounds)
        await self._broadcaster.emit(
            session_room(code), EventName.SESSION_STARTED, {"sessionCode": code, "currentRound": 1}
        )
        await self._announce_round(session, first)
        return session

    async def end_session(self, code: str, db: AsyncSession) -> Session:
        """Close the active round, cancel the rest, mark the session completed."""
        session = await self.get_session(code, db)
        check_session_active(session)
        return await self._close_session(session, SessionStatus.COMPLETED, db)

    async def cancel_session(self, code: str, db: AsyncSession) -> Session:
        """Abort a waiting or active session. Rounds already played keep their results."""
        session = await self.get_session(code, db)
        check_session_transition(session, SessionStatus.CANCELLED)
        return await self._close_session(session, SessionStatus.CANCELLED, db)

    async def _close_session(
        self, session: Session, target: SessionStatus, db: AsyncSession
    ) -> Session:
        for rnd in await self._round_repo.list_by_session(session.id, db):
            if rnd.status == RoundStatus.ACTIVE:
                try:
                    await self.end_round(rnd.id, db)
                except RoundNotActiveError:
                    logger.info("Round %s closed concurrently", rnd.id)
        if self._dispatcher is not None:
            self._dispatcher.on_session_end(session.id)

        try:
            cancelled = await self._round_repo.cancel_waiting(session.id, db)
            moved = await self._session_repo.transition_status(
                session.id, (SessionStatus.WAITING.value, SessionStatus.ACTIVE.value),
                target.value, db, ended_at=utc_now(),
            )
            if not moved:
                raise SessionNotActiveError(session.code, session.status)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Session %s %s (%d unplayed rounds cancelled)", session.code, target.value, cancelled
        )
        await self._broadcaster.emit(
            session_room(session.code),
            EventName.SESSION_ENDED,
            {"sessionCode": session.code, "status": target.value},
        )
        return await self.get_session(session.code, db)

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------

    async def start_round(self, code: str, round_number: int, db: AsyncSession) -> Round:
        session = await self.get_session(code, db)
        rnd = await self._round_repo.get_by_number(session.id, round_number, db)
        if rnd is None:
            raise RoundNotFoundError(f"{code}#{round_number}")
        rounds = await self._round_repo.list_by_session(session.id, db)
        check_can_start_round(session, rnd, rounds)

        async with self._locks.get(rnd.id):
            try:
                moved = await self._round_repo.transition_status(
                    rnd.id, RoundStatus.WAITING.value, RoundStatus.ACTIVE.value, db,
                    started_at=utc_now(),
                )
                if not moved:
                    raise RoundNotWaitingError(rnd.id, rnd.status)
                await self._session_repo.set_current_round(session.id, round_number, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        rnd = await self.get_round(rnd.id, db)
        logger.info("Round %d of %s started", round_number, code)
        await self._announce_round(session, rnd)
        return rnd

    async def end_round(self, round_id: str, db: AsyncSession) -> RoundResult:
        rnd = await self.get_round(round_id, db)
        check_can_end_round(rnd)

        if self._dispatcher is not None:
            self._dispatcher.on_round_end(round_id, rnd.session_id)

        session = await self._session_repo.get_by_id(rnd.session_id, db)
        if session is None:
            raise SessionNotFoundError(rnd.session_id)
        engine = self._registry.get(session.game_type)

        async with self._locks.get(round_id):
            try:
                moved = await self._round_repo.transition_status(
                    round_id, RoundStatus.ACTIVE.value, RoundStatus.COMPLETED.value, db,
                    ended_at=utc_now(),
                )
                if not moved:
                    raise RoundNotActiveError(round_id)
                result = await engine.process_round_end(round_id, session.code, db)
                await self._session_repo.set_current_round(
                    session.id, next_round_number(session, rnd.round_number), db
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        self._locks.discard(round_id)

        logger.info("Round %d of %s ended: %s", rnd.round_number, session.code, result.summary)
        room = market_room(session.code)
        await self._broadcaster.emit(
            room, EventName.ROUND_ENDED, {"roundId": round_id, "roundNumber": rnd.round_number}
        )
        await self._broadcaster.emit(
            room,
            EventName.ROUND_RESULTS,
            {
                "roundId": round_id,
                "roundNumber": rnd.round_number,
                "results": [
                    {"playerId": r.player_id, "profit": r.profit, **r.result_data}
                    for r in result.player_results
                ],
                "summary": result.summary,
            },
        )
        return result

    async def _announce_round(self, session: Session, rnd: Round) -> None:
        room = market_room(session.code)
        await self._broadcaster.emit(
            room,
            EventName.ROUND_STARTED,
            {
                "round": {"id": rnd.id, "roundNumber": rnd.round_number, "status": rnd.status},
                "roundNumber": rnd.round_number,
            },
        )
        await self._broadcaster.emit(
            room,
            EventName.TIMER_UPDATE,
            {"roundId": rnd.id, "timeRemaining": session.time_per_round},
        )
        if self._dispatcher is not None:
            await self._dispatcher.on_round_start(rnd, session)
