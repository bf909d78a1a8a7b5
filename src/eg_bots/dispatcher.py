"""BotDispatcher — seats bots and drives their actions through the round lifecycle.

Scheduling by game category:
  continuous DA  one self-renewing loop per bot: initial delay, then an action
                 every few seconds priced off the elapsed round time
  sequential     first-mover bots act once; second-mover bots respond when
                 their partner's first move arrives (on_first_move_submitted)
  specialized    each bot's pre-built timeline of (action, delay)
  simultaneous   one decision per bot after a short random delay

Bot actions go through ActionSubmitter, the same path human actions take.
Anything a single bot action raises is logged here and goes no further.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings, settings
from src.eg_bots.registry import get_strategy
from src.eg_bots.scheduling import CancellationScope, ScopeRegistry
from src.eg_bots.strategies.base import BotStrategy, RoundContext
from src.eg_common.enums import GameCategory, GameType
from src.eg_common.errors import RoundNotActiveError
from src.eg_common.logging_config import BOT_LOGGER_NAME
from src.eg_common.timeutils import seconds_since, utc_now
from src.eg_game.actions import GameAction
from src.eg_game.catalog import category_of
from src.eg_game.engine import ActionResult
from src.eg_game.persistence import GameActionRepository
from src.eg_game.repository import GameActionRecord, GameActionRepositoryProtocol
from src.eg_game.submission import ActionSubmitter
from src.eg_session.domain.models import Player, Round, Session
from src.eg_session.domain.repository import PlayerRepositoryProtocol, RoundRepositoryProtocol
from src.eg_session.domain.roles import choose_role, first_mover_role
from src.eg_session.infrastructure.persistence import PlayerRepository, RoundRepository

logger = logging.getLogger(BOT_LOGGER_NAME)

Sleep = Callable[[float], Awaitable[None]]
ActionFactory = Callable[[], GameAction | None]

_ROUND_CLOSED_CODE = RoundNotActiveError("").code


@dataclass(frozen=True)
class BotTiming:
    """Delay ranges in seconds."""

    da_initial_delay: tuple[float, float] = (1.0, 3.0)
    da_interval: tuple[float, float] = (3.0, 12.0)
    action_delay: tuple[float, float] = (1.0, 5.0)
    second_move_delay: tuple[float, float] = (1.0, 3.0)

    @classmethod
    def from_settings(cls, s: Settings) -> "BotTiming":
        return cls(
            da_initial_delay=(s.BOT_DA_INITIAL_DELAY_MIN_S, s.BOT_DA_INITIAL_DELAY_MAX_S),
            da_interval=(s.BOT_DA_MIN_INTERVAL_S, s.BOT_DA_MAX_INTERVAL_S),
            action_delay=(s.BOT_ACTION_DELAY_MIN_S, s.BOT_ACTION_DELAY_MAX_S),
            second_move_delay=(s.BOT_SECOND_MOVE_DELAY_MIN_S, s.BOT_SECOND_MOVE_DELAY_MAX_S),
        )


class BotDispatcher:
    def __init__(
        self,
        submitter: ActionSubmitter,
        session_factory: async_sessionmaker[AsyncSession],
        player_repo: PlayerRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
        action_repo: GameActionRepositoryProtocol | None = None,
        timing: BotTiming | None = None,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._submitter = submitter
        self._session_factory = session_factory
        self._player_repo: PlayerRepositoryProtocol = player_repo or PlayerRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()
        self._action_repo: GameActionRepositoryProtocol = action_repo or GameActionRepository()
        self._timing = timing or BotTiming.from_settings(settings)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._scopes = ScopeRegistry()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def scopes(self) -> ScopeRegistry:
        return self._scopes

    async def start(self) -> None:
        self._running = True
        logger.info("Bot dispatcher started")

    async def shutdown(self) -> None:
        self._running = False
        pending = self._scopes.cancel_all()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Bot dispatcher stopped (%d pending bot actions cancelled)", len(pending))

    # ------------------------------------------------------------------
    # Seating
    # ------------------------------------------------------------------

    async def create_bots_for_session(self, session: Session, db: AsyncSession) -> list[Player]:
        """Fill the empty seats (market_size - seated players) with bots.

        Uses the same role policy and row lock as a human join. Runs in the
        caller's transaction; the caller commits.
        """
        existing = await self._player_repo.list_active_by_session(session.id, db)
        needed = session.market_size - len(existing)
        bots: list[Player] = []
        for i in range(needed):
            bot = await self._player_repo.create_with_role_assignment(
                session.id,
                session.market_size,
                f"Bot {i + 1}",
                True,
                lambda seated: choose_role(session, seated, self._rng),
                db,
            )
            if bot is None:
                break
            bots.append(bot)
        logger.info(
            "Created %d bots for session %s (%s)", len(bots), session.code, session.game_type
        )
        return bots

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    async def on_round_start(self, rnd: Round, session: Session) -> None:
        if not self._running:
            logger.warning("Dispatcher not running; no bots scheduled for round %s", rnd.id)
            return
        game_type = GameType.parse(session.game_type)
        strategy = get_strategy(game_type)
        if strategy is None:
            return

        async with self._session_factory() as db:
            players = await self._player_repo.list_active_by_session(session.id, db)
        bots = [p for p in players if p.is_bot]
        if not bots:
            return

        scope = self._scopes.open(rnd.id, session.id)
        if scope.cancelled:
            logger.info("Round %s already ended; no bots scheduled", rnd.id)
            return
        config = session.config_with_timing()
        category = category_of(game_type)
        previous = await self._previous_actions(rnd, session, category)
        logger.info(
            "Round %d of %s started: scheduling %d bots (%s)",
            rnd.round_number, session.code, len(bots), category.value,
        )

        if category == GameCategory.CONTINUOUS_TRADING and hasattr(strategy, "get_da_action"):
            started_at = rnd.started_at or utc_now()
            for bot in bots:
                scope.spawn(
                    self._da_loop(scope, rnd, session, bot, strategy, config, started_at),
                    name=f"bot-da-{bot.id}",
                )
        elif category == GameCategory.SEQUENTIAL and hasattr(strategy, "get_first_move_action"):
            first_role = first_mover_role(game_type)
            for bot in (b for b in bots if b.role == first_role):
                self._schedule_once(
                    scope, rnd, session, bot, self._uniform(self._timing.action_delay),
                    lambda b=bot: strategy.get_first_move_action(
                        b, config, self._context(rnd, b, previous), self._rng
                    ),
                )
        elif hasattr(strategy, "get_specialized_actions"):
            for bot in bots:
                ctx = self._context(rnd, bot, previous)
                for timed in strategy.get_specialized_actions(bot, config, ctx, self._rng):
                    self._schedule_once(
                        scope, rnd, session, bot, timed.delay_seconds,
                        lambda a=timed.action: a,
                    )
        elif hasattr(strategy, "get_simultaneous_action"):
            for bot in bots:
                self._schedule_once(
                    scope, rnd, session, bot, self._uniform(self._timing.action_delay),
                    lambda b=bot: strategy.get_simultaneous_action(
                        b, config, self._context(rnd, b, previous), self._rng
                    ),
                )
        else:
            logger.info("%r has nothing to do in %s rounds", strategy, category.value)

    async def on_first_move_submitted(
        self,
        rnd: Round,
        bot_player_id: str,
        partner_action: dict[str, Any],
        session: Session,
    ) -> None:
        strategy = get_strategy(GameType.parse(session.game_type))
        if strategy is None or not hasattr(strategy, "get_second_move_action"):
            return
        async with self._session_factory() as db:
            bot = await self._player_repo.get_by_id(bot_player_id, db)
        if bot is None or not bot.is_bot:
            return

        scope = self._scopes.open(rnd.id, session.id)
        if scope.cancelled:
            logger.info("Round %s already ended; %s will not respond", rnd.id, bot.name)
            return
        config = session.config_with_timing()
        ctx = RoundContext(round_number=rnd.round_number)
        self._schedule_once(
            scope, rnd, session, bot, self._uniform(self._timing.second_move_delay),
            lambda: strategy.get_second_move_action(bot, config, partner_action, ctx, self._rng),
        )

    def on_round_end(self, round_id: str, session_id: str | None = None) -> int:
        cancelled = self._scopes.cancel_round(round_id, session_id)
        logger.info("Round %s ended: %d pending bot actions cancelled", round_id, len(cancelled))
        return len(cancelled)

    def on_session_end(self, session_id: str) -> int:
        cancelled = self._scopes.cancel_session(session_id)
        logger.info("Session %s ended: %d pending bot actions cancelled", session_id, len(cancelled))
        return len(cancelled)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _uniform(self, bounds: tuple[float, float]) -> float:
        return self._rng.uniform(*bounds)

    async def _previous_actions(
        self, rnd: Round, session: Session, category: GameCategory
    ) -> list[GameActionRecord]:
        """Recorded actions of the round before `rnd`, for strategies that react to them."""
        if rnd.round_number <= 1 or category == GameCategory.CONTINUOUS_TRADING:
            return []
        async with self._session_factory() as db:
            prev = await self._round_repo.get_by_number(session.id, rnd.round_number - 1, db)
            if prev is None:
                return []
            return await self._action_repo.list_by_round(prev.id, db)

    @staticmethod
    def _context(rnd: Round, bot: Player, previous: list[GameActionRecord]) -> RoundContext:
        return RoundContext(
            round_number=rnd.round_number,
            previous_results=[
                {"playerId": a.player_id, "actionType": a.action_type, "actionData": a.action_data}
                for a in previous
                if a.player_id != bot.id
            ],
        )

    def _schedule_once(
        self,
        scope: CancellationScope,
        rnd: Round,
        session: Session,
        bot: Player,
        delay: float,
        make_action: ActionFactory,
    ) -> None:
        scope.spawn(
            self._act_after(scope, delay, rnd, session, bot, make_action),
            name=f"bot-{bot.id}",
        )

    async def _act_after(
        self,
        scope: CancellationScope,
        delay: float,
        rnd: Round,
        session: Session,
        bot: Player,
        make_action: ActionFactory,
    ) -> None:
        await self._sleep(delay)
        if scope.cancelled:
            return
        try:
            action = make_action()
            if action is None:
                return
            result = await self._submit(rnd, bot, action)
            self._log_result(session, bot, action, result)
        except Exception:
            logger.exception("Bot %s action failed in round %s", bot.name, rnd.id)

    async def _da_loop(
        self,
        scope: CancellationScope,
        rnd: Round,
        session: Session,
        bot: Player,
        strategy: BotStrategy,
        config: dict[str, Any],
        started_at: Any,
    ) -> None:
        await self._sleep(self._uniform(self._timing.da_initial_delay))
        while not scope.cancelled:
            await self._sleep(self._uniform(self._timing.da_interval))
            if scope.cancelled:
                return
            ctx = RoundContext(
                round_number=rnd.round_number,
                elapsed_seconds=seconds_since(started_at),
            )
            try:
                action = strategy.get_da_action(bot, config, ctx, self._rng)
                if action is None:
                    continue
                result = await self._submit(rnd, bot, action)
                self._log_result(session, bot, action, result)
                if result.error_code == _ROUND_CLOSED_CODE:
                    return
            except Exception:
                logger.exception("DA bot %s tick failed in round %s", bot.name, rnd.id)

    async def _submit(self, rnd: Round, bot: Player, action: GameAction) -> ActionResult:
        async with self._session_factory() as db:
            return await self._submitter.submit(rnd.id, bot.id, action.to_payload(), db)

    def _log_result(
        self, session: Session, bot: Player, action: GameAction, result: ActionResult
    ) -> None:
        logger.info(
            "[%s] %s (%s) %s %s -> %s",
            session.code,
            bot.name,
            bot.role,
            action.type,
            action.model_dump(exclude={"type"}),
            "OK" if result.success else result.error,
        )
