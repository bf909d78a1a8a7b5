"""GameApplicationService — HTTP-facing composition over the submission path.

Bids and asks are ordinary actions: they go through ActionSubmitter like any
bot or generic move, so the HTTP edge gets no shortcut around the round lock.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_common.enums import OrderSide
from src.eg_common.errors import InvalidActionError, RoundNotFoundError, SessionNotFoundError
from src.eg_game.registry import GameRegistry
from src.eg_game.submission import ActionSubmitter
from src.eg_market.application.schemas import (
    BookEntryOut,
    OrderBookOut,
    OrderRequest,
    TradeListOut,
    TradeOut,
)
from src.eg_market.engine.engine import DoubleAuctionEngine
from src.eg_market.engine.matching_algo import calculate_market_stats
from src.eg_session.domain.repository import RoundRepositoryProtocol, SessionRepositoryProtocol
from src.eg_session.infrastructure.persistence import RoundRepository, SessionRepository


class GameApplicationService:
    def __init__(
        self,
        submitter: ActionSubmitter,
        registry: GameRegistry,
        session_repo: SessionRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
    ) -> None:
        self._submitter = submitter
        self._registry = registry
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()

    async def submit_order(
        self, side: OrderSide, req: OrderRequest, db: AsyncSession
    ) -> dict[str, Any]:
        return await self.submit_action(
            req.round_id, req.player_id, {"type": side.value, "price": req.price}, db
        )

    async def submit_action(
        self, round_id: str, player_id: str, action: dict[str, Any], db: AsyncSession
    ) -> dict[str, Any]:
        result = await self._submitter.submit(round_id, player_id, action, db)
        result.raise_for_error()
        return result.data or {}

    async def get_order_book(self, round_id: str, db: AsyncSession) -> OrderBookOut:
        engine = await self._da_engine(round_id, db)
        book = await engine.get_order_book(round_id, db)
        return OrderBookOut(
            round_id=round_id,
            bids=[BookEntryOut(**_book_fields(b)) for b in book["bids"]],
            asks=[BookEntryOut(**_book_fields(a)) for a in book["asks"]],
        )

    async def list_trades(self, round_id: str, db: AsyncSession) -> TradeListOut:
        engine = await self._da_engine(round_id, db)
        trades = await engine.list_trades(round_id, db)
        stats = calculate_market_stats(trades)
        return TradeListOut(
            round_id=round_id,
            trades=[TradeOut.from_domain(t) for t in trades],
            total_trades=stats.total_trades,
            average_price=stats.average_price,
            total_surplus=stats.total_surplus,
        )

    async def _da_engine(self, round_id: str, db: AsyncSession) -> DoubleAuctionEngine:
        rnd = await self._round_repo.get_by_id(round_id, db)
        if rnd is None:
            raise RoundNotFoundError(round_id)
        session = await self._session_repo.get_by_id(rnd.session_id, db)
        if session is None:
            raise SessionNotFoundError(rnd.session_id)
        engine = self._registry.get(session.game_type)
        if not isinstance(engine, DoubleAuctionEngine):
            raise InvalidActionError(f"{session.game_type} has no order book")
        return engine


def _book_fields(entry: dict[str, Any]) -> dict[str, Any]:
    return {k: entry[k] for k in ("id", "player_id", "price", "created_at")}
