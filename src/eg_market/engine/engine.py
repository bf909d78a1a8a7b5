"""DoubleAuctionEngine — order acceptance, continuous matching and round close for DA games.

Every read or write of a round's book happens under that round's lock, the
same lock the round lifecycle takes to end the round. So an order either lands
while the round is active (and is matched or deactivated at round end) or is
rejected with RoundNotActiveError; it is never accepted into a closed round.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_common.enums import GameType, OrderSide
from src.eg_common.errors import (
    AppError,
    InvalidActionError,
    PlayerNotFoundError,
    SessionNotFoundError,
)
from src.eg_common.id_generator import generate_id, next_arrival_seq
from src.eg_common.locks import RoundLocks
from src.eg_common.timeutils import utc_now
from src.eg_game.actions import AskAction, BidAction, parse_action
from src.eg_game.engine import ActionResult, PlayerResult, RoundResult
from src.eg_gateway.broadcaster import BroadcastGateway, EventName, market_room
from src.eg_market.domain.models import BookEntry, MatchedTrade, Trade
from src.eg_market.domain.repository import MarketRepositoryProtocol
from src.eg_market.engine.matching_algo import calculate_market_stats, match_orders
from src.eg_market.infrastructure.persistence import MarketRepository
from src.eg_market.rules.price_controls import PriceControl, check_price_control
from src.eg_market.rules.private_value import validate_ask, validate_bid
from src.eg_market.rules.tax import TaxPolicy
from src.eg_session.domain.models import Player, Round, Session
from src.eg_session.domain.repository import (
    PlayerRepositoryProtocol,
    RoundRepositoryProtocol,
    SessionRepositoryProtocol,
)
from src.eg_session.domain.state_machine import check_accepts_submissions
from src.eg_session.infrastructure.persistence import (
    PlayerRepository,
    RoundRepository,
    SessionRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    entry: BookEntry
    trades: list[Trade] = field(default_factory=list)


def public_entry(entry: BookEntry) -> dict[str, Any]:
    """Order as other players may see it: no private valuation/cost."""
    return {
        "id": entry.id,
        "round_id": entry.round_id,
        "player_id": entry.player_id,
        "price": entry.price,
        "created_at": entry.created_at,
    }


class DoubleAuctionEngine:
    game_type: GameType = GameType.DOUBLE_AUCTION

    def __init__(
        self,
        broadcaster: BroadcastGateway,
        locks: RoundLocks,
        market_repo: MarketRepositoryProtocol | None = None,
        session_repo: SessionRepositoryProtocol | None = None,
        round_repo: RoundRepositoryProtocol | None = None,
        player_repo: PlayerRepositoryProtocol | None = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._locks = locks
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._round_repo: RoundRepositoryProtocol = round_repo or RoundRepository()
        self._player_repo: PlayerRepositoryProtocol = player_repo or PlayerRepository()

    # ------------------------------------------------------------------
    # Variant hooks
    # ------------------------------------------------------------------

    def check_order(self, side: OrderSide, price: float, player: Player, session: Session) -> None:
        if side == OrderSide.BID:
            validate_bid(price, player)
        else:
            validate_ask(price, player)

    def trade_profits(self, match: MatchedTrade, session: Session) -> tuple[float, float]:
        return match.buyer_profit, match.seller_profit

    def trade_event_extras(self, session: Session) -> dict[str, Any]:
        return {}

    def state_extras(self, session: Session) -> dict[str, Any]:
        return {}

    # ------------------------------------------------------------------
    # Engine contract
    # ------------------------------------------------------------------

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
            if isinstance(parsed, BidAction):
                outcome = await self.submit_bid(round_id, player_id, parsed.price, db)
            elif isinstance(parsed, AskAction):
                outcome = await self.submit_ask(round_id, player_id, parsed.price, db)
            else:
                raise InvalidActionError(f"unsupported action type {parsed.type!r}")
        except AppError as exc:
            logger.info(
                "DA action rejected: session=%s round=%s player=%s code=%d %s",
                session_code, round_id, player_id, exc.code, exc.message,
            )
            return ActionResult.from_error(exc)
        return ActionResult.ok(
            {"order_id": outcome.entry.id, "trades": [t.id for t in outcome.trades]}
        )

    async def submit_bid(
        self, round_id: str, player_id: str, price: float, db: AsyncSession
    ) -> SubmissionOutcome:
        return await self._submit(OrderSide.BID, round_id, player_id, price, db)

    async def submit_ask(
        self, round_id: str, player_id: str, price: float, db: AsyncSession
    ) -> SubmissionOutcome:
        return await self._submit(OrderSide.ASK, round_id, player_id, price, db)

    async def process_round_end(
        self, round_id: str, session_code: str, db: AsyncSession
    ) -> RoundResult:
        """Deactivate the remaining book and summarise the round's trades.

        Caller holds the round lock and owns the transaction.
        """
        remaining = await self._market_repo.deactivate_all_for_round(round_id, db)
        trades = await self._market_repo.list_trades(round_id, db)
        stats = calculate_market_stats(trades)
        logger.info(
            "DA round %s closed: %d trades, %d unmatched orders deactivated",
            round_id, stats.total_trades, remaining,
        )
        results: list[PlayerResult] = []
        for t in trades:
            results.append(
                PlayerResult(t.buyer_id, t.buyer_profit, {"role": "buyer", "tradePrice": t.price})
            )
            results.append(
                PlayerResult(t.seller_id, t.seller_profit, {"role": "seller", "tradePrice": t.price})
            )
        return RoundResult(
            player_results=results,
            summary={
                "totalTrades": stats.total_trades,
                "averagePrice": stats.average_price,
                "totalVolume": stats.total_volume,
                "totalSurplus": stats.total_surplus,
                "trades": [asdict(t) for t in trades],
            },
        )

    async def get_game_state(
        self, round_id: str, player_id: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        state = await self.get_order_book(round_id, db)
        state["trades"] = [asdict(t) for t in await self._market_repo.list_trades(round_id, db)]
        rnd = await self._round_repo.get_by_id(round_id, db)
        if rnd is not None:
            session = await self._session_repo.get_by_id(rnd.session_id, db)
            if session is not None:
                state.update(self.state_extras(session))
        return state

    async def get_order_book(self, round_id: str, db: AsyncSession) -> dict[str, Any]:
        bids = await self._market_repo.list_active_bids(round_id, db)
        asks = await self._market_repo.list_active_asks(round_id, db)
        return {
            "bids": [public_entry(b) for b in bids],
            "asks": [public_entry(a) for a in asks],
        }

    async def list_trades(self, round_id: str, db: AsyncSession) -> list[Trade]:
        return await self._market_repo.list_trades(round_id, db)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _submit(
        self,
        side: OrderSide,
        round_id: str,
        player_id: str,
        price: float,
        db: AsyncSession,
    ) -> SubmissionOutcome:
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

                self.check_order(side, price, player, session)

                entry = BookEntry(
                    id=generate_id(),
                    round_id=round_id,
                    player_id=player_id,
                    price=float(price),
                    created_at=utc_now(),
                    private_value=(
                        player.valuation if side == OrderSide.BID else player.production_cost
                    ) or 0.0,
                    arrival_seq=next_arrival_seq(),
                )
                if side == OrderSide.BID:
                    await self._market_repo.save_bid(entry, db)
                else:
                    await self._market_repo.save_ask(entry, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

            if side == OrderSide.BID:
                event, key = EventName.BID_SUBMITTED, "bid"
            else:
                event, key = EventName.ASK_SUBMITTED, "ask"
            await self._broadcaster.emit(
                market_room(session.code),
                event,
                {key: public_entry(entry), "player": player.public_view()},
            )

            trades = await self._run_matching(rnd, session, db)
        return SubmissionOutcome(entry=entry, trades=trades)

    async def _run_matching(self, rnd: Round, session: Session, db: AsyncSession) -> list[Trade]:
        """One matching pass over the round's active book. Caller holds the round lock."""
        try:
            bids = await self._market_repo.list_active_bids(rnd.id, db)
            asks = await self._market_repo.list_active_asks(rnd.id, db)
            executed: list[Trade] = []
            for match in match_orders(bids, asks):
                buyer_profit, seller_profit = self.trade_profits(match, session)
                trade = await self._market_repo.execute_trade(match, buyer_profit, seller_profit, db)
                if trade is None:
                    logger.warning(
                        "skipped stale match bid=%s ask=%s in round %s",
                        match.bid.id, match.ask.id, rnd.id,
                    )
                    continue
                executed.append(trade)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        for trade in executed:
            await self._broadcast_trade(trade, session, db)
        return executed

    async def _broadcast_trade(self, trade: Trade, session: Session, db: AsyncSession) -> None:
        buyer = await self._player_repo.get_by_id(trade.buyer_id, db)
        seller = await self._player_repo.get_by_id(trade.seller_id, db)
        payload: dict[str, Any] = {
            "trade": asdict(trade),
            "buyer": buyer.public_view() if buyer else {"id": trade.buyer_id},
            "seller": seller.public_view() if seller else {"id": trade.seller_id},
        }
        payload.update(self.trade_event_extras(session))
        await self._broadcaster.emit(market_room(session.code), EventName.TRADE_EXECUTED, payload)


class TaxSubsidyEngine(DoubleAuctionEngine):
    """DA with a per-unit tax (or subsidy) on buyers or sellers."""

    game_type = GameType.DOUBLE_AUCTION_TAX

    def trade_profits(self, match: MatchedTrade, session: Session) -> tuple[float, float]:
        return TaxPolicy.from_config(session.game_config).apply(match)

    def trade_event_extras(self, session: Session) -> dict[str, Any]:
        return {"taxInfo": TaxPolicy.from_config(session.game_config).as_dict()}

    def state_extras(self, session: Session) -> dict[str, Any]:
        return {"taxInfo": TaxPolicy.from_config(session.game_config).as_dict()}


class PriceControlsEngine(DoubleAuctionEngine):
    """DA with a binding price ceiling or floor on every order."""

    game_type = GameType.DOUBLE_AUCTION_PRICE_CONTROLS

    def check_order(self, side: OrderSide, price: float, player: Player, session: Session) -> None:
        check_price_control(price, PriceControl.from_config(session.game_config))
        super().check_order(side, price, player, session)

    def state_extras(self, session: Session) -> dict[str, Any]:
        return {"priceControl": PriceControl.from_config(session.game_config).as_dict()}
