"""MarketRepository — raw SQL persistence implementation."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_market.domain.models import BookEntry, MatchedTrade, Trade

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_BID_SQL = text("""
    INSERT INTO bids (id, round_id, player_id, price, is_active, arrival_seq, created_at)
    VALUES (:id, :round_id, :player_id, :price, true, :arrival_seq, :created_at)
""")

_INSERT_ASK_SQL = text("""
    INSERT INTO asks (id, round_id, player_id, price, is_active, arrival_seq, created_at)
    VALUES (:id, :round_id, :player_id, :price, true, :arrival_seq, :created_at)
""")

_LIST_ACTIVE_BIDS_SQL = text("""
    SELECT b.id, b.round_id, b.player_id, b.price, b.arrival_seq, b.created_at,
           p.valuation AS private_value
    FROM bids b JOIN players p ON p.id = b.player_id
    WHERE b.round_id = :round_id AND b.is_active = true
    ORDER BY b.price DESC, b.created_at ASC, b.arrival_seq ASC
""")

_LIST_ACTIVE_ASKS_SQL = text("""
    SELECT a.id, a.round_id, a.player_id, a.price, a.arrival_seq, a.created_at,
           p.production_cost AS private_value
    FROM asks a JOIN players p ON p.id = a.player_id
    WHERE a.round_id = :round_id AND a.is_active = true
    ORDER BY a.price ASC, a.created_at ASC, a.arrival_seq ASC
""")

_DEACTIVATE_BID_SQL = text(
    "UPDATE bids SET is_active = false WHERE id = :id AND is_active = true RETURNING id"
)

_DEACTIVATE_ASK_SQL = text(
    "UPDATE asks SET is_active = false WHERE id = :id AND is_active = true RETURNING id"
)

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (round_id, buyer_id, seller_id, bid_id, ask_id,
                        price, buyer_profit, seller_profit)
    VALUES (:round_id, :buyer_id, :seller_id, :bid_id, :ask_id,
            :price, :buyer_profit, :seller_profit)
    RETURNING id, round_id, buyer_id, seller_id, bid_id, ask_id,
              price, buyer_profit, seller_profit, created_at
""")

_CREDIT_PROFIT_SQL = text(
    "UPDATE players SET total_profit = total_profit + :amount WHERE id = :id"
)

_DEACTIVATE_ROUND_BIDS_SQL = text(
    "UPDATE bids SET is_active = false WHERE round_id = :round_id AND is_active = true"
)

_DEACTIVATE_ROUND_ASKS_SQL = text(
    "UPDATE asks SET is_active = false WHERE round_id = :round_id AND is_active = true"
)

_LIST_TRADES_SQL = text("""
    SELECT id, round_id, buyer_id, seller_id, bid_id, ask_id,
           price, buyer_profit, seller_profit, created_at
    FROM trades WHERE round_id = :round_id
    ORDER BY created_at ASC
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_entry(row: Any) -> BookEntry:
    return BookEntry(
        id=str(row.id),
        round_id=str(row.round_id),
        player_id=str(row.player_id),
        price=float(row.price),
        created_at=row.created_at,
        private_value=float(row.private_value or 0),
        arrival_seq=row.arrival_seq or 0,
    )


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=str(row.id),
        round_id=str(row.round_id),
        buyer_id=str(row.buyer_id),
        seller_id=str(row.seller_id),
        bid_id=str(row.bid_id),
        ask_id=str(row.ask_id),
        price=float(row.price),
        buyer_profit=float(row.buyer_profit),
        seller_profit=float(row.seller_profit),
        created_at=row.created_at,
    )


def _entry_params(entry: BookEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "round_id": entry.round_id,
        "player_id": entry.player_id,
        "price": entry.price,
        "arrival_seq": entry.arrival_seq,
        "created_at": entry.created_at,
    }


class _StaleOrderError(Exception):
    """One side of a proposed trade was already deactivated."""


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    """Concrete implementation of MarketRepositoryProtocol using raw SQL."""

    async def save_bid(self, entry: BookEntry, db: AsyncSession) -> None:
        await db.execute(_INSERT_BID_SQL, _entry_params(entry))

    async def save_ask(self, entry: BookEntry, db: AsyncSession) -> None:
        await db.execute(_INSERT_ASK_SQL, _entry_params(entry))

    async def list_active_bids(self, round_id: str, db: AsyncSession) -> list[BookEntry]:
        rows = (await db.execute(_LIST_ACTIVE_BIDS_SQL, {"round_id": round_id})).fetchall()
        return [_row_to_entry(r) for r in rows]

    async def list_active_asks(self, round_id: str, db: AsyncSession) -> list[BookEntry]:
        rows = (await db.execute(_LIST_ACTIVE_ASKS_SQL, {"round_id": round_id})).fetchall()
        return [_row_to_entry(r) for r in rows]

    async def execute_trade(
        self,
        match: MatchedTrade,
        buyer_profit: float,
        seller_profit: float,
        db: AsyncSession,
    ) -> Trade | None:
        try:
            async with db.begin_nested():
                if (await db.execute(_DEACTIVATE_BID_SQL, {"id": match.bid.id})).fetchone() is None:
                    raise _StaleOrderError(match.bid.id)
                if (await db.execute(_DEACTIVATE_ASK_SQL, {"id": match.ask.id})).fetchone() is None:
                    raise _StaleOrderError(match.ask.id)
                row = (
                    await db.execute(
                        _INSERT_TRADE_SQL,
                        {
                            "round_id": match.bid.round_id,
                            "buyer_id": match.bid.player_id,
                            "seller_id": match.ask.player_id,
                            "bid_id": match.bid.id,
                            "ask_id": match.ask.id,
                            "price": match.price,
                            "buyer_profit": buyer_profit,
                            "seller_profit": seller_profit,
                        },
                    )
                ).fetchone()
                await db.execute(
                    _CREDIT_PROFIT_SQL, {"id": match.bid.player_id, "amount": buyer_profit}
                )
                await db.execute(
                    _CREDIT_PROFIT_SQL, {"id": match.ask.player_id, "amount": seller_profit}
                )
        except _StaleOrderError:
            return None
        return _row_to_trade(row)

    async def deactivate_all_for_round(self, round_id: str, db: AsyncSession) -> int:
        bids = await db.execute(_DEACTIVATE_ROUND_BIDS_SQL, {"round_id": round_id})
        asks = await db.execute(_DEACTIVATE_ROUND_ASKS_SQL, {"round_id": round_id})
        return (bids.rowcount or 0) + (asks.rowcount or 0)

    async def list_trades(self, round_id: str, db: AsyncSession) -> list[Trade]:
        rows = (await db.execute(_LIST_TRADES_SQL, {"round_id": round_id})).fetchall()
        return [_row_to_trade(r) for r in rows]
