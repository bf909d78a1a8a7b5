# tests/unit/test_market_persistence.py
"""Unit tests for MarketRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.eg_market.domain.models import BookEntry, MatchedTrade
from src.eg_market.infrastructure.persistence import MarketRepository


def _make_entry_row(**kwargs):
    """Build a mock bids/asks row joined with the owner's private value."""
    row = MagicMock()
    row.id = kwargs.get("id", "bid-1")
    row.round_id = kwargs.get("round_id", "round-1")
    row.player_id = kwargs.get("player_id", "player-1")
    row.price = kwargs.get("price", Decimal("42.50"))
    row.arrival_seq = kwargs.get("arrival_seq", 7)
    row.created_at = datetime.now(UTC)
    row.private_value = kwargs.get("private_value", Decimal("60"))
    return row


def _make_trade_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "trade-1")
    row.round_id = "round-1"
    row.buyer_id = "buyer-1"
    row.seller_id = "seller-1"
    row.bid_id = "bid-1"
    row.ask_id = "ask-1"
    row.price = Decimal("45")
    row.buyer_profit = Decimal("15")
    row.seller_profit = Decimal("15")
    row.created_at = datetime.now(UTC)
    return row


def _make_match() -> MatchedTrade:
    now = datetime.now(UTC)
    bid = BookEntry(id="bid-1", round_id="round-1", player_id="buyer-1", price=50, created_at=now)
    ask = BookEntry(id="ask-1", round_id="round-1", player_id="seller-1", price=40, created_at=now)
    return MatchedTrade(bid=bid, ask=ask, price=45, buyer_profit=15, seller_profit=15)


def _result(fetchone=None, fetchall=None, rowcount=None):
    result = MagicMock()
    result.fetchone.return_value = fetchone
    result.fetchall.return_value = fetchall or []
    result.rowcount = rowcount
    return result


@pytest.fixture
def db():
    session = MagicMock()
    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=None)
    nested.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested = MagicMock(return_value=nested)
    return session


class TestListActiveOrders:
    @pytest.mark.asyncio
    async def test_maps_rows_to_book_entries(self, db):
        db.execute = AsyncMock(return_value=_result(fetchall=[_make_entry_row()]))

        bids = await MarketRepository().list_active_bids("round-1", db)

        assert len(bids) == 1
        assert bids[0].price == 42.5
        assert isinstance(bids[0].price, float)
        assert bids[0].private_value == 60.0
        assert bids[0].arrival_seq == 7

    @pytest.mark.asyncio
    async def test_missing_private_value_defaults_to_zero(self, db):
        row = _make_entry_row(private_value=None)
        db.execute = AsyncMock(return_value=_result(fetchall=[row]))

        asks = await MarketRepository().list_active_asks("round-1", db)

        assert asks[0].private_value == 0.0


class TestExecuteTrade:
    @pytest.mark.asyncio
    async def test_inserts_trade_and_credits_both_players(self, db):
        db.execute = AsyncMock(
            side_effect=[
                _result(fetchone=("bid-1",)),
                _result(fetchone=("ask-1",)),
                _result(fetchone=_make_trade_row()),
                _result(),
                _result(),
            ]
        )

        trade = await MarketRepository().execute_trade(_make_match(), 15.0, 15.0, db)

        assert trade is not None
        assert trade.price == 45.0
        assert trade.buyer_profit == 15.0
        assert db.execute.await_count == 5
        credit_params = [c.args[1] for c in db.execute.await_args_list[3:]]
        assert credit_params == [
            {"id": "buyer-1", "amount": 15.0},
            {"id": "seller-1", "amount": 15.0},
        ]

    @pytest.mark.asyncio
    async def test_stale_bid_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=None))

        trade = await MarketRepository().execute_trade(_make_match(), 15.0, 15.0, db)

        assert trade is None
        assert db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_ask_returns_none_before_insert(self, db):
        db.execute = AsyncMock(
            side_effect=[_result(fetchone=("bid-1",)), _result(fetchone=None)]
        )

        trade = await MarketRepository().execute_trade(_make_match(), 15.0, 15.0, db)

        assert trade is None
        assert db.execute.await_count == 2


class TestDeactivateAllForRound:
    @pytest.mark.asyncio
    async def test_counts_both_sides(self, db):
        db.execute = AsyncMock(side_effect=[_result(rowcount=2), _result(rowcount=1)])
        assert await MarketRepository().deactivate_all_for_round("round-1", db) == 3

    @pytest.mark.asyncio
    async def test_second_call_is_a_no_op(self, db):
        db.execute = AsyncMock(side_effect=[_result(rowcount=0), _result(rowcount=0)])
        assert await MarketRepository().deactivate_all_for_round("round-1", db) == 0


class TestListTrades:
    @pytest.mark.asyncio
    async def test_maps_rows(self, db):
        db.execute = AsyncMock(return_value=_result(fetchall=[_make_trade_row(id="t-9")]))

        trades = await MarketRepository().list_trades("round-1", db)

        assert [t.id for t in trades] == ["t-9"]
        assert trades[0].seller_profit == 15.0
