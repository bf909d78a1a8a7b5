"""Tests for the DA submission/trade engine, against in-memory repositories."""

import asyncio

import pytest

from src.eg_common.errors import (
    AskBelowCostError,
    BidExceedsValuationError,
    PlayerNotFoundError,
    PriceControlViolationError,
    RoundNotActiveError,
)
from src.eg_common.locks import RoundLocks
from src.eg_gateway.broadcaster import EventName
from src.eg_market.domain.models import BookEntry
from src.eg_market.engine.engine import DoubleAuctionEngine
from tests.fakes import (
    FakeDb,
    FakeMarketRepository,
    FakePlayerRepository,
    FakeRoundRepository,
    FakeSessionRepository,
    FakeStore,
    RecordingBroadcaster,
    build_fake_stack,
)


def _setup(game_type: str = "double_auction", game_config: dict | None = None):
    stack = build_fake_stack()
    store = stack.store
    session = store.add_session(game_type=game_type, status="active",
                                game_config=game_config or {})
    rnd = store.add_round(session, 1, "active")
    b60 = store.add_player(session, "buyer", name="B60", valuation=60.0)
    b50 = store.add_player(session, "buyer", name="B50", valuation=50.0)
    s30 = store.add_player(session, "seller", name="S30", production_cost=30.0)
    s40 = store.add_player(session, "seller", name="S40", production_cost=40.0)
    engine = stack.registry.get(game_type)
    return stack, engine, session, rnd, (b60, b50, s30, s40)


class TestSubmission:
    async def test_bid_is_accepted_and_broadcast_without_private_value(self) -> None:
        stack, engine, session, rnd, (b60, *_) = _setup()
        db = FakeDb()
        outcome = await engine.submit_bid(rnd.id, b60.id, 40.0, db)

        assert outcome.trades == []
        assert stack.store.bids[outcome.entry.id].is_active
        assert db.commits >= 1
        payload = stack.broadcaster.payloads(EventName.BID_SUBMITTED)[0]
        assert payload["bid"]["price"] == 40.0
        assert "private_value" not in payload["bid"]
        assert "valuation" not in payload["player"]

    async def test_bid_above_valuation_rejected(self) -> None:
        _, engine, _, rnd, (b60, *_) = _setup()
        db = FakeDb()
        with pytest.raises(BidExceedsValuationError):
            await engine.submit_bid(rnd.id, b60.id, 61.0, db)
        assert db.rollbacks == 1

    async def test_ask_below_cost_rejected(self) -> None:
        _, engine, _, rnd, (_, _, s30, _) = _setup()
        with pytest.raises(AskBelowCostError):
            await engine.submit_ask(rnd.id, s30.id, 29.0, FakeDb())

    @pytest.mark.parametrize("status", ["waiting", "completed"])
    async def test_bid_against_inactive_round_rejected(self, status: str) -> None:
        stack, engine, session, _, (b60, *_) = _setup()
        other = stack.store.add_round(session, 2, status)
        with pytest.raises(RoundNotActiveError) as exc:
            await engine.submit_bid(other.id, b60.id, 10.0, FakeDb())
        assert exc.value.http_status == 409
        assert stack.store.bids == {}

    async def test_player_from_other_session_rejected(self) -> None:
        stack, engine, _, rnd, _ = _setup()
        other_session = stack.store.add_session(code="OTHER1", status="active")
        stranger = stack.store.add_player(other_session, "buyer", valuation=99.0)
        with pytest.raises(PlayerNotFoundError):
            await engine.submit_bid(rnd.id, stranger.id, 10.0, FakeDb())

    async def test_handle_action_wraps_errors_in_result(self) -> None:
        _, engine, session, rnd, (b60, *_) = _setup()
        result = await engine.handle_action(
            rnd.id, b60.id, {"type": "bid", "price": 500}, session.code, FakeDb()
        )
        assert result.success is False
        assert result.error_code == 4002
        assert result.http_status == 422

    async def test_handle_action_rejects_malformed_payload(self) -> None:
        _, engine, session, rnd, (b60, *_) = _setup()
        result = await engine.handle_action(
            rnd.id, b60.id, {"type": "bid", "price": "lots"}, session.code, FakeDb()
        )
        assert result.success is False
        assert result.error_code == 5002


class TestContinuousMatching:
    async def test_crossing_orders_trade_at_midpoint(self) -> None:
        stack, engine, session, rnd, (b60, _, s30, _) = _setup()
        await engine.submit_bid(rnd.id, b60.id, 50.0, FakeDb())
        outcome = await engine.submit_ask(rnd.id, s30.id, 40.0, FakeDb())

        assert len(outcome.trades) == 1
        trade = outcome.trades[0]
        assert trade.price == 45.0
        assert trade.buyer_profit == 15.0
        assert trade.seller_profit == 15.0
        assert stack.store.players[b60.id].total_profit == 15.0
        assert stack.store.players[s30.id].total_profit == 15.0
        assert not any(b.is_active for b in stack.store.bids.values())
        assert not any(a.is_active for a in stack.store.asks.values())
        event = stack.broadcaster.payloads(EventName.TRADE_EXECUTED)[0]
        assert set(event) >= {"trade", "buyer", "seller"}

    async def test_end_to_end_full_value_orders(self) -> None:
        stack, engine, session, rnd, (b60, b50, s30, s40) = _setup()
        await engine.submit_bid(rnd.id, b60.id, 60.0, FakeDb())
        await engine.submit_bid(rnd.id, b50.id, 50.0, FakeDb())
        await engine.submit_ask(rnd.id, s30.id, 30.0, FakeDb())
        await engine.submit_ask(rnd.id, s40.id, 40.0, FakeDb())

        trades = await engine.list_trades(rnd.id, FakeDb())
        assert [t.price for t in trades] == [45.0, 45.0]
        assert {(t.buyer_id, t.seller_id) for t in trades} == {(b60.id, s30.id), (b50.id, s40.id)}
        assert sum(t.buyer_profit + t.seller_profit for t in trades) == 40.0

    async def test_no_order_trades_twice_under_concurrent_submissions(self) -> None:
        stack, engine, session, rnd, (b60, b50, s30, s40) = _setup()
        await asyncio.gather(
            engine.submit_bid(rnd.id, b60.id, 55.0, FakeDb()),
            engine.submit_bid(rnd.id, b50.id, 45.0, FakeDb()),
            engine.submit_ask(rnd.id, s30.id, 35.0, FakeDb()),
            engine.submit_ask(rnd.id, s40.id, 42.0, FakeDb()),
        )
        trades = stack.store.trades
        assert len(trades) == 2
        assert len({t.bid_id for t in trades}) == 2
        assert len({t.ask_id for t in trades}) == 2

    async def test_round_end_deactivates_book_idempotently(self) -> None:
        stack, engine, session, rnd, (b60, _, _, s40) = _setup()
        await engine.submit_bid(rnd.id, b60.id, 30.0, FakeDb())
        await engine.submit_ask(rnd.id, s40.id, 45.0, FakeDb())

        result = await engine.process_round_end(rnd.id, session.code, FakeDb())
        assert result.summary["totalTrades"] == 0
        book = await engine.get_order_book(rnd.id, FakeDb())
        assert book == {"bids": [], "asks": []}

        again = await FakeMarketRepository(stack.store).deactivate_all_for_round(rnd.id, FakeDb())
        assert again == 0

    async def test_round_end_reports_player_results(self) -> None:
        _, engine, session, rnd, (b60, _, s30, _) = _setup()
        await engine.submit_bid(rnd.id, b60.id, 50.0, FakeDb())
        await engine.submit_ask(rnd.id, s30.id, 40.0, FakeDb())
        result = await engine.process_round_end(rnd.id, session.code, FakeDb())
        assert result.summary["averagePrice"] == 45.0
        assert result.summary["totalSurplus"] == 30.0
        assert {r.player_id for r in result.player_results} == {b60.id, s30.id}


class TestVariants:
    async def test_tax_on_buyer_reduces_buyer_profit(self) -> None:
        stack, engine, session, rnd, (b60, _, s30, _) = _setup(
            "double_auction_tax", {"taxType": "buyer", "taxAmount": 5}
        )
        await engine.submit_bid(rnd.id, b60.id, 50.0, FakeDb())
        outcome = await engine.submit_ask(rnd.id, s30.id, 40.0, FakeDb())
        trade = outcome.trades[0]
        assert trade.price == 45.0
        assert trade.buyer_profit == 10.0   # 60 - 45 - 5
        assert trade.seller_profit == 15.0
        event = stack.broadcaster.payloads(EventName.TRADE_EXECUTED)[0]
        assert event["taxInfo"] == {"taxType": "buyer", "taxAmount": 5.0}

    async def test_price_ceiling_rejects_high_bid(self) -> None:
        _, engine, _, rnd, (b60, *_) = _setup(
            "double_auction_price_controls", {"controlType": "ceiling", "controlPrice": 35}
        )
        with pytest.raises(PriceControlViolationError):
            await engine.submit_bid(rnd.id, b60.id, 36.0, FakeDb())
        outcome = await engine.submit_bid(rnd.id, b60.id, 35.0, FakeDb())
        assert outcome.entry.price == 35.0

    async def test_price_controls_state_includes_control(self) -> None:
        _, engine, _, rnd, _ = _setup("double_auction_price_controls", {"controlPrice": 30})
        state = await engine.get_game_state(rnd.id, None, FakeDb())
        assert state["priceControl"] == {"controlType": "ceiling", "controlPrice": 30.0}


class _StaleBookRepository(FakeMarketRepository):
    """Returns the book as it was before another writer consumed it."""

    def __init__(self, store: FakeStore) -> None:
        super().__init__(store)
        self.snapshot: list[BookEntry] | None = None

    async def list_active_bids(self, round_id: str, db) -> list[BookEntry]:
        if self.snapshot is not None:
            return self.snapshot
        return await super().list_active_bids(round_id, db)


class TestStaleMatches:
    async def test_stale_match_is_skipped_without_trade(self) -> None:
        store = FakeStore()
        session = store.add_session(status="active")
        rnd = store.add_round(session, 1, "active")
        buyer = store.add_player(session, "buyer", valuation=60.0)
        seller = store.add_player(session, "seller", production_cost=30.0)
        repo = _StaleBookRepository(store)
        engine = DoubleAuctionEngine(
            RecordingBroadcaster(),
            RoundLocks(),
            market_repo=repo,
            session_repo=FakeSessionRepository(store),
            round_repo=FakeRoundRepository(store),
            player_repo=FakePlayerRepository(store),
        )
        await engine.submit_bid(rnd.id, buyer.id, 50.0, FakeDb())
        repo.snapshot = await repo.list_active_bids(rnd.id, FakeDb())
        for bid in store.bids.values():
            bid.is_active = False

        outcome = await engine.submit_ask(rnd.id, seller.id, 40.0, FakeDb())

        assert outcome.trades == []
        assert store.trades == []
        assert store.players[buyer.id].total_profit == 0.0
