"""In-memory stand-ins for the repositories and the broadcast gateway.

They honour the same contracts as the SQL repositories: conditional status
transitions, capacity-checked seating, all-or-nothing trade execution. Reads
return copies, like rows fetched from a database would be.
"""

import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from src.eg_bots.dispatcher import BotDispatcher, BotTiming
from src.eg_common.enums import GameType
from src.eg_common.locks import RoundLocks
from src.eg_game.recorded import RecordedActionEngine
from src.eg_game.registry import GameRegistry
from src.eg_game.repository import GameActionRecord
from src.eg_game.submission import ActionSubmitter
from src.eg_market.domain.models import BookEntry, MatchedTrade, Trade
from src.eg_market.engine.engine import (
    DoubleAuctionEngine,
    PriceControlsEngine,
    TaxSubsidyEngine,
)
from src.eg_session.application.service import RoundLifecycleService
from src.eg_session.domain.models import Player, Round, Session
from src.eg_session.domain.repository import RolePolicy

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


@dataclass
class FakeStore:
    sessions: dict[str, Session] = field(default_factory=dict)
    rounds: dict[str, Round] = field(default_factory=dict)
    players: dict[str, Player] = field(default_factory=dict)
    bids: dict[str, BookEntry] = field(default_factory=dict)
    asks: dict[str, BookEntry] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)
    actions: list[GameActionRecord] = field(default_factory=list)
    _seq: int = 0

    def next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def tick(self) -> datetime:
        self._seq += 1
        return _EPOCH + timedelta(milliseconds=self._seq)

    # -- seeding helpers ---------------------------------------------------

    def add_session(self, **kwargs: Any) -> Session:
        defaults: dict[str, Any] = {
            "id": self.next_id("sess"),
            "code": "ABC123",
            "game_type": "double_auction",
            "status": "waiting",
            "market_size": 4,
            "num_rounds": 3,
            "time_per_round": 120,
            "valuation_min": 10,
            "valuation_max": 60,
            "valuation_increments": 10,
            "cost_min": 10,
            "cost_max": 60,
            "cost_increments": 10,
        }
        defaults.update(kwargs)
        session = Session(**defaults)
        self.sessions[session.id] = session
        return session

    def add_round(self, session: Session, round_number: int = 1, status: str = "active") -> Round:
        rnd = Round(
            id=self.next_id("round"),
            session_id=session.id,
            round_number=round_number,
            status=status,
            started_at=_EPOCH if status == "active" else None,
        )
        self.rounds[rnd.id] = rnd
        return rnd

    def add_player(self, session: Session, role: str, **kwargs: Any) -> Player:
        player = Player(
            id=kwargs.pop("id", None) or self.next_id("player"),
            session_id=session.id,
            role=role,
            created_at=kwargs.pop("created_at", None) or self.tick(),
            **kwargs,
        )
        self.players[player.id] = player
        return player


class FakeDb:
    """Counts commits and rollbacks; the fakes write straight to the store."""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeSessionFactory:
    """`async with factory() as db` yields a fresh FakeDb each time."""

    def __init__(self) -> None:
        self.opened: list[FakeDb] = []

    def __call__(self) -> "FakeSessionFactory":
        return self

    async def __aenter__(self) -> FakeDb:
        db = FakeDb()
        self.opened.append(db)
        return db

    async def __aexit__(self, *exc: Any) -> None:
        return None


class FakeSessionRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, session_id: str, db: Any) -> Session | None:
        s = self.store.sessions.get(session_id)
        return replace(s) if s else None

    async def get_by_code(self, code: str, db: Any) -> Session | None:
        for s in self.store.sessions.values():
            if s.code == code:
                return replace(s)
        return None

    async def transition_status(
        self,
        session_id: str,
        from_statuses: tuple[str, ...],
        to_status: str,
        db: Any,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool:
        s = self.store.sessions.get(session_id)
        if s is None or s.status not in from_statuses:
            return False
        s.status = to_status
        s.started_at = started_at or s.started_at
        s.ended_at = ended_at or s.ended_at
        return True

    async def set_current_round(self, session_id: str, round_number: int, db: Any) -> None:
        self.store.sessions[session_id].current_round = round_number


class FakeRoundRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, round_id: str, db: Any) -> Round | None:
        r = self.store.rounds.get(round_id)
        return replace(r) if r else None

    async def get_by_number(self, session_id: str, round_number: int, db: Any) -> Round | None:
        for r in self.store.rounds.values():
            if r.session_id == session_id and r.round_number == round_number:
                return replace(r)
        return None

    async def list_by_session(self, session_id: str, db: Any) -> list[Round]:
        rounds = [replace(r) for r in self.store.rounds.values() if r.session_id == session_id]
        return sorted(rounds, key=lambda r: r.round_number)

    async def create_batch(self, session_id: str, num_rounds: int, db: Any) -> list[Round]:
        existing = {r.round_number for r in await self.list_by_session(session_id, db)}
        for n in range(1, num_rounds + 1):
            if n not in existing:
                rnd = Round(
                    id=self.store.next_id("round"),
                    session_id=session_id,
                    round_number=n,
                    status="waiting",
                )
                self.store.rounds[rnd.id] = rnd
        return await self.list_by_session(session_id, db)

    async def transition_status(
        self,
        round_id: str,
        from_status: str,
        to_status: str,
        db: Any,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool:
        r = self.store.rounds.get(round_id)
        if r is None or r.status != from_status:
            return False
        r.status = to_status
        r.started_at = started_at or r.started_at
        r.ended_at = ended_at or r.ended_at
        return True

    async def cancel_waiting(self, session_id: str, db: Any) -> int:
        count = 0
        for r in self.store.rounds.values():
            if r.session_id == session_id and r.status == "waiting":
                r.status = "cancelled"
                count += 1
        return count


class FakePlayerRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def get_by_id(self, player_id: str, db: Any) -> Player | None:
        p = self.store.players.get(player_id)
        return replace(p) if p else None

    async def list_active_by_session(self, session_id: str, db: Any) -> list[Player]:
        players = [
            replace(p)
            for p in self.store.players.values()
            if p.session_id == session_id and p.is_active
        ]
        return sorted(players, key=lambda p: (p.created_at, p.id))

    async def create_with_role_assignment(
        self,
        session_id: str,
        market_size: int,
        name: str | None,
        is_bot: bool,
        policy: RolePolicy,
        db: Any,
    ) -> Player | None:
        existing = await self.list_active_by_session(session_id, db)
        if len(existing) >= market_size:
            return None
        assignment = policy(existing)
        player = Player(
            id=self.store.next_id("player"),
            session_id=session_id,
            role=assignment.role,
            name=name,
            valuation=assignment.valuation,
            production_cost=assignment.production_cost,
            is_bot=is_bot,
            created_at=self.store.tick(),
        )
        self.store.players[player.id] = player
        return replace(player)

    async def add_profit(self, player_id: str, amount: float, db: Any) -> None:
        self.store.players[player_id].total_profit += amount


class FakeMarketRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def save_bid(self, entry: BookEntry, db: Any) -> None:
        self.store.bids[entry.id] = replace(entry)

    async def save_ask(self, entry: BookEntry, db: Any) -> None:
        self.store.asks[entry.id] = replace(entry)

    async def list_active_bids(self, round_id: str, db: Any) -> list[BookEntry]:
        return [
            replace(b) for b in self.store.bids.values() if b.round_id == round_id and b.is_active
        ]

    async def list_active_asks(self, round_id: str, db: Any) -> list[BookEntry]:
        return [
            replace(a) for a in self.store.asks.values() if a.round_id == round_id and a.is_active
        ]

    async def execute_trade(
        self, match: MatchedTrade, buyer_profit: float, seller_profit: float, db: Any
    ) -> Trade | None:
        bid = self.store.bids.get(match.bid.id)
        ask = self.store.asks.get(match.ask.id)
        if bid is None or ask is None or not bid.is_active or not ask.is_active:
            return None
        bid.is_active = False
        ask.is_active = False
        trade = Trade(
            id=self.store.next_id("trade"),
            round_id=bid.round_id,
            buyer_id=bid.player_id,
            seller_id=ask.player_id,
            bid_id=bid.id,
            ask_id=ask.id,
            price=match.price,
            buyer_profit=buyer_profit,
            seller_profit=seller_profit,
            created_at=self.store.tick(),
        )
        self.store.trades.append(trade)
        self.store.players[bid.player_id].total_profit += buyer_profit
        self.store.players[ask.player_id].total_profit += seller_profit
        return replace(trade)

    async def deactivate_all_for_round(self, round_id: str, db: Any) -> int:
        count = 0
        for entry in [*self.store.bids.values(), *self.store.asks.values()]:
            if entry.round_id == round_id and entry.is_active:
                entry.is_active = False
                count += 1
        return count

    async def list_trades(self, round_id: str, db: Any) -> list[Trade]:
        return [replace(t) for t in self.store.trades if t.round_id == round_id]


class FakeGameActionRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def save(self, record: GameActionRecord, db: Any) -> None:
        self.store.actions.append(replace(record))

    async def list_by_round(self, round_id: str, db: Any) -> list[GameActionRecord]:
        return [replace(a) for a in self.store.actions if a.round_id == round_id]

    async def list_by_round_and_player(
        self, round_id: str, player_id: str, db: Any
    ) -> list[GameActionRecord]:
        return [
            replace(a)
            for a in self.store.actions
            if a.round_id == round_id and a.player_id == player_id
        ]


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append((room, event, payload))

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]

    def payloads(self, event: str) -> list[dict[str, Any]]:
        return [payload for _, e, payload in self.events if e == event]


@dataclass
class FakeStack:
    """The service graph the app container builds, wired to in-memory fakes."""

    store: FakeStore
    broadcaster: RecordingBroadcaster
    locks: RoundLocks
    registry: GameRegistry
    submitter: ActionSubmitter
    dispatcher: BotDispatcher
    lifecycle: RoundLifecycleService
    session_factory: FakeSessionFactory


def build_fake_stack(
    store: FakeStore | None = None,
    timing: BotTiming | None = None,
    rng: random.Random | None = None,
) -> FakeStack:
    store = store or FakeStore()
    rng = rng or random.Random(7)
    broadcaster = RecordingBroadcaster()
    locks = RoundLocks()
    repos = {
        "session_repo": FakeSessionRepository(store),
        "round_repo": FakeRoundRepository(store),
        "player_repo": FakePlayerRepository(store),
    }
    market_repo = FakeMarketRepository(store)
    action_repo = FakeGameActionRepository(store)

    registry = GameRegistry()
    for engine_cls in (DoubleAuctionEngine, TaxSubsidyEngine, PriceControlsEngine):
        registry.register(engine_cls(broadcaster, locks, market_repo=market_repo, **repos))
    for game_type in GameType:
        if not registry.has(game_type):
            registry.register(
                RecordedActionEngine(game_type, broadcaster, locks, action_repo=action_repo, **repos)
            )

    submitter = ActionSubmitter(registry, **repos)
    factory = FakeSessionFactory()
    dispatcher = BotDispatcher(
        submitter,
        factory,
        player_repo=repos["player_repo"],
        round_repo=repos["round_repo"],
        action_repo=action_repo,
        timing=timing or BotTiming((0.01, 0.01), (0.01, 0.01), (0.01, 0.01), (0.01, 0.01)),
        rng=rng,
    )
    submitter.set_first_move_listener(dispatcher)
    lifecycle = RoundLifecycleService(broadcaster, locks, registry, dispatcher, rng=rng, **repos)
    return FakeStack(
        store=store,
        broadcaster=broadcaster,
        locks=locks,
        registry=registry,
        submitter=submitter,
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        session_factory=factory,
    )
