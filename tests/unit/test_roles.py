"""Tests for eg_session.domain.roles."""

import random
from datetime import datetime, timedelta, timezone

from src.eg_common.enums import GameType
from src.eg_session.domain.models import Player, Session
from src.eg_session.domain.roles import (
    BUYER,
    SELLER,
    assign_roles,
    choose_role,
    find_partner,
    first_mover_role,
    second_mover_role,
)

_T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _make_session(**kwargs) -> Session:
    defaults = dict(id="s-1", code="ROLES1", game_type="double_auction", status="waiting",
                    market_size=6, num_rounds=2, time_per_round=60, valuation_min=20,
                    valuation_max=80, valuation_increments=10, cost_min=10, cost_max=50,
                    cost_increments=5)
    defaults.update(kwargs)
    return Session(**defaults)


def _make_player(pid: str, role: str, order: int = 0, **kwargs) -> Player:
    return Player(id=pid, session_id="s-1", role=role,
                  created_at=_T0 + timedelta(seconds=order), **kwargs)


def _seat(session: Session, n: int, rng: random.Random) -> list[Player]:
    seated: list[Player] = []
    for i in range(n):
        a = choose_role(session, seated, rng)
        seated.append(_make_player(f"p{i}", a.role, i, valuation=a.valuation,
                                   production_cost=a.production_cost))
    return seated


class TestChooseRoleDoubleAuction:
    def test_first_player_is_buyer_with_valuation(self) -> None:
        a = choose_role(_make_session(), [], random.Random(1))
        assert a.role == BUYER
        assert a.valuation is not None and 20 <= a.valuation <= 80
        assert a.production_cost is None

    def test_second_player_is_seller_with_cost(self) -> None:
        seated = [_make_player("p0", BUYER)]
        a = choose_role(_make_session(), seated, random.Random(1))
        assert a.role == SELLER
        assert a.production_cost is not None and 10 <= a.production_cost <= 50

    def test_balance_holds_after_every_join(self) -> None:
        session = _make_session(market_size=9)
        seated: list[Player] = []
        rng = random.Random(3)
        for i in range(9):
            a = choose_role(session, seated, rng)
            seated.append(_make_player(f"p{i}", a.role, i))
            buyers = sum(p.role == BUYER for p in seated)
            sellers = sum(p.role == SELLER for p in seated)
            assert abs(buyers - sellers) <= 1

    def test_full_even_market_is_exactly_balanced(self) -> None:
        seated = _seat(_make_session(), 6, random.Random(5))
        assert sum(p.role == BUYER for p in seated) == 3
        assert sum(p.role == SELLER for p in seated) == 3

    def test_tax_variant_uses_same_policy(self) -> None:
        a = choose_role(_make_session(game_type="double_auction_tax"), [], random.Random(1))
        assert a.role == BUYER


class TestChooseRoleOtherGames:
    def test_paired_game_alternates(self) -> None:
        seated = _seat(_make_session(game_type="ultimatum"), 4, random.Random(1))
        assert [p.role for p in seated] == ["proposer", "responder", "proposer", "responder"]
        assert all(p.valuation is None for p in seated)

    def test_uniform_game_role(self) -> None:
        assert choose_role(_make_session(game_type="cournot"), []).role == "firm"

    def test_missing_game_type_defaults_to_double_auction(self) -> None:
        assert choose_role(_make_session(game_type=""), []).role == BUYER


class TestAssignRoles:
    def test_odd_count_has_extra_buyer(self) -> None:
        roles = assign_roles(5, random.Random(1))
        assert roles.count(BUYER) == 3
        assert roles.count(SELLER) == 2

    def test_even_count_split(self) -> None:
        roles = assign_roles(8, random.Random(1))
        assert roles.count(BUYER) == roles.count(SELLER) == 4


class TestFindPartner:
    def test_pairs_by_join_order(self) -> None:
        players = [
            _make_player("r2", "responder", 3),
            _make_player("p1", "proposer", 0),
            _make_player("r1", "responder", 1),
            _make_player("p2", "proposer", 2),
        ]
        by_id = {p.id: p for p in players}
        assert find_partner(GameType.ULTIMATUM, by_id["p1"], players).id == "r1"
        assert find_partner(GameType.ULTIMATUM, by_id["p2"], players).id == "r2"
        assert find_partner(GameType.ULTIMATUM, by_id["r2"], players).id == "p2"

    def test_unmatched_player_has_no_partner(self) -> None:
        players = [_make_player("p1", "proposer", 0)]
        assert find_partner(GameType.ULTIMATUM, players[0], players) is None

    def test_inactive_players_are_skipped(self) -> None:
        players = [
            _make_player("p1", "proposer", 0),
            _make_player("r-gone", "responder", 1, is_active=False),
            _make_player("r2", "responder", 2),
        ]
        assert find_partner(GameType.ULTIMATUM, players[0], players).id == "r2"

    def test_non_paired_game(self) -> None:
        p = _make_player("p1", "firm")
        assert find_partner(GameType.COURNOT, p, [p]) is None

    def test_mover_roles(self) -> None:
        assert first_mover_role(GameType.TRUST_GAME) == "sender"
        assert second_mover_role(GameType.TRUST_GAME) == "receiver"
        assert first_mover_role(GameType.COURNOT) is None
