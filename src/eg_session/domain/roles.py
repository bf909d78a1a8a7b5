"""Role assignment policy, shared by human joins and bot fill.

Three families:
  DA games      buyer/seller, balanced; draws a valuation or cost per player
  paired games  two alternating roles (first mover / second mover)
  uniform games every player gets the game's single role

The policy is a pure function of the players already seated, so the
persistence layer can run it under the session row lock and the result is
the same whichever of two concurrent joiners gets the lock first.
"""

import math
import random

from src.eg_common.enums import DA_GAME_TYPES, GameType
from src.eg_market.engine.valuation import generate_production_costs, generate_valuations
from src.eg_session.domain.models import Player, RoleAssignment, Session

BUYER = "buyer"
SELLER = "seller"
DEFAULT_ROLE = "player"

# (first mover, second mover)
PAIRED_ROLES: dict[GameType, tuple[str, str]] = {
    GameType.ULTIMATUM: ("proposer", "responder"),
    GameType.BARGAINING: ("proposer", "responder"),
    GameType.GIFT_EXCHANGE: ("employer", "worker"),
    GameType.PRINCIPAL_AGENT: ("principal", "agent"),
    GameType.TRUST_GAME: ("sender", "receiver"),
    GameType.MARKET_FOR_LEMONS: ("seller", "buyer"),
    GameType.POSTED_OFFER: ("seller", "buyer"),
    GameType.SEALED_BID_OFFER: ("buyer", "seller"),
}

GAME_ROLES: dict[GameType, str] = {
    GameType.BERTRAND: "firm",
    GameType.COURNOT: "firm",
    GameType.NEGATIVE_EXTERNALITY: "firm",
    GameType.PUBLIC_GOODS: "player",
    GameType.PRISONER_DILEMMA: "player",
    GameType.BEAUTY_CONTEST: "player",
    GameType.COMMON_POOL_RESOURCE: "player",
    GameType.STAG_HUNT: "player",
    GameType.DICTATOR: "player",
    GameType.MATCHING_PENNIES: "player",
    GameType.COMPARATIVE_ADVANTAGE: "country",
    GameType.MONOPOLY: "monopolist",
    GameType.DISCOVERY_PROCESS: "producer",
    GameType.AUCTION: "bidder",
    GameType.DUTCH_AUCTION: "bidder",
    GameType.ENGLISH_AUCTION: "bidder",
    GameType.DISCRIMINATIVE_AUCTION: "bidder",
    GameType.ELLSBERG: "chooser",
    GameType.NEWSVENDOR: "manager",
    GameType.LINDAHL: "voter",
    GameType.PG_AUCTION: "voter",
    GameType.SPONSORED_SEARCH: "advertiser",
}


def is_paired(game_type: GameType) -> bool:
    return game_type in PAIRED_ROLES


def first_mover_role(game_type: GameType) -> str | None:
    roles = PAIRED_ROLES.get(game_type)
    return roles[0] if roles else None


def second_mover_role(game_type: GameType) -> str | None:
    roles = PAIRED_ROLES.get(game_type)
    return roles[1] if roles else None


def choose_role(
    session: Session,
    existing: list[Player],
    rng: random.Random | None = None,
) -> RoleAssignment:
    """Role (and private value) for the next player to join `session`.

    DA: buyer while buyers <= sellers, otherwise seller. That keeps
    |buyers - sellers| <= 1 after every single join.
    """
    game_type = GameType.parse(session.game_type)

    if game_type in DA_GAME_TYPES:
        buyers = sum(1 for p in existing if p.role == BUYER)
        sellers = sum(1 for p in existing if p.role == SELLER)
        if buyers <= sellers:
            value = generate_valuations(
                session.valuation_min,
                session.valuation_max,
                session.valuation_increments,
                1,
                rng,
            )[0]
            return RoleAssignment(role=BUYER, valuation=value)
        value = generate_production_costs(
            session.cost_min, session.cost_max, session.cost_increments, 1, rng
        )[0]
        return RoleAssignment(role=SELLER, production_cost=value)

    if game_type in PAIRED_ROLES:
        first, second = PAIRED_ROLES[game_type]
        n_first = sum(1 for p in existing if p.role == first)
        n_second = sum(1 for p in existing if p.role == second)
        return RoleAssignment(role=first if n_first <= n_second else second)

    return RoleAssignment(role=GAME_ROLES.get(game_type, DEFAULT_ROLE))


def assign_roles(player_count: int, rng: random.Random | None = None) -> list[str]:
    """Batch DA roles: ceil(n/2) buyers (the extra one on odd n), shuffled."""
    rng = rng or random.Random()
    buyer_count = math.ceil(player_count / 2)
    roles = [BUYER] * buyer_count + [SELLER] * (player_count - buyer_count)
    rng.shuffle(roles)
    return roles


def _join_order(players: list[Player]) -> list[Player]:
    # created_at can be None for rows built in memory; keep list order then
    return sorted(
        players,
        key=lambda p: (p.created_at is None, p.created_at or 0),
    )


def find_partner(
    game_type: GameType, player: Player, players: list[Player]
) -> Player | None:
    """Partner in a paired game: the k-th first mover pairs with the k-th second mover.

    Both lists are in join order and include only active players. Returns None
    for non-paired games or an unmatched player.
    """
    roles = PAIRED_ROLES.get(game_type)
    if roles is None:
        return None
    first, second = roles
    active = [p for p in _join_order(players) if p.is_active]
    first_movers = [p for p in active if p.role == first]
    second_movers = [p for p in active if p.role == second]

    if player.role == first:
        mine, theirs = first_movers, second_movers
    elif player.role == second:
        mine, theirs = second_movers, first_movers
    else:
        return None

    idx = next((i for i, p in enumerate(mine) if p.id == player.id), None)
    if idx is None or idx >= len(theirs):
        return None
    return theirs[idx]
