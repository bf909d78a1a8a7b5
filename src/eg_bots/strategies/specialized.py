"""Strategies for games with their own phase choreography or private draws."""

import random
from typing import Any

from src.eg_bots.strategies.base import (
    BotStrategy,
    RoundContext,
    TimedAction,
    cfg,
    clamp,
    rand,
    r2,
)
from src.eg_game.actions import (
    GameAction,
    LaborAllocation,
    PriceDecision,
    SealedBid,
    SetProduction,
    StartProduction,
)
from src.eg_session.domain.models import Player

MAX_BID = 999.0


class MonopolyStrategy(BotStrategy):
    """Profit-maximising price (a + mc) / 2, +/-3."""

    name = "monopoly"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        a = cfg(config, "demandIntercept", 100)
        mc = cfg(config, "marginalCost", 20)
        return PriceDecision(price=r2(clamp((a + mc) / 2 + rand(rng, -3, 3), 0, a)))


class ComparativeAdvantageStrategy(BotStrategy):
    name = "comparative_advantage"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        labor_units = cfg(config, "laborUnits", 100)
        allocation = rand(rng, 60, 80) if rng.random() < 0.5 else rand(rng, 20, 40)
        return LaborAllocation(labor_good1=round(clamp(allocation, 0, labor_units)))


class SealedBidAuctionStrategy(BotStrategy):
    """Second price: bid value +/-1. First price: shade to 50-80% of value."""

    name = "auction"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        valuation = player.valuation or rand(rng, 30, 80)
        if config.get("auctionType") == "second_price":
            return SealedBid(bid=r2(clamp(valuation + rand(rng, -1, 1), 0, MAX_BID)))
        return SealedBid(bid=r2(clamp(valuation * rand(rng, 0.5, 0.8), 0, MAX_BID)))


class DiscoveryProcessStrategy(BotStrategy):
    """Specialise fully in the first good, then start production."""

    name = "discovery_process"

    def get_specialized_actions(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> list[TimedAction]:
        return [
            TimedAction(SetProduction(allocation=[100, 0]), delay_seconds=1.0),
            TimedAction(StartProduction(), delay_seconds=2.0),
        ]
