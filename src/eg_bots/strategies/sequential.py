"""Two-stage strategies: first movers propose, second movers respond to their partner.

`partner_action` is the first mover's payload in wire form (camelCase keys).
"""

import random
from typing import Any

from src.eg_bots.strategies.base import BotStrategy, RoundContext, cfg, clamp, rand, r2
from src.eg_game.actions import (
    AcceptDecision,
    ContractOffer,
    EffortChoice,
    EffortDecision,
    GameAction,
    KeepProposal,
    ListingPrice,
    Offer,
    TrustReturn,
    TrustSend,
    WageOffer,
)
from src.eg_session.domain.models import Player


def _num(action: dict[str, Any], key: str) -> float:
    return float(action.get(key) or 0)


class UltimatumStrategy(BotStrategy):
    name = "ultimatum"

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        endowment = cfg(config, "endowment", 10)
        min_offer = cfg(config, "minOffer", 0)
        amount = rand(rng, 0.4, 0.5) * endowment
        return Offer(offer=r2(clamp(amount, min_offer, endowment)))

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        endowment = cfg(config, "endowment", 10)
        return AcceptDecision(accept=_num(partner_action, "offer") > endowment * 0.2)


class BargainingStrategy(BotStrategy):
    name = "bargaining"

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        pie = cfg(config, "pieSize", 10)
        return KeepProposal(keep=r2(clamp(rand(rng, 0.5, 0.6) * pie, 0, pie)))

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        pie = cfg(config, "pieSize", 10)
        offered = pie - _num(partner_action, "keep")
        return AcceptDecision(accept=offered > pie * 0.3)


class GiftExchangeStrategy(BotStrategy):
    """Employers pay 50-70% of the max wage; workers reciprocate with effort."""

    name = "gift_exchange"

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        max_wage = cfg(config, "maxWage", 50)
        return WageOffer(wage=r2(clamp(rand(rng, 0.5, 0.7) * max_wage, 0, max_wage)))

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        max_wage = cfg(config, "maxWage", 50)
        max_effort = cfg(config, "maxEffort", 10)
        ratio = _num(partner_action, "wage") / max_wage
        effort = round(clamp(ratio * max_effort + rand(rng, -1, 1), 1, max_effort))
        return EffortChoice(effort=effort)


class PrincipalAgentStrategy(BotStrategy):
    name = "principal_agent"

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        max_wage = cfg(config, "maxWage", 50)
        max_bonus = cfg(config, "maxBonus", 50)
        return ContractOffer(
            fixed_wage=r2(clamp(rand(rng, 0.25, 0.35) * max_wage, 0, max_wage)),
            bonus=r2(clamp(rand(rng, 0.5, 0.6) * max_bonus, 0, max_bonus)),
        )

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        effort_cost = cfg(config, "effortCost", 10)
        high_effort_prob = cfg(config, "highEffortProb", 0.8)
        expected_gain = _num(partner_action, "bonus") * high_effort_prob
        return EffortDecision(high_effort=expected_gain > effort_cost * 0.8)


class TrustGameStrategy(BotStrategy):
    name = "trust_game"

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        endowment = cfg(config, "endowment", 10)
        return TrustSend(amount_sent=r2(clamp(rand(rng, 0.4, 0.6) * endowment, 0, endowment)))

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        multiplier = cfg(config, "multiplier", 3)
        received = _num(partner_action, "amountSent") * multiplier
        amount = rand(rng, 0.3, 0.5) * received
        return TrustReturn(amount_returned=r2(clamp(amount, 0, received)))


class MarketForLemonsStrategy(BotStrategy):
    """Sellers list at 20-60; buyers accept below a discounted expected value."""

    name = "market_for_lemons"

    AVERAGE_QUALITY = 50.0

    def get_first_move_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        return ListingPrice(price=clamp(r2(rand(rng, 20, 60)), 0, 100))

    def get_second_move_action(
        self,
        player: Player,
        config: dict[str, Any],
        partner_action: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction:
        value_fraction = cfg(config, "buyerValueFraction", 1.5)
        average_value = self.AVERAGE_QUALITY * value_fraction
        price = _num(partner_action, "price")
        return AcceptDecision(accept=price < average_value * rand(rng, 0.6, 0.9))
