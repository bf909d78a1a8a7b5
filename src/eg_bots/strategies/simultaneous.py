"""Simultaneous-move strategies: every bot decides once per round."""

import random
from typing import Any

from src.eg_bots.strategies.base import BotStrategy, RoundContext, cfg, clamp, rand, r2
from src.eg_game.actions import (
    BeautyContestGuess,
    Contribution,
    DictatorGive,
    Extraction,
    GameAction,
    PenniesChoice,
    PriceDecision,
    PrisonerDilemmaChoice,
    ProductionDecision,
    QuantityDecision,
    StagHuntChoice,
)
from src.eg_session.domain.models import Player


class PrisonerDilemmaStrategy(BotStrategy):
    """Tit-for-tat: cooperate first, punish a defection, otherwise mostly cooperate.

    `ctx.previous_results` holds the other players' decisions from the last round.
    """

    name = "prisoner_dilemma"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        if ctx.round_number <= 1 or not ctx.previous_results:
            return PrisonerDilemmaChoice(choice="cooperate")
        if any(r.get("actionData", {}).get("choice") == "defect" for r in ctx.previous_results):
            return PrisonerDilemmaChoice(choice="defect")
        return PrisonerDilemmaChoice(choice="cooperate" if rng.random() < 0.7 else "defect")


class BeautyContestStrategy(BotStrategy):
    """Level-2 guess, fraction^2 x midpoint, noise shrinking over rounds."""

    name = "beauty_contest"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        max_number = cfg(config, "maxNumber", 100)
        fraction = cfg(config, "fraction", 0.67)
        level2 = fraction * fraction * (max_number / 2)
        noise = rand(rng, -5, 5) * max(0.3, 1 - ctx.round_number * 0.1)
        return BeautyContestGuess(number=clamp(r2(level2 + noise), 0, max_number))


class PublicGoodsStrategy(BotStrategy):
    name = "public_goods"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        endowment = cfg(config, "endowment", 20)
        amount = rand(rng, 0.4, 0.6) * endowment
        return Contribution(contribution=r2(clamp(amount, 0, endowment)))


class BertrandStrategy(BotStrategy):
    """Price at marginal cost plus a 5-15% markup."""

    name = "bertrand"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        mc = cfg(config, "marginalCost", 10)
        max_price = cfg(config, "maxPrice", 100)
        price = mc * (1 + rand(rng, 0.05, 0.15))
        return PriceDecision(price=r2(clamp(price, 0, max_price)))


class CournotStrategy(BotStrategy):
    """Best response (a - mc) / (2b x 3), guessing three firms, +/-3 noise."""

    name = "cournot"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        a = cfg(config, "demandIntercept", 100)
        b = cfg(config, "demandSlope", 1)
        mc = cfg(config, "marginalCost", 10)
        max_q = cfg(config, "maxQuantity", 100)
        q_star = (a - mc) / (2 * b * 3)
        return QuantityDecision(quantity=r2(clamp(q_star + rand(rng, -3, 3), 0, max_q)))


class NegativeExternalityStrategy(BotStrategy):
    name = "negative_externality"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        max_prod = cfg(config, "maxProduction", 50)
        amount = rand(rng, 0.55, 0.65) * max_prod
        return ProductionDecision(production=round(clamp(amount, 0, max_prod)))


class CommonPoolResourceStrategy(BotStrategy):
    name = "common_pool_resource"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        max_extraction = cfg(config, "maxExtraction", 25)
        amount = rand(rng, 0.3, 0.5) * max_extraction
        return Extraction(extraction=r2(clamp(amount, 0, max_extraction)))


class StagHuntStrategy(BotStrategy):
    name = "stag_hunt"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        return StagHuntChoice(choice="stag" if rng.random() < 0.7 else "hare")


class DictatorStrategy(BotStrategy):
    name = "dictator"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        endowment = cfg(config, "endowment", 10)
        amount = rand(rng, 0.2, 0.4) * endowment
        return DictatorGive(give=r2(clamp(amount, 0, endowment)))


class MatchingPenniesStrategy(BotStrategy):
    name = "matching_pennies"

    def get_simultaneous_action(
        self, player: Player, config: dict[str, Any], ctx: RoundContext, rng: random.Random
    ) -> GameAction:
        return PenniesChoice(choice="heads" if rng.random() < 0.5 else "tails")
