"""Zero-intelligence-plus style DA bot.

Buyers start bidding at 50% of valuation and ramp to 90% as the round runs;
sellers start at 150% of cost and come down to 110%. Both add +/-2 noise and
never cross their own private value.
"""

import random
from typing import Any

from src.eg_bots.strategies.base import BotStrategy, RoundContext, clamp, rand, r2
from src.eg_game.actions import AskAction, BidAction, GameAction
from src.eg_session.domain.models import Player
from src.eg_session.domain.roles import BUYER

DEFAULT_ROUND_SECONDS = 180.0
DEFAULT_VALUATION = 50.0
DEFAULT_COST = 30.0
MAX_ASK = 999.0


class DoubleAuctionStrategy(BotStrategy):
    name = "double_auction"

    def get_da_action(
        self,
        player: Player,
        config: dict[str, Any],
        ctx: RoundContext,
        rng: random.Random,
    ) -> GameAction | None:
        duration = float(config.get("time_per_round") or DEFAULT_ROUND_SECONDS)
        progress = min(ctx.elapsed_seconds / duration, 1.0)
        noise = rand(rng, -2, 2)

        if player.role == BUYER:
            valuation = player.valuation or DEFAULT_VALUATION
            fraction = 0.5 + (0.9 - 0.5) * progress
            price = r2(clamp(valuation * fraction + noise, 0.01, valuation - 0.01))
            return BidAction(type="bid", price=price)

        cost = player.production_cost or DEFAULT_COST
        fraction = 1.5 - (1.5 - 1.1) * progress
        price = r2(clamp(cost * fraction + noise, cost + 0.01, MAX_ASK))
        return AskAction(type="ask", price=price)
