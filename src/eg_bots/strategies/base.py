"""Shared pieces of the bot strategy library.

A strategy is any object with some of these optional capabilities:

    get_simultaneous_action(player, config, ctx, rng) -> GameAction | None
    get_first_move_action(player, config, ctx, rng) -> GameAction | None
    get_second_move_action(player, config, partner_action, ctx, rng) -> GameAction | None
    get_da_action(player, config, ctx, rng) -> GameAction | None
    get_specialized_actions(player, config, ctx, rng) -> list[TimedAction]

Returning None means "skip this tick", never an error. `config` is the
session's game_config plus `time_per_round`; keys are the camelCase names
the session editor stores.
"""

import random
from dataclasses import dataclass, field
from typing import Any

from src.eg_game.actions import GameAction


@dataclass
class RoundContext:
    round_number: int = 1
    elapsed_seconds: float = 0.0
    previous_results: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class TimedAction:
    action: GameAction
    delay_seconds: float


class BotStrategy:
    """Marker base; subclasses define only the capabilities they support."""

    name: str = "strategy"

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


def rand(rng: random.Random, lo: float, hi: float) -> float:
    return rng.uniform(lo, hi)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def r2(value: float) -> float:
    return round(value, 2)


def cfg(config: dict[str, Any], key: str, default: float) -> float:
    """Numeric config value; missing, null or zero falls back to the default."""
    value = config.get(key)
    return float(value) if value else default
