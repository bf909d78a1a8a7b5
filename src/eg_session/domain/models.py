"""Sessions, rounds, players and role assignments as plain dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Session:
    id: str
    code: str
    game_type: str
    status: str
    market_size: int
    num_rounds: int
    time_per_round: int  # seconds
    valuation_min: int = 0
    valuation_max: int = 0
    valuation_increments: int = 1
    cost_min: int = 0
    cost_max: int = 0
    cost_increments: int = 1
    bot_enabled: bool = False
    current_round: int = 0
    game_config: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    def config_with_timing(self) -> dict[str, Any]:
        """Game config plus the round length, as strategies expect it."""
        return {**(self.game_config or {}), "time_per_round": self.time_per_round}


@dataclass
class Round:
    id: str
    session_id: str
    round_number: int
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class Player:
    id: str
    session_id: str
    role: str
    name: str | None = None
    valuation: float | None = None  # buyers in DA games
    production_cost: float | None = None  # sellers in DA games
    total_profit: float = 0.0
    is_bot: bool = False
    is_active: bool = True
    created_at: datetime | None = None

    def public_view(self) -> dict[str, Any]:
        """Broadcast-safe projection: never leaks private valuation/cost."""
        return {"id": self.id, "name": self.name, "is_bot": self.is_bot}


@dataclass
class RoleAssignment:
    """Output of the role policy for one new player."""

    role: str
    valuation: float | None = None
    production_cost: float | None = None
