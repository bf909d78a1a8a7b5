"""Pydantic schemas for the session lifecycle API."""

from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.eg_game.engine import RoundResult
from src.eg_session.domain.models import Player, Round, Session

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class JoinSessionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class RoundOut(BaseModel):
    id: str
    round_number: int
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @classmethod
    def from_domain(cls, rnd: Round) -> "RoundOut":
        return cls(
            id=rnd.id,
            round_number=rnd.round_number,
            status=rnd.status,
            started_at=rnd.started_at,
            ended_at=rnd.ended_at,
        )


class SessionOut(BaseModel):
    id: str
    code: str
    game_type: str
    status: str
    market_size: int
    num_rounds: int
    time_per_round: int
    current_round: int
    bot_enabled: bool
    game_config: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @classmethod
    def from_domain(cls, session: Session) -> "SessionOut":
        return cls(
            id=session.id,
            code=session.code,
            game_type=session.game_type,
            status=session.status,
            market_size=session.market_size,
            num_rounds=session.num_rounds,
            time_per_round=session.time_per_round,
            current_round=session.current_round,
            bot_enabled=session.bot_enabled,
            game_config=session.game_config or {},
            started_at=session.started_at,
            ended_at=session.ended_at,
        )


class SessionDetail(SessionOut):
    rounds: list[RoundOut] = Field(default_factory=list)

    @classmethod
    def build(cls, session: Session, rounds: list[Round]) -> "SessionDetail":
        base = SessionOut.from_domain(session).model_dump()
        return cls(**base, rounds=[RoundOut.from_domain(r) for r in rounds])


class PlayerOut(BaseModel):
    """Player as other participants see it."""

    id: str
    name: str | None
    role: str
    is_bot: bool
    total_profit: float

    @classmethod
    def from_domain(cls, player: Player) -> "PlayerOut":
        return cls(
            id=player.id,
            name=player.name,
            role=player.role,
            is_bot=player.is_bot,
            total_profit=player.total_profit,
        )


class JoinedPlayerOut(PlayerOut):
    """Returned only to the joining player: includes their private value."""

    session_id: str
    valuation: float | None = None
    production_cost: float | None = None

    @classmethod
    def from_domain(cls, player: Player) -> "JoinedPlayerOut":
        return cls(
            id=player.id,
            session_id=player.session_id,
            name=player.name,
            role=player.role,
            is_bot=player.is_bot,
            total_profit=player.total_profit,
            valuation=player.valuation,
            production_cost=player.production_cost,
        )


class RoundResultOut(BaseModel):
    round_id: str
    round_number: int
    results: list[dict[str, Any]]
    summary: dict[str, Any]

    @classmethod
    def build(cls, rnd: Round, result: RoundResult) -> "RoundResultOut":
        return cls(
            round_id=rnd.id,
            round_number=rnd.round_number,
            results=[asdict(r) for r in result.player_results],
            summary=result.summary,
        )
