"""Session, Round and Player repositories over raw SQL."""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_session.domain.models import Player, Round, Session
from src.eg_session.domain.repository import RolePolicy

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SESSION_COLUMNS = """
    id, code, game_type, game_config, status, market_size, num_rounds,
    time_per_round, valuation_min, valuation_max, valuation_increments,
    cost_min, cost_max, cost_increments, bot_enabled, current_round,
    created_at, started_at, ended_at
"""

_GET_SESSION_BY_ID_SQL = text(f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = :id")

_GET_SESSION_BY_CODE_SQL = text(f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE code = :code")

_TRANSITION_SESSION_SQL = text("""
    UPDATE sessions
    SET status = :to_status,
        started_at = COALESCE(:started_at, started_at),
        ended_at = COALESCE(:ended_at, ended_at)
    WHERE id = :id
      AND status = ANY(string_to_array(CAST(:from_csv AS TEXT), ','))
    RETURNING id
""")

_SET_CURRENT_ROUND_SQL = text(
    "UPDATE sessions SET current_round = :round_number WHERE id = :id"
)

_LOCK_SESSION_SQL = text("SELECT id FROM sessions WHERE id = :id FOR UPDATE")

_ROUND_COLUMNS = "id, session_id, round_number, status, started_at, ended_at"

_GET_ROUND_BY_ID_SQL = text(f"SELECT {_ROUND_COLUMNS} FROM rounds WHERE id = :id")

_GET_ROUND_BY_NUMBER_SQL = text(f"""
    SELECT {_ROUND_COLUMNS} FROM rounds
    WHERE session_id = :session_id AND round_number = :round_number
""")

_LIST_ROUNDS_SQL = text(f"""
    SELECT {_ROUND_COLUMNS} FROM rounds
    WHERE session_id = :session_id
    ORDER BY round_number ASC
""")

_INSERT_ROUND_SQL = text(f"""
    INSERT INTO rounds (session_id, round_number, status)
    VALUES (:session_id, :round_number, 'waiting')
    ON CONFLICT (session_id, round_number) DO NOTHING
    RETURNING {_ROUND_COLUMNS}
""")

_TRANSITION_ROUND_SQL = text("""
    UPDATE rounds
    SET status = :to_status,
        started_at = COALESCE(:started_at, started_at),
        ended_at = COALESCE(:ended_at, ended_at)
    WHERE id = :id AND status = :from_status
    RETURNING id
""")

_CANCEL_WAITING_ROUNDS_SQL = text("""
    UPDATE rounds SET status = 'cancelled'
    WHERE session_id = :session_id AND status = 'waiting'
""")

_PLAYER_COLUMNS = """
    id, session_id, name, role, valuation, production_cost, total_profit,
    is_bot, is_active, created_at
"""

_GET_PLAYER_BY_ID_SQL = text(f"SELECT {_PLAYER_COLUMNS} FROM players WHERE id = :id")

_LIST_ACTIVE_PLAYERS_SQL = text(f"""
    SELECT {_PLAYER_COLUMNS} FROM players
    WHERE session_id = :session_id AND is_active = true
    ORDER BY created_at ASC, id ASC
""")

# clock_timestamp(): several seats taken in one transaction still get distinct join times
_INSERT_PLAYER_SQL = text(f"""
    INSERT INTO players (session_id, name, role, valuation, production_cost,
                         total_profit, is_bot, is_active, created_at)
    VALUES (:session_id, :name, :role, :valuation, :production_cost,
            0, :is_bot, true, clock_timestamp())
    RETURNING {_PLAYER_COLUMNS}
""")

_ADD_PROFIT_SQL = text(
    "UPDATE players SET total_profit = total_profit + :amount WHERE id = :id"
)


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _row_to_session(row: Any) -> Session:
    config = row.game_config
    if isinstance(config, str):
        config = json.loads(config)
    return Session(
        id=str(row.id),
        code=row.code,
        game_type=row.game_type,
        status=row.status,
        market_size=row.market_size,
        num_rounds=row.num_rounds,
        time_per_round=row.time_per_round,
        valuation_min=row.valuation_min,
        valuation_max=row.valuation_max,
        valuation_increments=row.valuation_increments,
        cost_min=row.cost_min,
        cost_max=row.cost_max,
        cost_increments=row.cost_increments,
        bot_enabled=row.bot_enabled,
        current_round=row.current_round,
        game_config=config or {},
        created_at=row.created_at,
        started_at=row.started_at,
        ended_at=row.ended_at,
    )


def _row_to_round(row: Any) -> Round:
    return Round(
        id=str(row.id),
        session_id=str(row.session_id),
        round_number=row.round_number,
        status=row.status,
        started_at=row.started_at,
        ended_at=row.ended_at,
    )


def _row_to_player(row: Any) -> Player:
    return Player(
        id=str(row.id),
        session_id=str(row.session_id),
        name=row.name,
        role=row.role,
        valuation=_opt_float(row.valuation),
        production_cost=_opt_float(row.production_cost),
        total_profit=float(row.total_profit or 0),
        is_bot=row.is_bot,
        is_active=row.is_active,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class SessionRepository:
    """Concrete implementation of SessionRepositoryProtocol using raw SQL."""

    async def get_by_id(self, session_id: str, db: AsyncSession) -> Session | None:
        row = (await db.execute(_GET_SESSION_BY_ID_SQL, {"id": session_id})).fetchone()
        return _row_to_session(row) if row else None

    async def get_by_code(self, code: str, db: AsyncSession) -> Session | None:
        row = (await db.execute(_GET_SESSION_BY_CODE_SQL, {"code": code})).fetchone()
        return _row_to_session(row) if row else None

    async def transition_status(
        self,
        session_id: str,
        from_statuses: tuple[str, ...],
        to_status: str,
        db: AsyncSession,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool:
        result = await db.execute(
            _TRANSITION_SESSION_SQL,
            {
                "id": session_id,
                "from_csv": ",".join(from_statuses),
                "to_status": to_status,
                "started_at": started_at,
                "ended_at": ended_at,
            },
        )
        return result.fetchone() is not None

    async def set_current_round(self, session_id: str, round_number: int, db: AsyncSession) -> None:
        await db.execute(_SET_CURRENT_ROUND_SQL, {"id": session_id, "round_number": round_number})


class RoundRepository:
    """Concrete implementation of RoundRepositoryProtocol using raw SQL."""

    async def get_by_id(self, round_id: str, db: AsyncSession) -> Round | None:
        row = (await db.execute(_GET_ROUND_BY_ID_SQL, {"id": round_id})).fetchone()
        return _row_to_round(row) if row else None

    async def get_by_number(
        self, session_id: str, round_number: int, db: AsyncSession
    ) -> Round | None:
        row = (
            await db.execute(
                _GET_ROUND_BY_NUMBER_SQL,
                {"session_id": session_id, "round_number": round_number},
            )
        ).fetchone()
        return _row_to_round(row) if row else None

    async def list_by_session(self, session_id: str, db: AsyncSession) -> list[Round]:
        rows = (await db.execute(_LIST_ROUNDS_SQL, {"session_id": session_id})).fetchall()
        return [_row_to_round(r) for r in rows]

    async def create_batch(self, session_id: str, num_rounds: int, db: AsyncSession) -> list[Round]:
        """Insert rounds 1..num_rounds; existing round numbers are left alone."""
        for n in range(1, num_rounds + 1):
            await db.execute(_INSERT_ROUND_SQL, {"session_id": session_id, "round_number": n})
        return await self.list_by_session(session_id, db)

    async def transition_status(
        self,
        round_id: str,
        from_status: str,
        to_status: str,
        db: AsyncSession,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool:
        result = await db.execute(
            _TRANSITION_ROUND_SQL,
            {
                "id": round_id,
                "from_status": from_status,
                "to_status": to_status,
                "started_at": started_at,
                "ended_at": ended_at,
            },
        )
        return result.fetchone() is not None

    async def cancel_waiting(self, session_id: str, db: AsyncSession) -> int:
        result = await db.execute(_CANCEL_WAITING_ROUNDS_SQL, {"session_id": session_id})
        return result.rowcount or 0


class PlayerRepository:
    """Concrete implementation of PlayerRepositoryProtocol using raw SQL."""

    async def get_by_id(self, player_id: str, db: AsyncSession) -> Player | None:
        row = (await db.execute(_GET_PLAYER_BY_ID_SQL, {"id": player_id})).fetchone()
        return _row_to_player(row) if row else None

    async def list_active_by_session(self, session_id: str, db: AsyncSession) -> list[Player]:
        rows = (
            await db.execute(_LIST_ACTIVE_PLAYERS_SQL, {"session_id": session_id})
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    async def create_with_role_assignment(
        self,
        session_id: str,
        market_size: int,
        name: str | None,
        is_bot: bool,
        policy: RolePolicy,
        db: AsyncSession,
    ) -> Player | None:
        # Row lock serialises concurrent joins; held until the caller commits
        await db.execute(_LOCK_SESSION_SQL, {"id": session_id})
        existing = await self.list_active_by_session(session_id, db)
        if len(existing) >= market_size:
            return None
        assignment = policy(existing)
        row = (
            await db.execute(
                _INSERT_PLAYER_SQL,
                {
                    "session_id": session_id,
                    "name": name,
                    "role": assignment.role,
                    "valuation": assignment.valuation,
                    "production_cost": assignment.production_cost,
                    "is_bot": is_bot,
                },
            )
        ).fetchone()
        return _row_to_player(row)

    async def add_profit(self, player_id: str, amount: float, db: AsyncSession) -> None:
        await db.execute(_ADD_PROFIT_SQL, {"id": player_id, "amount": amount})
