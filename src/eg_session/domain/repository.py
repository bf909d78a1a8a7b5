"""Session, Round and Player repository protocols."""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_session.domain.models import Player, RoleAssignment, Round, Session

RolePolicy = Callable[[list[Player]], RoleAssignment]


class SessionRepositoryProtocol(Protocol):
    async def get_by_id(self, session_id: str, db: AsyncSession) -> Session | None: ...

    async def get_by_code(self, code: str, db: AsyncSession) -> Session | None: ...

    async def transition_status(
        self,
        session_id: str,
        from_statuses: tuple[str, ...],
        to_status: str,
        db: AsyncSession,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool:
        """Conditional status update; False when the row was not in `from_statuses`."""
        ...

    async def set_current_round(self, session_id: str, round_number: int, db: AsyncSession) -> None: ...


class RoundRepositoryProtocol(Protocol):
    async def get_by_id(self, round_id: str, db: AsyncSession) -> Round | None: ...

    async def get_by_number(
        self, session_id: str, round_number: int, db: AsyncSession
    ) -> Round | None: ...

    async def list_by_session(self, session_id: str, db: AsyncSession) -> list[Round]: ...

    async def create_batch(self, session_id: str, num_rounds: int, db: AsyncSession) -> list[Round]: ...

    async def transition_status(
        self,
        round_id: str,
        from_status: str,
        to_status: str,
        db: AsyncSession,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> bool: ...

    async def cancel_waiting(self, session_id: str, db: AsyncSession) -> int:
        """Mark every still-waiting round of the session cancelled. Returns the count."""
        ...


class PlayerRepositoryProtocol(Protocol):
    async def get_by_id(self, player_id: str, db: AsyncSession) -> Player | None: ...

    async def list_active_by_session(self, session_id: str, db: AsyncSession) -> list[Player]: ...

    async def create_with_role_assignment(
        self,
        session_id: str,
        market_size: int,
        name: str | None,
        is_bot: bool,
        policy: RolePolicy,
        db: AsyncSession,
    ) -> Player | None:
        """Seat one player atomically.

        Locks the session row, re-reads the seated players, returns None when
        the market is already full, otherwise inserts the player with the role
        `policy(existing)` picks.
        """
        ...

    async def add_profit(self, player_id: str, amount: float, db: AsyncSession) -> None: ...
