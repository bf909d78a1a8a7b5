"""MarketRepository Protocol — bids, asks and trades of a round."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eg_market.domain.models import BookEntry, MatchedTrade, Trade


class MarketRepositoryProtocol(Protocol):
    async def save_bid(self, entry: BookEntry, db: AsyncSession) -> None: ...

    async def save_ask(self, entry: BookEntry, db: AsyncSession) -> None: ...

    async def list_active_bids(self, round_id: str, db: AsyncSession) -> list[BookEntry]:
        """Active bids, each carrying its buyer's valuation as `private_value`."""
        ...

    async def list_active_asks(self, round_id: str, db: AsyncSession) -> list[BookEntry]:
        """Active asks, each carrying its seller's production cost as `private_value`."""
        ...

    async def execute_trade(
        self,
        match: MatchedTrade,
        buyer_profit: float,
        seller_profit: float,
        db: AsyncSession,
    ) -> Trade | None:
        """Deactivate both orders, insert the trade and credit both profits, all or nothing.

        Returns None, writing nothing, if either order is no longer active.
        """
        ...

    async def deactivate_all_for_round(self, round_id: str, db: AsyncSession) -> int:
        """Idempotent; returns how many orders were still active."""
        ...

    async def list_trades(self, round_id: str, db: AsyncSession) -> list[Trade]: ...
