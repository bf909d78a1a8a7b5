from dataclasses import dataclass
from datetime import datetime


@dataclass
class BookEntry:
    """Active bid or ask as the matcher sees it.

    `private_value` is the owner's valuation (bids) or production cost (asks).
    `arrival_seq` breaks ties between orders stamped with the same created_at.
    """

    id: str
    round_id: str
    player_id: str
    price: float
    created_at: datetime
    private_value: float = 0.0
    arrival_seq: int = 0
    is_active: bool = True


@dataclass
class MatchedTrade:
    """One crossing pair proposed by the matcher, before persistence."""

    bid: BookEntry
    ask: BookEntry
    price: float
    buyer_profit: float
    seller_profit: float


@dataclass
class Trade:
    id: str
    round_id: str
    buyer_id: str
    seller_id: str
    bid_id: str
    ask_id: str
    price: float
    buyer_profit: float
    seller_profit: float
    created_at: datetime | None = None


@dataclass
class MarketStats:
    total_trades: int
    average_price: float
    total_volume: float
    total_surplus: float
