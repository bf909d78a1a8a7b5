"""Pydantic schemas for the game/market API."""

from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.eg_market.domain.models import Trade


class OrderRequest(BaseModel):
    round_id: str
    player_id: str
    # Range checks happen in the order rules so they share the AppError envelope
    price: float


class ActionRequest(BaseModel):
    round_id: str
    player_id: str
    action: dict[str, Any] = Field(default_factory=dict)


class BookEntryOut(BaseModel):
    id: str
    player_id: str
    price: float
    created_at: datetime


class OrderBookOut(BaseModel):
    round_id: str
    bids: list[BookEntryOut]
    asks: list[BookEntryOut]


class TradeOut(BaseModel):
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

    @classmethod
    def from_domain(cls, trade: Trade) -> "TradeOut":
        return cls(**asdict(trade))


class TradeListOut(BaseModel):
    round_id: str
    trades: list[TradeOut]
    total_trades: int
    average_price: float
    total_surplus: float
