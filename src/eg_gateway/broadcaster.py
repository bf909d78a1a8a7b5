"""Broadcast gateway: best-effort fan-out of game events to connected clients.

Events are published to Redis pub/sub as JSON `{"event": ..., "data": ...}` on
`{prefix}:{room}`. A socket edge (outside this service) subscribes and relays
to browsers. Rooms are `market-{session_code}` for in-round traffic and
`session-{session_code}` for lifecycle notices.

Delivery is not guaranteed; a publish failure is logged and never fails the
operation that triggered it.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

import redis.asyncio as aioredis

from config.settings import settings

logger = logging.getLogger(__name__)


class EventName:
    BID_SUBMITTED = "bid-submitted"
    ASK_SUBMITTED = "ask-submitted"
    TRADE_EXECUTED = "trade-executed"
    ROUND_STARTED = "round-started"
    ROUND_ENDED = "round-ended"
    ROUND_RESULTS = "round-results"
    ACTION_SUBMITTED = "action-submitted"
    FIRST_MOVE_SUBMITTED = "first-move-submitted"
    TIMER_UPDATE = "timer-update"
    SESSION_STARTED = "session-started"
    SESSION_ENDED = "session-ended"
    PLAYER_JOINED = "player-joined"


def market_room(session_code: str) -> str:
    return f"market-{session_code}"


def session_room(session_code: str) -> str:
    return f"session-{session_code}"


class BroadcastGateway(Protocol):
    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_event(event: str, payload: dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": payload}, default=_json_default)


class RedisBroadcaster:
    def __init__(self, url: str | None = None, prefix: str | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._prefix = prefix or settings.BROADCAST_CHANNEL_PREFIX
        self._redis: aioredis.Redis | None = None

    async def get_redis(self) -> aioredis.Redis:
        """Get or create the Redis connection pool."""
        if self._redis is None:
            self._redis = aioredis.from_url(self._url, decode_responses=True)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None

    def channel(self, room: str) -> str:
        return f"{self._prefix}:{room}"

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None:
        try:
            redis = await self.get_redis()
            await redis.publish(self.channel(room), encode_event(event, payload))
        except Exception:
            logger.warning("broadcast %s to %s failed", event, room, exc_info=True)


class NullBroadcaster:
    """Used when BROADCAST_ENABLED is false."""

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None:
        logger.debug("broadcast disabled: %s -> %s", event, room)

    async def close(self) -> None:
        return None


def build_broadcaster() -> RedisBroadcaster | NullBroadcaster:
    if settings.BROADCAST_ENABLED:
        return RedisBroadcaster()
    return NullBroadcaster()
