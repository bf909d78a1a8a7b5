"""Logging setup and the recent-bot-log ring buffer.

Log format:
    2026-10-19 12:00:00,123 INFO eg.bots: [DA] Bot 2 (buyer) bid @ 41.5 → OK
"""

import logging
from collections import deque

from config.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

BOT_LOGGER_NAME = "eg.bots"


class RecentLogBuffer(logging.Handler):
    """Keeps the last N formatted records in memory for the diagnostics endpoint."""

    def __init__(self, capacity: int = 50) -> None:
        super().__init__()
        self._lines: deque[str] = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter("%(asctime)s %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._lines.append(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def lines(self) -> list[str]:
        return list(self._lines)


_recent_bot_logs: RecentLogBuffer | None = None


def get_recent_bot_logs() -> RecentLogBuffer:
    """Buffer attached to the `eg.bots` logger (created on first use)."""
    global _recent_bot_logs  # noqa: PLW0603
    if _recent_bot_logs is None:
        _recent_bot_logs = RecentLogBuffer(settings.BOT_RECENT_LOG_SIZE)
        logging.getLogger(BOT_LOGGER_NAME).addHandler(_recent_bot_logs)
    return _recent_bot_logs


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    get_recent_bot_logs()
