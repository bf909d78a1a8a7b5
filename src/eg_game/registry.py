"""Game type → engine lookup."""

import logging

from src.eg_common.enums import GameType
from src.eg_common.errors import GameEngineNotFoundError, UnknownGameTypeError
from src.eg_common.locks import RoundLocks
from src.eg_game.engine import GameEngine
from src.eg_game.recorded import RecordedActionEngine
from src.eg_gateway.broadcaster import BroadcastGateway
from src.eg_market.engine.engine import (
    DoubleAuctionEngine,
    PriceControlsEngine,
    TaxSubsidyEngine,
)

logger = logging.getLogger(__name__)


class GameRegistry:
    def __init__(self) -> None:
        self._engines: dict[GameType, GameEngine] = {}

    def register(self, engine: GameEngine) -> None:
        if engine.game_type in self._engines:
            logger.warning("replacing engine for %s", engine.game_type.value)
        self._engines[engine.game_type] = engine

    def get(self, game_type: GameType | str | None) -> GameEngine:
        try:
            gt = GameType.parse(game_type)
        except ValueError as exc:
            raise UnknownGameTypeError(str(game_type)) from exc
        engine = self._engines.get(gt)
        if engine is None:
            raise GameEngineNotFoundError(gt.value)
        return engine

    def has(self, game_type: GameType) -> bool:
        return game_type in self._engines

    def __len__(self) -> int:
        return len(self._engines)


def build_registry(broadcaster: BroadcastGateway, locks: RoundLocks) -> GameRegistry:
    """DA variants get the order-book engines; every other type records decisions."""
    registry = GameRegistry()
    registry.register(DoubleAuctionEngine(broadcaster, locks))
    registry.register(TaxSubsidyEngine(broadcaster, locks))
    registry.register(PriceControlsEngine(broadcaster, locks))
    for game_type in GameType:
        if not registry.has(game_type):
            registry.register(RecordedActionEngine(game_type, broadcaster, locks))
    return registry
