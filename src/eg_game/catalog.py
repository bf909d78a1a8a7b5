"""Static facts about each game type."""

from src.eg_common.enums import DA_GAME_TYPES, GameCategory, GameType
from src.eg_session.domain.roles import PAIRED_ROLES

_SEQUENTIAL = frozenset(PAIRED_ROLES)

_SPECIALIZED = frozenset({
    GameType.MONOPOLY,
    GameType.COMPARATIVE_ADVANTAGE,
    GameType.AUCTION,
    GameType.DISCOVERY_PROCESS,
    GameType.DUTCH_AUCTION,
    GameType.ENGLISH_AUCTION,
    GameType.DISCRIMINATIVE_AUCTION,
    GameType.ASSET_BUBBLE,
    GameType.CONTESTABLE_MARKET,
    GameType.THREE_VILLAGE_TRADE,
    GameType.WOOL_EXPORT_PUNISHMENT,
})


def category_of(game_type: GameType) -> GameCategory:
    if game_type in DA_GAME_TYPES:
        return GameCategory.CONTINUOUS_TRADING
    if game_type in _SEQUENTIAL:
        return GameCategory.SEQUENTIAL
    if game_type in _SPECIALIZED:
        return GameCategory.SPECIALIZED
    return GameCategory.SIMULTANEOUS


def allows_multiple_actions(game_type: GameType) -> bool:
    """Specialized games run multi-step phases; the others take one decision per round."""
    return category_of(game_type) == GameCategory.SPECIALIZED
