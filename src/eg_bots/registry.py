"""Closed table of bot strategies by game type.

Game types absent from the table have no bot behaviour: bots seated in such
a session sit the rounds out, and the dispatcher logs that once per round.
"""

import logging

from src.eg_bots.strategies.base import BotStrategy
from src.eg_bots.strategies.double_auction import DoubleAuctionStrategy
from src.eg_bots.strategies.sequential import (
    BargainingStrategy,
    GiftExchangeStrategy,
    MarketForLemonsStrategy,
    PrincipalAgentStrategy,
    TrustGameStrategy,
    UltimatumStrategy,
)
from src.eg_bots.strategies.simultaneous import (
    BeautyContestStrategy,
    BertrandStrategy,
    CommonPoolResourceStrategy,
    CournotStrategy,
    DictatorStrategy,
    MatchingPenniesStrategy,
    NegativeExternalityStrategy,
    PrisonerDilemmaStrategy,
    PublicGoodsStrategy,
    StagHuntStrategy,
)
from src.eg_bots.strategies.specialized import (
    ComparativeAdvantageStrategy,
    DiscoveryProcessStrategy,
    MonopolyStrategy,
    SealedBidAuctionStrategy,
)
from src.eg_common.enums import GameType
from src.eg_common.logging_config import BOT_LOGGER_NAME

logger = logging.getLogger(BOT_LOGGER_NAME)

_da = DoubleAuctionStrategy()

STRATEGIES: dict[GameType, BotStrategy] = {
    # All three DA variants bid the same way; the engine applies tax/controls
    GameType.DOUBLE_AUCTION: _da,
    GameType.DOUBLE_AUCTION_TAX: _da,
    GameType.DOUBLE_AUCTION_PRICE_CONTROLS: _da,
    GameType.PRISONER_DILEMMA: PrisonerDilemmaStrategy(),
    GameType.BEAUTY_CONTEST: BeautyContestStrategy(),
    GameType.PUBLIC_GOODS: PublicGoodsStrategy(),
    GameType.BERTRAND: BertrandStrategy(),
    GameType.COURNOT: CournotStrategy(),
    GameType.NEGATIVE_EXTERNALITY: NegativeExternalityStrategy(),
    GameType.COMMON_POOL_RESOURCE: CommonPoolResourceStrategy(),
    GameType.STAG_HUNT: StagHuntStrategy(),
    GameType.DICTATOR: DictatorStrategy(),
    GameType.MATCHING_PENNIES: MatchingPenniesStrategy(),
    GameType.ULTIMATUM: UltimatumStrategy(),
    GameType.BARGAINING: BargainingStrategy(),
    GameType.GIFT_EXCHANGE: GiftExchangeStrategy(),
    GameType.PRINCIPAL_AGENT: PrincipalAgentStrategy(),
    GameType.TRUST_GAME: TrustGameStrategy(),
    GameType.MARKET_FOR_LEMONS: MarketForLemonsStrategy(),
    GameType.MONOPOLY: MonopolyStrategy(),
    GameType.COMPARATIVE_ADVANTAGE: ComparativeAdvantageStrategy(),
    GameType.AUCTION: SealedBidAuctionStrategy(),
    GameType.DISCOVERY_PROCESS: DiscoveryProcessStrategy(),
}


def get_strategy(game_type: GameType) -> BotStrategy | None:
    strategy = STRATEGIES.get(game_type)
    if strategy is None:
        logger.info("No bot strategy for game type %r; bots will not act", game_type.value)
    return strategy
