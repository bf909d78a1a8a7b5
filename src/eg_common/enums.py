"""Global enums. Values must match DB CHECK constraints exactly."""

from enum import Enum


class SessionStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RoundStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"  # only reachable from WAITING when a session ends early


class OrderSide(str, Enum):
    BID = "bid"
    ASK = "ask"


class GameCategory(str, Enum):
    """How bots are scheduled for a game type."""
    CONTINUOUS_TRADING = "continuous_trading"
    SIMULTANEOUS = "simultaneous"
    SEQUENTIAL = "sequential"
    SPECIALIZED = "specialized"


class GameType(str, Enum):
    # Continuous double auction family
    DOUBLE_AUCTION = "double_auction"
    DOUBLE_AUCTION_TAX = "double_auction_tax"
    DOUBLE_AUCTION_PRICE_CONTROLS = "double_auction_price_controls"
    # Simultaneous-move
    BERTRAND = "bertrand"
    COURNOT = "cournot"
    PUBLIC_GOODS = "public_goods"
    NEGATIVE_EXTERNALITY = "negative_externality"
    PRISONER_DILEMMA = "prisoner_dilemma"
    BEAUTY_CONTEST = "beauty_contest"
    COMMON_POOL_RESOURCE = "common_pool_resource"
    STAG_HUNT = "stag_hunt"
    DICTATOR = "dictator"
    MATCHING_PENNIES = "matching_pennies"
    ELLSBERG = "ellsberg"
    NEWSVENDOR = "newsvendor"
    LINDAHL = "lindahl"
    PG_AUCTION = "pg_auction"
    SPONSORED_SEARCH = "sponsored_search"
    DOUBLE_DUTCH_AUCTION = "double_dutch_auction"
    # Sequential two-role
    ULTIMATUM = "ultimatum"
    BARGAINING = "bargaining"
    GIFT_EXCHANGE = "gift_exchange"
    PRINCIPAL_AGENT = "principal_agent"
    TRUST_GAME = "trust_game"
    MARKET_FOR_LEMONS = "market_for_lemons"
    POSTED_OFFER = "posted_offer"
    SEALED_BID_OFFER = "sealed_bid_offer"
    # Specialized
    MONOPOLY = "monopoly"
    COMPARATIVE_ADVANTAGE = "comparative_advantage"
    AUCTION = "auction"
    DISCOVERY_PROCESS = "discovery_process"
    DUTCH_AUCTION = "dutch_auction"
    ENGLISH_AUCTION = "english_auction"
    DISCRIMINATIVE_AUCTION = "discriminative_auction"
    ASSET_BUBBLE = "asset_bubble"
    CONTESTABLE_MARKET = "contestable_market"
    THREE_VILLAGE_TRADE = "three_village_trade"
    WOOL_EXPORT_PUNISHMENT = "wool_export_punishment"

    @classmethod
    def parse(cls, value: "str | GameType | None") -> "GameType":
        """Sessions without a game type predate multi-game support: treat as DA."""
        if value is None or value == "":
            return cls.DOUBLE_AUCTION
        return cls(value)


DA_GAME_TYPES: frozenset[GameType] = frozenset({
    GameType.DOUBLE_AUCTION,
    GameType.DOUBLE_AUCTION_TAX,
    GameType.DOUBLE_AUCTION_PRICE_CONTROLS,
})
