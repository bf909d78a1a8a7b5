"""Bid/ask legality against the submitter's role and private value.

Checked before an order is accepted, never by the matcher.
"""

from src.eg_common.errors import (
    AskBelowCostError,
    BidExceedsValuationError,
    MissingPrivateValueError,
    WrongRoleError,
)
from src.eg_market.rules.price_range import check_price_positive
from src.eg_session.domain.models import Player
from src.eg_session.domain.roles import BUYER, SELLER


def validate_bid(price: float, player: Player) -> None:
    if player.role != BUYER:
        raise WrongRoleError("Only buyers can submit bids")
    if player.valuation is None:
        raise MissingPrivateValueError("Player has no valuation")
    check_price_positive(price)
    if price > player.valuation:
        raise BidExceedsValuationError(price, player.valuation)


def validate_ask(price: float, player: Player) -> None:
    if player.role != SELLER:
        raise WrongRoleError("Only sellers can submit asks")
    if player.production_cost is None:
        raise MissingPrivateValueError("Player has no production cost")
    check_price_positive(price)
    if price < player.production_cost:
        raise AskBelowCostError(price, player.production_cost)
