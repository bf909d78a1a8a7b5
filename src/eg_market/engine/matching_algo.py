"""Double-auction matching over a snapshot of the active book.

Pure: takes active bids and asks, returns the crossing pairs. Persisting the
pairs (and deactivating their orders) is the engine's job.
"""

from src.eg_market.domain.models import BookEntry, MarketStats, MatchedTrade, Trade


def _bid_priority(b: BookEntry) -> tuple[float, object, int]:
    return (-b.price, b.created_at, b.arrival_seq)


def _ask_priority(a: BookEntry) -> tuple[float, object, int]:
    return (a.price, a.created_at, a.arrival_seq)


def match_orders(bids: list[BookEntry], asks: list[BookEntry]) -> list[MatchedTrade]:
    """Pair the highest bids with the lowest asks while they cross.

    Price-time priority on both sides; each trade clears at the midpoint.
    Each order appears in at most one returned trade. Prices are not rounded
    and not checked against valuation/cost here.
    """
    sorted_bids = sorted(bids, key=_bid_priority)
    sorted_asks = sorted(asks, key=_ask_priority)

    trades: list[MatchedTrade] = []
    i = j = 0
    while i < len(sorted_bids) and j < len(sorted_asks):
        bid = sorted_bids[i]
        ask = sorted_asks[j]
        if bid.price < ask.price:
            break
        price = (bid.price + ask.price) / 2
        trades.append(
            MatchedTrade(
                bid=bid,
                ask=ask,
                price=price,
                buyer_profit=bid.private_value - price,
                seller_profit=price - ask.private_value,
            )
        )
        i += 1
        j += 1
    return trades


def calculate_market_stats(trades: list[Trade]) -> MarketStats:
    if not trades:
        return MarketStats(total_trades=0, average_price=0.0, total_volume=0.0, total_surplus=0.0)
    volume = sum(t.price for t in trades)
    return MarketStats(
        total_trades=len(trades),
        average_price=volume / len(trades),
        total_volume=volume,
        total_surplus=sum(t.buyer_profit + t.seller_profit for t in trades),
    )
