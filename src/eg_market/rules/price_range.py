import math

from src.eg_common.errors import InvalidPriceError


def check_price_positive(price: float) -> None:
    """Raise InvalidPriceError(4001) unless price is a finite number > 0."""
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise InvalidPriceError()
    if not math.isfinite(price) or price <= 0:
        raise InvalidPriceError()
