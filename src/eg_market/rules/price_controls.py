from dataclasses import dataclass
from typing import Any

from src.eg_common.errors import PriceControlViolationError

CEILING = "ceiling"
FLOOR = "floor"

DEFAULT_CONTROL_TYPE = CEILING
DEFAULT_CONTROL_PRICE = 35.0


@dataclass(frozen=True)
class PriceControl:
    control_type: str
    control_price: float

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> "PriceControl":
        config = config or {}
        control_type = config.get("controlType") or DEFAULT_CONTROL_TYPE
        if control_type not in (CEILING, FLOOR):
            control_type = DEFAULT_CONTROL_TYPE
        control_price = config.get("controlPrice") or DEFAULT_CONTROL_PRICE
        return cls(control_type=control_type, control_price=float(control_price))

    def as_dict(self) -> dict[str, Any]:
        return {"controlType": self.control_type, "controlPrice": self.control_price}


def check_price_control(price: float, control: PriceControl) -> None:
    """Binding ceiling rejects prices above it; binding floor rejects prices below it."""
    if control.control_type == CEILING and price > control.control_price:
        raise PriceControlViolationError(
            f"Price ${price:.2f} exceeds the price ceiling of ${control.control_price:.2f}"
        )
    if control.control_type == FLOOR and price < control.control_price:
        raise PriceControlViolationError(
            f"Price ${price:.2f} is below the price floor of ${control.control_price:.2f}"
        )
