"""Per-unit tax (or subsidy, when negative) levied on one side of each trade.

The clearing price is unchanged; only the taxed side's profit moves:
  buyer taxed:  valuation - price - tax
  seller taxed: price - tax - cost
"""

from dataclasses import dataclass
from typing import Any

from src.eg_market.domain.models import MatchedTrade

TAX_ON_BUYER = "buyer"
TAX_ON_SELLER = "seller"


@dataclass(frozen=True)
class TaxPolicy:
    tax_type: str
    tax_amount: float

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> "TaxPolicy":
        config = config or {}
        tax_type = config.get("taxType") or TAX_ON_BUYER
        if tax_type not in (TAX_ON_BUYER, TAX_ON_SELLER):
            tax_type = TAX_ON_BUYER
        return cls(tax_type=tax_type, tax_amount=float(config.get("taxAmount") or 0))

    def apply(self, match: MatchedTrade) -> tuple[float, float]:
        """(buyer_profit, seller_profit) after the tax."""
        if self.tax_type == TAX_ON_BUYER:
            return match.buyer_profit - self.tax_amount, match.seller_profit
        return match.buyer_profit, match.seller_profit - self.tax_amount

    def as_dict(self) -> dict[str, Any]:
        return {"taxType": self.tax_type, "taxAmount": self.tax_amount}
