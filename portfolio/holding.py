from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal

@dataclass
class Holding:
    symbol: str
    quantity: int
    avg_price: Decimal  # volume-weighted over all buys

    @property
    def cost_basis(self) -> Decimal:
        return self.avg_price * self.quantity

    def unrealized_pnl(self, price: Decimal) -> Decimal:
        return (price - self.avg_price) * self.quantity
