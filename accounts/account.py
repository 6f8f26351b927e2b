from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict
from portfolio.holding import Holding

DEFAULT_STARTING_CASH = Decimal("100000.00")
DEFAULT_MAX_HOLDINGS = 20

@dataclass
class Account:
    cash: Decimal = DEFAULT_STARTING_CASH
    holdings: Dict[str, Holding] = field(default_factory=dict)  # symbol -> Holding, insertion ordered
    max_holdings: int = DEFAULT_MAX_HOLDINGS
    starting_cash: Decimal | None = None

    def __post_init__(self) -> None:
        self.cash = Decimal(self.cash)
        if self.cash < 0:
            raise ValueError(f"cash must be non-negative; got {self.cash}")
        if self.max_holdings <= 0:
            raise ValueError(f"max_holdings must be positive; got {self.max_holdings}")
        if self.starting_cash is None:
            self.starting_cash = self.cash

    def invested(self) -> Decimal:
        return sum((h.cost_basis for h in self.holdings.values()), Decimal("0"))

    def has_capacity(self) -> bool:
        return len(self.holdings) < self.max_holdings
