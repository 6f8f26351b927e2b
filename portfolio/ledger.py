"""Portfolio ledger: buy/sell bookkeeping against a single account.

Prices are supplied by the caller; the ledger never fetches them.
Every operation validates before it mutates, so a rejected trade leaves
cash and holdings exactly as they were.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from accounts.account import Account
from common.errors import (
    CapacityExceededError,
    InsufficientBalanceError,
    InsufficientSharesError,
)
from portfolio.holding import Holding

logger = logging.getLogger(__name__)


def _check_trade_args(quantity: int, price: Decimal) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValueError(f"quantity must be a positive integer; got {quantity!r}")
    if not isinstance(price, Decimal) or not price.is_finite() or price <= 0:
        raise ValueError(f"price must be a positive Decimal; got {price!r}")


@dataclass
class PortfolioLedger:
    """Mutates one Account's cash and holdings. Single writer, not thread-safe."""

    account: Account

    def find_holding(self, symbol: str) -> Optional[Holding]:
        """Exact, case-sensitive lookup."""
        return self.account.holdings.get(symbol)

    def buy(self, symbol: str, quantity: int, price: Decimal) -> Holding:
        """Buy ``quantity`` shares at ``price``.

        The average price is updated as a volume-weighted average:
        ``(old_avg * old_qty + qty * price) / (old_qty + qty)``.

        Raises:
            InsufficientBalanceError: Cost exceeds available cash.
            CapacityExceededError: New symbol while holdings are at capacity.
        """
        _check_trade_args(quantity, price)
        acct = self.account
        cost = price * quantity

        if acct.cash < cost:
            raise InsufficientBalanceError(symbol, cost, acct.cash)

        holding = self.find_holding(symbol)
        if holding is None:
            if not acct.has_capacity():
                raise CapacityExceededError(symbol, acct.max_holdings)
            holding = Holding(symbol=symbol, quantity=quantity, avg_price=price)
            acct.holdings[symbol] = holding
        else:
            total = holding.avg_price * holding.quantity + cost
            holding.quantity += quantity
            holding.avg_price = total / holding.quantity

        acct.cash -= cost
        logger.debug("BUY %d %s @ %s -> qty=%d avg=%s cash=%s",
                     quantity, symbol, price, holding.quantity, holding.avg_price, acct.cash)
        return holding

    def sell(self, symbol: str, quantity: int, price: Decimal) -> Optional[Holding]:
        """Sell ``quantity`` shares at ``price``.

        The average price of what remains is unchanged. A position sold down
        to zero is removed.

        Returns:
            The surviving holding, or None if the position was closed.

        Raises:
            InsufficientSharesError: Symbol not held, or fewer shares than requested.
        """
        _check_trade_args(quantity, price)
        acct = self.account

        holding = self.find_holding(symbol)
        held = holding.quantity if holding is not None else 0
        if holding is None or held < quantity:
            raise InsufficientSharesError(symbol, quantity, held)

        holding.quantity -= quantity
        acct.cash += price * quantity
        logger.debug("SELL %d %s @ %s -> qty=%d cash=%s",
                     quantity, symbol, price, holding.quantity, acct.cash)

        if holding.quantity == 0:
            del acct.holdings[symbol]
            return None
        return holding
