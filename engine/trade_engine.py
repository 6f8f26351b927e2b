"""Trade engine.

Ties the quote fetcher to the ledger: every trade fetches the current
price first and only then touches the account, so a failed quote leaves
the account unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Protocol

from portfolio.ledger import PortfolioLedger
from quotes.quote_fetcher import Quote, normalize_symbol
from reporting.summary import ReportLine, portfolio_report

logger = logging.getLogger(__name__)


class QuoteSource(Protocol):
    def fetch_quote(self, symbol: str) -> Quote: ...

    def fetch_price(self, symbol: str) -> Decimal: ...


@dataclass(frozen=True)
class Trade:
    """An executed simulated trade."""

    action: str  # BUY/SELL
    symbol: str
    quantity: int
    price: Decimal

    @property
    def value(self) -> Decimal:
        return self.price * self.quantity

    def __str__(self) -> str:
        """Format trade for display."""
        verb = "Bought" if self.action == "BUY" else "Sold"
        return f"{verb} {self.quantity} {self.symbol} @ ${self.price:,.2f}"


@dataclass
class TradeEngine:
    ledger: PortfolioLedger
    quotes: QuoteSource

    def quote(self, symbol: str) -> Quote:
        return self.quotes.fetch_quote(normalize_symbol(symbol))

    def buy(self, symbol: str, quantity: int) -> Trade:
        sym = normalize_symbol(symbol)
        price = self.quotes.fetch_price(sym)
        self.ledger.buy(sym, quantity, price)
        trade = Trade("BUY", sym, quantity, price)
        logger.info("%s", trade)
        return trade

    def sell(self, symbol: str, quantity: int) -> Trade:
        sym = normalize_symbol(symbol)
        price = self.quotes.fetch_price(sym)
        self.ledger.sell(sym, quantity, price)
        trade = Trade("SELL", sym, quantity, price)
        logger.info("%s", trade)
        return trade

    def report(self) -> List[ReportLine]:
        return portfolio_report(self.ledger.account, self.quotes.fetch_price)
