"""Error taxonomy for the simulator.

Quote failures and ledger rejections are recoverable: the command shell
prints them and keeps reading commands. ConfigError is raised at startup.
"""
from __future__ import annotations

from typing import Optional


class SimulatorError(Exception):
    """Base class for every user-facing simulator failure."""

    pass


class ConfigError(SimulatorError):
    """Configuration is missing or invalid."""

    pass


# --- quote provider ---------------------------------------------------------

class QuoteError(SimulatorError):
    """A quote could not be obtained for a symbol."""

    def __init__(self, symbol: str, message: str):
        super().__init__(message)
        self.symbol = symbol


class NetworkError(QuoteError):
    """Transport failed: connection error, timeout or non-OK status."""

    def __init__(self, symbol: str, message: str, status_code: Optional[int] = None):
        super().__init__(symbol, message)
        self.status_code = status_code


class ParseError(QuoteError):
    """Response body was empty, not JSON, or held a non-numeric price."""

    pass


class SymbolNotFoundError(QuoteError):
    """Provider returned no quote container for the symbol."""

    pass


class PriceUnavailableError(QuoteError):
    """Quote container present but without a usable price."""

    pass


# --- ledger -----------------------------------------------------------------

class LedgerError(SimulatorError):
    """A trade was rejected; account state is unchanged."""

    pass


class InsufficientBalanceError(LedgerError):
    def __init__(self, symbol: str, cost, cash):
        super().__init__(f"Insufficient balance: {symbol} costs ${cost:,.2f}, cash is ${cash:,.2f}")
        self.symbol = symbol
        self.cost = cost
        self.cash = cash


class InsufficientSharesError(LedgerError):
    def __init__(self, symbol: str, requested: int, held: int):
        super().__init__(f"Not enough shares: requested {requested} {symbol}, holding {held}")
        self.symbol = symbol
        self.requested = requested
        self.held = held


class CapacityExceededError(LedgerError):
    def __init__(self, symbol: str, max_holdings: int):
        super().__init__(
            f"Cannot open a position in {symbol}: already holding the maximum of {max_holdings} symbols"
        )
        self.symbol = symbol
        self.max_holdings = max_holdings
