"""Quote fetcher for the Alpha Vantage GLOBAL_QUOTE endpoint.

One ``requests.Session`` is held for the fetcher's lifetime; use the fetcher
as a context manager so the session is released on every exit path::

    with QuoteFetcher(api_key=key) as fetcher:
        price = fetcher.fetch_price("IBM")

Expected response shape::

    {"Global Quote": {"01. symbol": "IBM", "05. price": "150.2300", ...}}

Every failure surfaces as a subclass of ``QuoteError``; nothing is retried
and nothing is cached.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from common.config_loader import SimulatorConfig
from common.errors import (
    NetworkError,
    ParseError,
    PriceUnavailableError,
    SymbolNotFoundError,
)

logger = logging.getLogger(__name__)

QUOTE_CONTAINER = "Global Quote"
PRICE_FIELD = "05. price"

# Fields the provider uses to explain an empty answer (bad key, rate limit...)
_PROVIDER_MESSAGE_FIELDS = ("Error Message", "Note", "Information")


def normalize_symbol(symbol: str) -> str:
    """Strip and uppercase a ticker; reject empty input."""
    sym = (symbol or "").strip().upper()
    if not sym:
        raise ValueError("symbol must be a non-empty string")
    return sym


@dataclass(frozen=True)
class Quote:
    """Latest traded price for a symbol at fetch time."""

    symbol: str
    price: Decimal
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parse_quote_payload(symbol: str, text: Optional[str]) -> Decimal:
    """Extract the current price from a GLOBAL_QUOTE response body.

    Args:
        symbol: Ticker the request was made for (used in error messages).
        text: Raw response body.

    Returns:
        The price as a strictly positive Decimal.

    Raises:
        ParseError: Body empty, not a JSON object, or price text not numeric.
        SymbolNotFoundError: No (or an empty) quote container.
        PriceUnavailableError: Container without a price, or price <= 0.
    """
    if text is None or not text.strip():
        raise ParseError(symbol, f"Empty response for {symbol}")

    try:
        data = json.loads(text)
    except ValueError as e:
        raise ParseError(symbol, f"JSON parse error for {symbol}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(symbol, f"Unexpected response for {symbol}: not a JSON object")

    quote = data.get(QUOTE_CONTAINER)
    if not quote or not isinstance(quote, dict):
        detail = _provider_message(data)
        msg = f"Symbol not found: {symbol}"
        if detail:
            msg = f"{msg} ({detail})"
        raise SymbolNotFoundError(symbol, msg)

    raw_price = quote.get(PRICE_FIELD)
    if raw_price is None:
        raise PriceUnavailableError(symbol, f"Price unavailable for {symbol}")

    try:
        price = Decimal(str(raw_price).strip())
    except InvalidOperation:
        raise ParseError(symbol, f"Non-numeric price for {symbol}: {raw_price!r}") from None
    if not price.is_finite():
        raise ParseError(symbol, f"Non-numeric price for {symbol}: {raw_price!r}")
    if price <= 0:
        raise PriceUnavailableError(symbol, f"Price unavailable for {symbol}: provider returned {raw_price}")
    return price


def _provider_message(data: Dict[str, Any]) -> Optional[str]:
    for key in _PROVIDER_MESSAGE_FIELDS:
        value = data.get(key)
        if value:
            return str(value)
    return None


class QuoteFetcher:
    """Fetches latest prices from the quote provider over HTTP."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co/query",
        function: str = "GLOBAL_QUOTE",
        timeout: float = 10.0,
        user_agent: str = "Mozilla/5.0",
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            api_key: Provider credential, sent as the ``apikey`` query parameter.
            base_url: Quote endpoint.
            function: Value of the ``function`` query parameter.
            timeout: Request timeout in seconds.
            user_agent: User-Agent header value.
            session: Optional pre-built session; the caller keeps ownership.
        """
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.base_url = base_url
        self.function = function
        self.timeout = timeout
        self.user_agent = user_agent

        self._owns_session = session is None
        self.session = session if session is not None else self._create_session()

    @classmethod
    def from_config(cls, cfg: SimulatorConfig, session: Optional[requests.Session] = None) -> "QuoteFetcher":
        return cls(
            api_key=cfg.require_api_key(),
            base_url=cfg.base_url,
            function=cfg.function,
            timeout=cfg.timeout,
            user_agent=cfg.user_agent,
            session=session,
        )

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": self.user_agent})
        return session

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "QuoteFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch_quote(self, symbol: str) -> Quote:
        """Fetch the latest quote for ``symbol``.

        Raises:
            NetworkError: Connection error, timeout or any status other than 200.
            ParseError, SymbolNotFoundError, PriceUnavailableError: see
                :func:`parse_quote_payload`.
        """
        sym = normalize_symbol(symbol)
        params = {"function": self.function, "symbol": sym, "apikey": self.api_key}
        logger.debug("Fetching quote for %s from %s", sym, self.base_url)

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.exceptions.Timeout as e:
            logger.debug("Quote request for %s timed out after %ss", sym, self.timeout)
            raise NetworkError(sym, f"Network error: request for {sym} timed out") from e
        except requests.RequestException as e:
            logger.debug("Quote request for %s failed: %s", sym, type(e).__name__)
            raise NetworkError(sym, f"Network error: {type(e).__name__} while fetching {sym}") from e

        try:
            if response.status_code != 200:
                logger.debug("Quote request for %s returned HTTP %s", sym, response.status_code)
                raise NetworkError(
                    sym,
                    f"Network error: HTTP {response.status_code} while fetching {sym}",
                    status_code=response.status_code,
                )
            body = response.text
        finally:
            response.close()

        price = parse_quote_payload(sym, body)
        logger.debug("Quote %s = %s", sym, price)
        return Quote(symbol=sym, price=price)

    def fetch_price(self, symbol: str) -> Decimal:
        """Fetch just the latest price (strictly positive)."""
        return self.fetch_quote(symbol).price
