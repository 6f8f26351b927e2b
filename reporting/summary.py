from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import logging

import pandas as pd

from accounts.account import Account
from common.errors import QuoteError

logger = logging.getLogger(__name__)

PriceLookup = Callable[[str], Decimal]

REPORT_COLUMNS = ["Symbol", "Qty", "Avg", "LTP", "PnL"]
UNAVAILABLE = "n/a"


@dataclass(frozen=True)
class ReportLine:
    symbol: str
    quantity: int
    avg_price: Decimal
    current_price: Optional[Decimal]
    pnl: Optional[Decimal]
    error: Optional[str] = None

    @property
    def priced(self) -> bool:
        return self.current_price is not None


def portfolio_report(account: Account, price_lookup: PriceLookup) -> List[ReportLine]:
    """Price every holding and compute unrealized PnL, in holding order.

    A symbol whose lookup fails gets a line with no price and no PnL; the
    remaining symbols are still reported.
    """
    lines: List[ReportLine] = []
    for h in list(account.holdings.values()):
        try:
            price = price_lookup(h.symbol)
        except QuoteError as e:
            logger.warning("No price for %s in report: %s", h.symbol, e)
            lines.append(ReportLine(h.symbol, h.quantity, h.avg_price, None, None, error=str(e)))
            continue
        lines.append(ReportLine(h.symbol, h.quantity, h.avg_price, price, h.unrealized_pnl(price)))
    return lines


def total_pnl(lines: List[ReportLine]) -> Decimal:
    return sum((ln.pnl for ln in lines if ln.pnl is not None), Decimal("0"))


def _money(v: Optional[Decimal]) -> str:
    return UNAVAILABLE if v is None else f"${v:,.2f}"


def report_frame(lines: List[ReportLine]) -> pd.DataFrame:
    """Display table for a report; unpriced lines show n/a."""
    rows = [
        {
            "Symbol": ln.symbol,
            "Qty": ln.quantity,
            "Avg": _money(ln.avg_price),
            "LTP": _money(ln.current_price),
            "PnL": _money(ln.pnl),
        }
        for ln in lines
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def render_report(lines: List[ReportLine]) -> str:
    out = ["PORTFOLIO", "-" * 34]
    if not lines:
        out.append("No holdings.")
        return "\n".join(out)

    out.append(report_frame(lines).to_string(index=False))
    out.append("-" * 34)
    out.append(f"Total unrealized PnL: {_money(total_pnl(lines))}")
    missing = [ln.symbol for ln in lines if not ln.priced]
    if missing:
        out.append(f"Price unavailable for: {', '.join(missing)} (excluded from total)")
    return "\n".join(out)


def balance_summary(account: Account) -> Dict[str, Any]:
    return {
        "cash": account.cash,
        "starting_cash": account.starting_cash,
        "invested": account.invested(),
        "positions": len(account.holdings),
        "max_positions": account.max_holdings,
    }
