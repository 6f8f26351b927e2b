"""Stock market simulator CLI.

Starts an interactive session against a simulated cash account:
- price <SYM>: fetch and print the latest price
- buy <SYM> <QTY> / sell <SYM> <QTY>: trade at the latest price
- portfolio: holdings with live unrealized PnL
- balance: current cash
- help, exit
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Dict, Iterable, Iterator, List, Optional, TextIO

from accounts.account import Account
from common.config_loader import DEFAULT_CONFIG_PATH, SimulatorConfig, apply_overrides, load_config
from common.errors import ConfigError, SimulatorError
from common.logging_setup import configure_logging
from engine.trade_engine import TradeEngine
from portfolio.ledger import PortfolioLedger
from quotes.quote_fetcher import QuoteFetcher
from reporting.summary import balance_summary, render_report

logger = logging.getLogger(__name__)

PROMPT = "\n> "
COMMANDS_HELP = "Commands: price <SYM>, buy <SYM> <QTY>, sell <SYM> <QTY>, portfolio, balance, help, exit"


def parse_quantity(text: str) -> int:
    """Parse a share count; only positive whole numbers are accepted."""
    try:
        qty = int(text)
    except ValueError:
        raise ValueError(f"Quantity must be a positive whole number, got {text!r}") from None
    if qty <= 0:
        raise ValueError(f"Quantity must be a positive whole number, got {text!r}")
    return qty


class CommandShell:
    """Line-oriented command dispatcher over a TradeEngine."""

    def __init__(self, engine: TradeEngine, out: TextIO | None = None):
        self.engine = engine
        self.out = out if out is not None else sys.stdout
        self._handlers: Dict[str, Callable[[List[str]], bool]] = {
            "price": self.cmd_price,
            "buy": self.cmd_buy,
            "sell": self.cmd_sell,
            "portfolio": self.cmd_portfolio,
            "balance": self.cmd_balance,
            "help": self.cmd_help,
            "exit": self.cmd_exit,
            "quit": self.cmd_exit,
        }

    def echo(self, msg: str = "") -> None:
        print(msg, file=self.out)

    def banner(self) -> None:
        self.echo("Stock Market Simulator")
        self.echo(f"Starting Balance: ${self.engine.ledger.account.cash:,.2f}")
        self.echo(COMMANDS_HELP)

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the session should end."""
        parts = line.split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]
        handler = self._handlers.get(cmd)
        if handler is None:
            self.echo("Unknown command")
            return True
        try:
            return handler(args)
        except SimulatorError as e:
            # Quote failures and rejected trades abort only this command.
            self.echo(f"Error: {e}")
        except ValueError as e:
            self.echo(f"Error: {e}")
        return True

    def run(self, lines: Iterable[str]) -> int:
        for line in lines:
            if not self.handle(line):
                break
        return 0

    # --- commands -----------------------------------------------------------

    def cmd_price(self, args: List[str]) -> bool:
        if len(args) < 1:
            self.echo("Usage: price <SYMBOL>")
            return True
        q = self.engine.quote(args[0])
        self.echo(f"{q.symbol} price: ${q.price:,.2f}")
        return True

    def _trade_args(self, name: str, args: List[str]):
        if len(args) < 2:
            self.echo(f"Usage: {name} <SYMBOL> <QTY>")
            return None
        return args[0], parse_quantity(args[1])

    def cmd_buy(self, args: List[str]) -> bool:
        parsed = self._trade_args("buy", args)
        if parsed:
            self.echo(str(self.engine.buy(*parsed)))
        return True

    def cmd_sell(self, args: List[str]) -> bool:
        parsed = self._trade_args("sell", args)
        if parsed:
            self.echo(str(self.engine.sell(*parsed)))
        return True

    def cmd_portfolio(self, args: List[str]) -> bool:
        self.echo()
        self.echo(render_report(self.engine.report()))
        return True

    def cmd_balance(self, args: List[str]) -> bool:
        s = balance_summary(self.engine.ledger.account)
        self.echo(f"Balance: ${s['cash']:,.2f}")
        if s["positions"]:
            self.echo(f"Invested (cost basis): ${s['invested']:,.2f} in {s['positions']}/{s['max_positions']} positions")
        return True

    def cmd_help(self, args: List[str]) -> bool:
        self.echo(COMMANDS_HELP)
        return True

    def cmd_exit(self, args: List[str]) -> bool:
        return False


def read_lines(prompt: str = PROMPT) -> Iterator[str]:
    """Yield lines typed at the prompt until EOF."""
    while True:
        try:
            yield input(prompt)
        except EOFError:
            return


def build_session(cfg: SimulatorConfig, fetcher: QuoteFetcher, out: TextIO | None = None) -> CommandShell:
    account = Account(cash=cfg.starting_cash, max_holdings=cfg.max_holdings)
    engine = TradeEngine(ledger=PortfolioLedger(account), quotes=fetcher)
    return CommandShell(engine, out=out)


def run(args: argparse.Namespace, lines: Optional[Iterable[str]] = None) -> int:
    """Handle a CLI invocation: load config, open the quote session, run the loop."""
    configure_logging(verbose=args.verbose)
    try:
        cfg = load_config(args.config)
        cfg = apply_overrides(cfg, starting_cash=args.cash, max_holdings=args.max_holdings)
        cfg.require_api_key()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.debug("Using quote endpoint %s (timeout %ss)", cfg.base_url, cfg.timeout)
    with QuoteFetcher.from_config(cfg) as fetcher:
        shell = build_session(cfg, fetcher)
        shell.banner()
        try:
            return shell.run(read_lines() if lines is None else lines)
        except KeyboardInterrupt:
            print()
            return 130


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stock-sim",
        description="Interactive stock market simulator with live quotes",
    )
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Simulator config file")
    p.add_argument("--cash", default=None, help="Starting cash balance (overrides config)")
    p.add_argument("--max-holdings", type=int, default=None, help="Maximum number of distinct positions")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return p


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    raise SystemExit(run(args))


if __name__ == "__main__":
    main()
