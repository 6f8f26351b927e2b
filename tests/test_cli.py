"""Tests for the interactive command shell and CLI entry point."""
from __future__ import annotations

import io
from decimal import Decimal
from unittest.mock import patch

import pytest

from accounts.account import Account
from cli.main import CommandShell, build_parser, main, parse_quantity, run
from common.errors import SymbolNotFoundError
from engine.trade_engine import TradeEngine
from portfolio.ledger import PortfolioLedger
from quotes.quote_fetcher import Quote


class FakeQuotes:
    def __init__(self, prices: dict):
        self.prices = {k: Decimal(str(v)) for k, v in prices.items()}

    def fetch_quote(self, symbol: str) -> Quote:
        if symbol not in self.prices:
            raise SymbolNotFoundError(symbol, f"Symbol not found: {symbol}")
        return Quote(symbol, self.prices[symbol])

    def fetch_price(self, symbol: str) -> Decimal:
        return self.fetch_quote(symbol).price


def make_shell(prices: dict | None = None, cash="100000"):
    out = io.StringIO()
    engine = TradeEngine(
        ledger=PortfolioLedger(Account(cash=Decimal(cash))),
        quotes=FakeQuotes(prices or {"AAPL": 150}),
    )
    return CommandShell(engine, out=out), out


class TestCommands:
    """Tests for individual shell commands."""

    def test_price(self):
        shell, out = make_shell({"IBM": "150.2300"})

        shell.handle("price ibm")

        assert "IBM price: $150.23" in out.getvalue()

    def test_buy_and_balance(self):
        shell, out = make_shell()

        shell.handle("buy AAPL 5")
        shell.handle("balance")

        text = out.getvalue()
        assert "Bought 5 AAPL @ $150.00" in text
        assert "Balance: $99,250.00" in text

    def test_sell(self):
        shell, out = make_shell()
        shell.handle("buy AAPL 5")

        shell.handle("sell AAPL 5")

        assert "Sold 5 AAPL @ $150.00" in out.getvalue()
        assert shell.engine.ledger.account.holdings == {}

    def test_portfolio(self):
        shell, out = make_shell()
        shell.handle("buy AAPL 2")
        shell.engine.quotes.prices["AAPL"] = Decimal(160)

        shell.handle("portfolio")

        text = out.getvalue()
        assert "PORTFOLIO" in text
        assert "Total unrealized PnL: $20.00" in text

    def test_unknown_command(self):
        shell, out = make_shell()

        assert shell.handle("dance") is True

        assert "Unknown command" in out.getvalue()

    def test_blank_line_ignored(self):
        shell, out = make_shell()

        assert shell.handle("   ") is True

        assert out.getvalue() == ""

    def test_exit_stops_loop(self):
        shell, _ = make_shell()

        assert shell.handle("exit") is False
        assert shell.handle("QUIT") is False

    def test_missing_arguments_print_usage(self):
        shell, out = make_shell()

        shell.handle("buy AAPL")
        shell.handle("price")

        text = out.getvalue()
        assert "Usage: buy <SYMBOL> <QTY>" in text
        assert "Usage: price <SYMBOL>" in text
        assert shell.engine.ledger.account.holdings == {}

    @pytest.mark.parametrize("qty", ["0", "-3", "two", "1.5"])
    def test_bad_quantity_rejected(self, qty):
        shell, out = make_shell()

        shell.handle(f"buy AAPL {qty}")

        assert "Error: Quantity must be a positive whole number" in out.getvalue()
        assert shell.engine.ledger.account.cash == Decimal(100000)


class TestErrorsKeepLoopAlive:
    """Core errors are printed and the session continues."""

    def test_quote_error_printed(self):
        shell, out = make_shell({})

        assert shell.handle("buy NOPE 1") is True

        assert "Error: Symbol not found: NOPE" in out.getvalue()

    def test_ledger_error_printed(self):
        shell, out = make_shell(cash="100")

        shell.handle("buy AAPL 1")
        shell.handle("sell AAPL 1")

        text = out.getvalue()
        assert "Error: Insufficient balance" in text
        assert "Error: Not enough shares" in text

    def test_run_continues_after_errors(self):
        shell, out = make_shell()

        code = shell.run(["sell AAPL 1", "buy AAPL 1", "exit", "buy AAPL 1"])

        assert code == 0
        assert shell.engine.ledger.find_holding("AAPL").quantity == 1

    def test_run_ends_at_end_of_input(self):
        shell, _ = make_shell()

        assert shell.run(["buy AAPL 1"]) == 0


def test_parse_quantity():
    assert parse_quantity("12") == 12
    with pytest.raises(ValueError):
        parse_quantity("0")


class TestEntryPoint:
    """Tests for argument parsing and startup."""

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--help"])

        assert exc.value.code == 0
        assert "--cash" in capsys.readouterr().out

    def test_missing_api_key_exits_1(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)
        args = build_parser().parse_args(["--config", str(tmp_path / "none.yaml")])

        assert run(args, lines=[]) == 1
        assert "API key" in capsys.readouterr().err

    def test_session_starts_and_exits_cleanly(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "K")
        args = build_parser().parse_args(
            ["--config", str(tmp_path / "none.yaml"), "--cash", "5000", "--max-holdings", "3"]
        )

        with patch("cli.main.QuoteFetcher.close") as close:
            code = run(args, lines=["balance", "exit"])

        assert code == 0
        close.assert_called_once()
        text = capsys.readouterr().out
        assert "Starting Balance: $5,000.00" in text
        assert "Balance: $5,000.00" in text

    def test_invalid_cash_exits_1(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "K")
        args = build_parser().parse_args(["--config", str(tmp_path / "none.yaml"), "--cash", "lots"])

        assert run(args, lines=[]) == 1
