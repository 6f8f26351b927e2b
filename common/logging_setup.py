"""Logger setup for the simulator.

- Compact console output on stderr, kept quiet (WARNING) by default so the
  interactive prompt is not cluttered
- Optional file handler (set STOCK_SIM_LOG_FILE or pass file_path)
"""
from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional

LOG_FILE_ENV = "STOCK_SIM_LOG_FILE"

_API_KEY_RE = re.compile(r"(apikey=)[^&\s'\"]+", re.IGNORECASE)


class RedactApiKeyFilter(logging.Filter):
    """Masks the value of any apikey=... query parameter in a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        redacted = _API_KEY_RE.sub(r"\1***", msg)
        if redacted != msg:
            record.msg = redacted
            record.args = None
        return True


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever sys.stderr is when a record is emitted."""

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self):
        return sys.stderr


class _ConsoleFormatter(logging.Formatter):
    default_fmt = "[%(levelname).1s] %(message)s"
    debug_fmt = "[%(levelname).1s] %(name)s: %(message)s"

    def __init__(self, verbose: bool = False):
        super().__init__(self.debug_fmt if verbose else self.default_fmt)


def configure_logging(
    verbose: bool = False,
    *,
    file_path: Optional[str | Path] = None,
) -> logging.Logger:
    """Install console (+ optional file) handlers on the root logger.

    Idempotent: calling twice only adjusts the level and format.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()

    console = getattr(root, "_stock_sim_console", None)
    if console is None:
        console = _StderrHandler()
        console.addFilter(RedactApiKeyFilter())
        root.addHandler(console)
        root._stock_sim_console = console  # type: ignore[attr-defined]

        path = file_path or os.getenv(LOG_FILE_ENV)
        if path:
            p = Path(path)
            p.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(p, encoding="utf-8")
            fh.addFilter(RedactApiKeyFilter())
            fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
            root.addHandler(fh)

    console.setLevel(level)
    console.setFormatter(_ConsoleFormatter(verbose=verbose))
    root.setLevel(level)
    # urllib3 logs full request URLs, query string included
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return root
