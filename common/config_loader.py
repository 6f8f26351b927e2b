from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import math
import os
import yaml

from common.errors import ConfigError

DEFAULT_CONFIG_PATH = "config/simulator.yaml"

API_KEY_ENV = "ALPHA_VANTAGE_API_KEY"
BASE_URL_ENV = "STOCK_SIM_BASE_URL"
TIMEOUT_ENV = "STOCK_SIM_TIMEOUT"
STARTING_CASH_ENV = "STOCK_SIM_STARTING_CASH"


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@dataclass(frozen=True)
class SimulatorConfig:
    api_key: Optional[str] = None
    base_url: str = "https://www.alphavantage.co/query"
    function: str = "GLOBAL_QUOTE"
    timeout: float = 10.0
    user_agent: str = "Mozilla/5.0"
    starting_cash: Decimal = Decimal("100000.00")
    max_holdings: int = 20

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError(
                f"No quote provider API key configured: set {API_KEY_ENV} or 'api_key' in the config file"
            )
        return self.api_key


def _to_decimal(name: str, value: Any) -> Decimal:
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not d.is_finite() or d < 0:
        raise ConfigError(f"{name} must be a non-negative number, got {value!r}")
    return d


def _to_positive_float(name: str, value: Any) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(f) or f <= 0:
        raise ConfigError(f"{name} must be a positive finite number, got {value!r}")
    return f


def _to_positive_int(name: str, value: Any) -> int:
    try:
        i = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if i <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return i


def build_config(raw: Mapping[str, Any], env: Optional[Mapping[str, str]] = None) -> SimulatorConfig:
    """Build a config from a YAML mapping, with environment overrides on top."""
    env = os.environ if env is None else env
    merged: Dict[str, Any] = {k: v for k, v in (raw or {}).items() if v is not None}

    # Environment wins over the file
    if env.get(API_KEY_ENV):
        merged["api_key"] = env[API_KEY_ENV]
    if env.get(BASE_URL_ENV):
        merged["base_url"] = env[BASE_URL_ENV]
    if env.get(TIMEOUT_ENV):
        merged["timeout"] = env[TIMEOUT_ENV]
    if env.get(STARTING_CASH_ENV):
        merged["starting_cash"] = env[STARTING_CASH_ENV]

    cfg = SimulatorConfig()
    if "api_key" in merged:
        cfg = replace(cfg, api_key=str(merged["api_key"]).strip() or None)
    if "base_url" in merged:
        cfg = replace(cfg, base_url=str(merged["base_url"]))
    if "function" in merged:
        cfg = replace(cfg, function=str(merged["function"]))
    if "timeout" in merged:
        cfg = replace(cfg, timeout=_to_positive_float("timeout", merged["timeout"]))
    if "user_agent" in merged:
        cfg = replace(cfg, user_agent=str(merged["user_agent"]))
    if "starting_cash" in merged:
        cfg = replace(cfg, starting_cash=_to_decimal("starting_cash", merged["starting_cash"]))
    if "max_holdings" in merged:
        cfg = replace(cfg, max_holdings=_to_positive_int("max_holdings", merged["max_holdings"]))
    return cfg


def load_config(
    path: str | Path = DEFAULT_CONFIG_PATH,
    env: Optional[Mapping[str, str]] = None,
) -> SimulatorConfig:
    """Load the simulator config. A missing file falls back to defaults."""
    try:
        raw = load_yaml(path)
    except FileNotFoundError:
        raw = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return build_config(raw.get("simulator", raw), env=env)


def apply_overrides(
    cfg: SimulatorConfig,
    starting_cash: Any = None,
    max_holdings: Any = None,
) -> SimulatorConfig:
    """Apply command-line overrides, the highest precedence layer."""
    if starting_cash is not None:
        cfg = replace(cfg, starting_cash=_to_decimal("starting_cash", starting_cash))
    if max_holdings is not None:
        cfg = replace(cfg, max_holdings=_to_positive_int("max_holdings", max_holdings))
    return cfg
