"""
sheet_ledger/config.py

Environment-driven settings for the command line and the collaborators.
The engine itself never reads configuration: callers pass `today` and the
debug flag through explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from functools import lru_cache

from sheet_ledger.errors import ConfigError

ENV_PREFIX = "SHEET_LEDGER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    """
    Resolved runtime settings.
    """

    debug: bool = False
    log_level: str = "WARNING"
    today: date | None = None
    sheet_id: str = ""
    mutation_url: str = ""
    request_timeout: float = 30.0
    orders_tab: str = "orders_raw"
    settlement_tab: str = "Chatham_Settlement"
    lookup_tab: str = "Setup"
    default_partner: str = "CHATHAM"

    def effective_today(self) -> date:
        return self.today or date.today()

    @property
    def tab_names(self) -> dict[str, str]:
        return {
            "orders": self.orders_tab,
            "settlements": self.settlement_tab,
            "lookup": self.lookup_tab,
        }


def _env(name: str, default: str = "") -> str:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip()


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _parse_today(raw: str) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}TODAY must be YYYY-MM-DD, got {raw!r}") from exc


def _parse_timeout(raw: str) -> float:
    if not raw:
        return 30.0
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}TIMEOUT must be a number of seconds, got {raw!r}") from exc
    if timeout <= 0:
        raise ConfigError(f"{ENV_PREFIX}TIMEOUT must be positive, got {raw!r}")
    return timeout


def load_settings() -> Settings:
    """
    Build settings from the current environment without caching.
    """

    debug = _get_bool_env("DEBUG", False)
    log_level = _env("LOG_LEVEL", "DEBUG" if debug else "WARNING").upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(
            f"{ENV_PREFIX}LOG_LEVEL '{log_level}' is not valid. Allowed values: {sorted(_LOG_LEVELS)}."
        )
    defaults = Settings()
    return Settings(
        debug=debug,
        log_level=log_level,
        today=_parse_today(_env("TODAY")),
        sheet_id=_env("SHEET_ID"),
        mutation_url=_env("MUTATION_URL"),
        request_timeout=_parse_timeout(_env("TIMEOUT")),
        orders_tab=_env("ORDERS_TAB", defaults.orders_tab) or defaults.orders_tab,
        settlement_tab=_env("SETTLEMENT_TAB", defaults.settlement_tab) or defaults.settlement_tab,
        lookup_tab=_env("LOOKUP_TAB", defaults.lookup_tab) or defaults.lookup_tab,
        default_partner=_env("PARTNER", defaults.default_partner) or defaults.default_partner,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached settings.

    Raises ConfigError when an environment value cannot be parsed.
    """

    return load_settings()


def reset_settings() -> None:
    get_settings.cache_clear()
