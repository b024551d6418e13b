"""QuantAI — application configuration.

Loads .env variables into a typed config object.
Validates values on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from quantai.market.binance_client import MAX_KLINE_LIMIT, SUPPORTED_INTERVALS
from quantai.strategy.profiles import DEFAULT_PROFILE, PROFILE_REGISTRY

# Enough for CONSERVATIVE (200-bar slow MA) to scan 300 bars.
DEFAULT_BAR_LIMIT = 500


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    binance_base_url: str
    default_symbol: str
    default_interval: str
    default_strategy: str
    bar_limit: int
    refresh_interval_seconds: float
    log_level: str
    api_port: int


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the offending variable when a value is
    out of range.
    """
    load_dotenv(dotenv_path=env_path)

    config = Config(
        binance_base_url=os.environ.get("BINANCE_BASE_URL", "https://api.binance.com").rstrip("/"),
        default_symbol=os.environ.get("DEFAULT_SYMBOL", "BTCUSDT").upper(),
        default_interval=os.environ.get("DEFAULT_INTERVAL", "1h"),
        default_strategy=os.environ.get("DEFAULT_STRATEGY", DEFAULT_PROFILE).upper(),
        bar_limit=int(os.environ.get("BAR_LIMIT", str(DEFAULT_BAR_LIMIT))),
        refresh_interval_seconds=float(os.environ.get("REFRESH_INTERVAL_SECONDS", "5")),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        api_port=int(os.environ.get("API_PORT", "8080")),
    )

    if config.default_strategy not in PROFILE_REGISTRY:
        raise ValueError(
            f"DEFAULT_STRATEGY must be one of {', '.join(PROFILE_REGISTRY)}, "
            f"got '{config.default_strategy}'"
        )
    if config.default_interval not in SUPPORTED_INTERVALS:
        raise ValueError(
            f"DEFAULT_INTERVAL must be one of {', '.join(SUPPORTED_INTERVALS)}, "
            f"got '{config.default_interval}'"
        )
    # The scan needs history past the default profile's warm-up
    min_bars = PROFILE_REGISTRY[config.default_strategy].required_bars
    if not min_bars <= config.bar_limit <= MAX_KLINE_LIMIT:
        raise ValueError(
            f"BAR_LIMIT must be between {min_bars} and {MAX_KLINE_LIMIT} "
            f"for {config.default_strategy}, got {config.bar_limit}"
        )
    if config.refresh_interval_seconds <= 0:
        raise ValueError(
            f"REFRESH_INTERVAL_SECONDS must be positive, got {config.refresh_interval_seconds}"
        )

    return config
