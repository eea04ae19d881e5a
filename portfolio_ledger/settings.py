# portfolio_ledger/settings.py
"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Settings for the price collaborator and logging."""
    alpha_vantage_api_key: str = "demo"
    price_cache_ttl_seconds: float = 300.0  # 5 minute freshness window
    price_fetch_timeout_seconds: float = 10.0
    price_fetch_concurrency: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            alpha_vantage_api_key=os.getenv("ALPHA_VANTAGE_API_KEY", "demo"),
            price_cache_ttl_seconds=_env_float("PRICE_CACHE_TTL_SECONDS", 300.0),
            price_fetch_timeout_seconds=_env_float("PRICE_FETCH_TIMEOUT_SECONDS", 10.0),
            price_fetch_concurrency=_env_int("PRICE_FETCH_CONCURRENCY", 5),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings (read once from the environment)."""
    return Settings.from_env()
