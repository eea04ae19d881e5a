# portfolio_ledger/pricing/cache.py
"""Freshness-window cache for market prices."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import pytz

DEFAULT_TTL = timedelta(minutes=5)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


@dataclass(frozen=True)
class CachedPrice:
    price: float
    fetched_at: datetime  # UTC


class PriceCache:
    """Maps symbol -> (price, fetched_at); entries older than ``ttl`` are stale."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Callable[[], datetime] = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CachedPrice] = {}

    def get(self, symbol: str) -> Optional[float]:
        """Return the cached price if still fresh, else None."""
        entry = self._entries.get(symbol)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl:
            return None
        return entry.price

    def put(self, symbol: str, price: float) -> CachedPrice:
        entry = CachedPrice(price=price, fetched_at=self._clock())
        self._entries[symbol] = entry
        return entry

    def invalidate(self, symbol: Optional[str] = None) -> None:
        """Drop one symbol, or everything when ``symbol`` is None."""
        if symbol is None:
            self._entries.clear()
        else:
            self._entries.pop(symbol, None)

    def __len__(self) -> int:
        return len(self._entries)
