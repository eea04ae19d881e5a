# portfolio_ledger/pricing/service.py
"""Price collaborator combining a live source, a fallback table and a cache."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Iterable, Optional

import httpx

from portfolio_ledger.errors import PriceSourceError
from portfolio_ledger.pricing.cache import PriceCache
from portfolio_ledger.pricing.sources import AlphaVantagePriceSource, PriceSource, StaticPriceSource
from portfolio_ledger.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class MarketPriceService:
    """
    Resolves current prices: fresh cache entry, then the primary source,
    then the fallback source. Failures and timeouts degrade to the next step
    and finally to None, never to an exception.
    """

    def __init__(
        self,
        primary: PriceSource,
        fallback: PriceSource | None = None,
        cache: PriceCache | None = None,
        *,
        timeout: float = 10.0,
        max_concurrency: int = 5,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.primary = primary
        self.fallback = fallback
        self.cache = cache if cache is not None else PriceCache()
        self.timeout = timeout
        self.max_concurrency = max_concurrency

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MarketPriceService":
        """Alpha Vantage backed service with the reference table as fallback."""
        settings = settings or get_settings()
        return cls(
            primary=AlphaVantagePriceSource(
                settings.alpha_vantage_api_key,
                timeout=settings.price_fetch_timeout_seconds,
            ),
            fallback=StaticPriceSource(),
            cache=PriceCache(ttl=timedelta(seconds=settings.price_cache_ttl_seconds)),
            timeout=settings.price_fetch_timeout_seconds,
            max_concurrency=settings.price_fetch_concurrency,
        )

    async def get_current_price(self, symbol: str) -> Optional[float]:
        cached = self.cache.get(symbol)
        if cached is not None:
            return cached

        for source in (self.primary, self.fallback):
            if source is None:
                continue
            price = await self._fetch(source, symbol)
            if price is not None:
                self.cache.put(symbol, price)
                return price

        logger.warning("No price available for %s", symbol)
        return None

    async def get_prices(self, symbols: Iterable[str]) -> Dict[str, Optional[float]]:
        """Fetch each distinct symbol once, at most ``max_concurrency`` at a time."""
        unique = list(dict.fromkeys(symbols))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_one(symbol: str):
            async with semaphore:
                return symbol, await self.get_current_price(symbol)

        results = await asyncio.gather(*(fetch_one(s) for s in unique))
        return dict(results)

    async def _fetch(self, source: PriceSource, symbol: str) -> Optional[float]:
        try:
            return await asyncio.wait_for(source.fetch_price(symbol), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Price fetch for %s timed out after %.1fs", symbol, self.timeout)
        except (PriceSourceError, httpx.HTTPError) as exc:
            logger.warning("Failed to fetch price for %s: %s", symbol, exc)
        except Exception:
            # Any other source failure also degrades to the next step
            logger.warning("Unexpected error fetching price for %s", symbol, exc_info=True)
        return None

    async def aclose(self) -> None:
        """Release source connections. Cached prices are kept."""
        for source in (self.primary, self.fallback):
            close = getattr(source, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "MarketPriceService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
