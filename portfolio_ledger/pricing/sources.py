# portfolio_ledger/pricing/sources.py
"""Market price sources used by the valuation step."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

import httpx

from portfolio_ledger.errors import PriceSourceError

logger = logging.getLogger(__name__)

# Reference prices used when the live source is unreachable
REFERENCE_PRICES: dict[str, float] = {
    "AIRE": 0.45,
    "RKT": 15.80,
    "DNUT": 4.85,
    "DFLI": 0.52,
    "NVTS": 8.95,
    "OPEN": 2.75,
    "GTI": 0.12,
    "XAGE": 6.45,
    "SQFT": 17.50,
    "PLUG": 1.65,
    "BBAI": 7.20,
    "MRSN": 0.38,
    "SKYE": 3.25,
    "ARTL": 2.10,
}


class PriceSource(Protocol):
    """Pluggable price provider."""

    async def fetch_price(self, symbol: str) -> Optional[float]:
        """Return the latest price for ``symbol`` or None when it has no quote."""


class StaticPriceSource:
    """Serves prices from a fixed table."""

    def __init__(self, prices: Mapping[str, float] | None = None) -> None:
        self._prices = dict(REFERENCE_PRICES if prices is None else prices)

    async def fetch_price(self, symbol: str) -> Optional[float]:
        price = self._prices.get(symbol)
        if not price or price <= 0:
            return None
        return float(price)


class AlphaVantagePriceSource:
    """Latest quote from the Alpha Vantage GLOBAL_QUOTE endpoint."""

    BASE_URL = "https://www.alphavantage.co/query"
    ERROR_KEYS = ("Error Message", "Note", "Information")

    def __init__(
        self,
        api_key: str = "demo",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        # Owned clients are opened lazily so the source can be reused after aclose()
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def fetch_price(self, symbol: str) -> Optional[float]:
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key}
        try:
            response = await self._get_client().get(self.BASE_URL, params=params, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PriceSourceError(f"Alpha Vantage request failed for {symbol}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PriceSourceError(f"Alpha Vantage returned invalid JSON for {symbol}") from exc
        if not isinstance(payload, dict):
            raise PriceSourceError(f"Alpha Vantage returned an unexpected payload for {symbol}")

        for key in self.ERROR_KEYS:
            if key in payload:
                raise PriceSourceError(f"Alpha Vantage {key} for {symbol}: {payload[key]}")

        quote = payload.get("Global Quote") or {}
        if not isinstance(quote, dict):
            raise PriceSourceError(f"Alpha Vantage quote for {symbol} is malformed: {quote!r}")

        raw_price = quote.get("05. price")
        if raw_price in (None, ""):
            logger.debug("No Alpha Vantage quote for %s", symbol)
            return None
        try:
            price = float(raw_price)
        except (TypeError, ValueError) as exc:
            raise PriceSourceError(f"Alpha Vantage price for {symbol} is not a number: {raw_price!r}") from exc
        return price if price > 0 else None

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
