# portfolio_ledger/pricing/valuation.py
"""Enrich open positions with current market prices."""

import asyncio
from dataclasses import replace
from typing import List, Mapping, Optional, Sequence

from portfolio_ledger.domain.models import Position
from portfolio_ledger.pricing.service import MarketPriceService


def value_position(position: Position, price: Optional[float]) -> Position:
    """Return a copy of ``position`` valued at ``price``; no price values it at zero."""
    if price is None or price <= 0:
        return replace(
            position,
            current_price=0.0,
            market_value=0.0,
            unrealized_pnl=0.0,
            unrealized_pnl_percent=0.0,
        )

    market_value = position.quantity * price
    unrealized_pnl = market_value - position.total_cost
    if position.total_cost > 0:
        unrealized_pnl_percent = unrealized_pnl / position.total_cost * 100
    else:
        unrealized_pnl_percent = 0.0

    return replace(
        position,
        current_price=price,
        market_value=market_value,
        unrealized_pnl=unrealized_pnl,
        unrealized_pnl_percent=unrealized_pnl_percent,
    )


def apply_prices(
    positions: Sequence[Position],
    prices: Mapping[str, Optional[float]],
) -> List[Position]:
    return [value_position(p, prices.get(p.symbol)) for p in positions]


async def enrich_positions(
    positions: Sequence[Position],
    price_service: MarketPriceService,
) -> List[Position]:
    """Look up one price per symbol and value every position."""
    prices = await price_service.get_prices(p.symbol for p in positions)
    return apply_prices(positions, prices)


def enrich_positions_sync(
    positions: Sequence[Position],
    price_service: MarketPriceService,
) -> List[Position]:
    """
    Blocking wrapper around ``enrich_positions`` for non-async callers.
    Source connections are closed before the event loop ends.
    """
    async def _run():
        async with price_service:
            return await enrich_positions(positions, price_service)

    return asyncio.run(_run())
