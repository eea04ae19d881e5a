# portfolio_ledger/domain/summary.py
"""Portfolio level aggregation of positions and realized trades."""

from typing import Sequence

from portfolio_ledger.domain.models import PortfolioSummary, Position, TradePair


def _percent_of(value: float, base: float) -> float:
    return value / base * 100 if base > 0 else 0.0


def summarize(
    positions: Sequence[Position],
    trade_pairs: Sequence[TradePair],
    record_count: int,
) -> PortfolioSummary:
    """
    Reduce positions and trade pairs into portfolio totals.

    Unvalued positions contribute zero market value and unrealized P&L.
    Percentages are relative to the open cost basis. ``record_count`` is
    the number of records that reached the core, matched or not.
    """
    total_cost = sum(p.total_cost for p in positions)
    total_market_value = sum(p.market_value or 0.0 for p in positions)
    total_unrealized = sum(p.unrealized_pnl or 0.0 for p in positions)
    total_realized = sum(pair.realized_pnl for pair in trade_pairs)
    total_pnl = total_realized + total_unrealized

    return PortfolioSummary(
        total_cost=total_cost,
        total_market_value=total_market_value,
        total_unrealized_pnl=total_unrealized,
        total_unrealized_pnl_percent=_percent_of(total_unrealized, total_cost),
        total_realized_pnl=total_realized,
        total_realized_pnl_percent=_percent_of(total_realized, total_cost),
        total_pnl=total_pnl,
        total_pnl_percent=_percent_of(total_pnl, total_cost),
        position_count=len(positions),
        trade_count=record_count,
    )
