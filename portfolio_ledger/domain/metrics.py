# portfolio_ledger/domain/metrics.py
"""Trade analytics and reporting calculations."""

from typing import Dict, List, Sequence

import pandas as pd

from portfolio_ledger.domain.models import Position, TradePair


class MetricsCalculator:
    """Calculate realized-trade metrics and per-symbol performance."""

    @staticmethod
    def performance_by_symbol(
        positions: Sequence[Position],
        trade_pairs: Sequence[TradePair],
    ) -> pd.DataFrame:
        """
        Combine realized and unrealized P&L for each open position.

        Returns DataFrame with columns: symbol, realized_pnl, unrealized_pnl,
        total_pnl, total_pnl_percent, trade_count; largest absolute total first.
        """
        columns = [
            "symbol", "realized_pnl", "unrealized_pnl",
            "total_pnl", "total_pnl_percent", "trade_count",
        ]
        if not positions:
            return pd.DataFrame(columns=columns)

        by_symbol: Dict[str, List[TradePair]] = {}
        for pair in trade_pairs:
            by_symbol.setdefault(pair.symbol, []).append(pair)

        rows = []
        for position in positions:
            symbol_pairs = by_symbol.get(position.symbol, [])
            realized = sum(p.realized_pnl for p in symbol_pairs)
            unrealized = position.unrealized_pnl or 0.0
            total = realized + unrealized
            rows.append(
                {
                    "symbol": position.symbol,
                    "realized_pnl": realized,
                    "unrealized_pnl": unrealized,
                    "total_pnl": total,
                    "total_pnl_percent": total / position.total_cost * 100 if position.total_cost > 0 else 0.0,
                    "trade_count": len(symbol_pairs),
                }
            )

        df = pd.DataFrame(rows, columns=columns)
        return df.sort_values(
            "total_pnl", key=lambda s: s.abs(), ascending=False, kind="stable"
        ).reset_index(drop=True)

    @staticmethod
    def realized_pnl_curve(trade_pairs: Sequence[TradePair]) -> pd.DataFrame:
        """
        Realized P&L per closed trade in sell-date order with a running total.

        Returns DataFrame with columns: date, symbol, realized_pnl, cumulative_pnl
        """
        if not trade_pairs:
            return pd.DataFrame(columns=["date", "symbol", "realized_pnl", "cumulative_pnl"])

        df = pd.DataFrame(
            [
                {
                    "date": pair.sell_trade.date,
                    "symbol": pair.symbol,
                    "realized_pnl": pair.realized_pnl,
                }
                for pair in trade_pairs
            ]
        )
        df = df.sort_values("date", kind="stable").reset_index(drop=True)
        df["cumulative_pnl"] = df["realized_pnl"].cumsum()
        return df

    @staticmethod
    def get_equity_curve(trade_pairs: Sequence[TradePair]) -> pd.DataFrame:
        """
        Build a daily realized equity curve.

        Returns DataFrame with columns: date, daily_pnl, cumulative_pnl, drawdown
        """
        if not trade_pairs:
            return pd.DataFrame(columns=["date", "daily_pnl", "cumulative_pnl", "drawdown"])

        by_day: Dict[object, float] = {}
        for pair in trade_pairs:
            day = pair.sell_trade.date
            by_day[day] = by_day.get(day, 0.0) + pair.realized_pnl

        rows = []
        cumulative = 0.0
        peak = 0.0

        for day in sorted(by_day):
            daily_pnl = by_day[day]
            cumulative += daily_pnl
            peak = max(peak, cumulative)
            drawdown = cumulative - peak if peak > 0 else 0.0

            rows.append(
                {
                    "date": day,
                    "daily_pnl": daily_pnl,
                    "cumulative_pnl": cumulative,
                    "drawdown": drawdown,
                }
            )

        return pd.DataFrame(rows)

    @staticmethod
    def top_trades(trade_pairs: Sequence[TradePair], limit: int = 10) -> List[TradePair]:
        """Trades with the largest absolute realized P&L."""
        return sorted(trade_pairs, key=lambda p: abs(p.realized_pnl), reverse=True)[:limit]

    @staticmethod
    def trade_statistics(trade_pairs: Sequence[TradePair]) -> Dict:
        """Get overall realized trading statistics."""
        if not trade_pairs:
            return {
                "total_trades": 0,
                "winning_trades": 0,
                "losing_trades": 0,
                "win_rate": 0.0,
                "avg_holding_period": 0.0,
                "total_volume": 0.0,
                "biggest_win": 0.0,
                "biggest_loss": 0.0,
                "avg_win": 0.0,
                "avg_loss": 0.0,
            }

        wins = [p.realized_pnl for p in trade_pairs if p.realized_pnl > 0]
        losses = [p.realized_pnl for p in trade_pairs if p.realized_pnl < 0]
        pnls = [p.realized_pnl for p in trade_pairs]

        return {
            "total_trades": len(trade_pairs),
            "winning_trades": len(wins),
            "losing_trades": len(losses),
            "win_rate": len(wins) / len(trade_pairs) * 100,
            "avg_holding_period": sum(p.holding_period_days for p in trade_pairs) / len(trade_pairs),
            "total_volume": sum(
                p.virtual_buy.quantity * p.virtual_buy.weighted_avg_price for p in trade_pairs
            ),
            "biggest_win": max(pnls),
            "biggest_loss": min(pnls),
            "avg_win": sum(wins) / len(wins) if wins else 0.0,
            "avg_loss": sum(losses) / len(losses) if losses else 0.0,
        }

    @staticmethod
    def trade_insights(stats: Dict) -> List[Dict]:
        """
        Rule-based observations on trading behavior.

        Args:
            stats: output of ``trade_statistics``

        Returns:
            List of dicts with keys: type ("warning" or "info"), title, message
        """
        insights = []
        if not stats.get("total_trades"):
            return insights

        if stats["win_rate"] < 50:
            insights.append(
                {
                    "type": "warning",
                    "title": "Low Win Rate",
                    "message": (
                        f"Your win rate is {stats['win_rate']:.1f}%. "
                        "Consider improving your entry/exit strategy."
                    ),
                }
            )

        if stats["avg_holding_period"] < 1:
            insights.append(
                {
                    "type": "info",
                    "title": "Day Trading Pattern",
                    "message": "You're primarily day trading with average holding period under 1 day.",
                }
            )

        # avg_loss is negative, compare magnitudes
        if abs(stats["avg_loss"]) > abs(stats["avg_win"]):
            insights.append(
                {
                    "type": "warning",
                    "title": "Risk Management Issue",
                    "message": (
                        "Your average loss is larger than your average win. "
                        "Consider setting tighter stop losses."
                    ),
                }
            )

        if stats["total_trades"] > 50:
            insights.append(
                {
                    "type": "info",
                    "title": "High Trading Frequency",
                    "message": (
                        f"You've made {stats['total_trades']} trades. "
                        "High frequency can lead to increased fees and emotional trading."
                    ),
                }
            )

        if stats["biggest_loss"] < -100:
            insights.append(
                {
                    "type": "warning",
                    "title": "Large Losses",
                    "message": (
                        f"Your biggest loss was ${abs(stats['biggest_loss']):,.2f}. "
                        "Consider position sizing to limit risk."
                    ),
                }
            )

        return insights
