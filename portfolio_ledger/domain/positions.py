# portfolio_ledger/domain/positions.py
"""Weighted-average open position bookkeeping."""

import logging
from typing import Dict, List, Sequence

from portfolio_ledger.domain.models import Position, PositionState, Side, TradeRecord

logger = logging.getLogger(__name__)


class PositionAccumulator:
    """Builds open positions with weighted-average cost from sorted records."""

    @staticmethod
    def accumulate(sorted_records: Sequence[TradeRecord]) -> List[Position]:
        """
        Replay sorted records into per-symbol positions.

        Sells beyond the current holding are clamped to what is held. The
        returned positions have ``quantity > 0`` and no valuation fields.

        Args:
            sorted_records: records ordered by (symbol, date, BUY before SELL)

        Returns:
            Open positions in symbol order
        """
        states: Dict[str, PositionState] = {}

        for record in sorted_records:
            state = states.get(record.symbol)
            if state is None:
                state = states[record.symbol] = PositionState(symbol=record.symbol)

            if record.side == Side.BUY:
                PositionAccumulator._apply_buy(state, record)
            elif record.side == Side.SELL:
                PositionAccumulator._apply_sell(state, record)

        positions = [s.to_position() for s in states.values() if s.quantity > 0]
        logger.info("Accumulated %d open positions from %d records", len(positions), len(sorted_records))
        return positions

    @staticmethod
    def _apply_buy(state: PositionState, record: TradeRecord) -> None:
        new_total_cost = state.total_cost + record.price * record.quantity
        new_quantity = state.quantity + record.quantity
        state.avg_buy_price = new_total_cost / new_quantity if new_quantity > 0 else 0.0
        state.total_cost = new_total_cost
        state.quantity = new_quantity

    @staticmethod
    def _apply_sell(state: PositionState, record: TradeRecord) -> None:
        sell_qty = min(record.quantity, state.quantity)
        if sell_qty <= 0:
            logger.debug(
                "SELL %s: no %s shares held, trying to sell %s",
                record.id, record.symbol, record.quantity,
            )
            return
        if sell_qty < record.quantity:
            logger.debug(
                "SELL %s: clamped %s to held quantity %s",
                record.id, record.quantity, sell_qty,
            )

        sold_cost = state.avg_buy_price * sell_qty
        state.quantity -= sell_qty
        state.total_cost -= sold_cost

        if state.quantity > 0:
            state.avg_buy_price = state.total_cost / state.quantity
        else:
            # Fully liquidated: drop any float residue in the basis
            state.reset()
