# portfolio_ledger/domain/fifo_matcher.py
"""
Realized trade reconstruction from trade records.
Implements FIFO lot matching of SELL records against prior BUY lots.
"""

import logging
from collections import defaultdict, deque
from enum import Enum
from typing import Deque, Dict, List, Sequence

from portfolio_ledger.domain.models import Lot, LotMatch, Side, TradePair, TradeRecord, VirtualBuy

logger = logging.getLogger(__name__)


class OversellPolicy(str, Enum):
    """What to do with a SELL larger than the known BUY history."""
    DROP = "drop"  # no TradePair for the SELL
    CLAMP = "clamp"  # realize only the matched quantity


class FIFOMatcher:
    """Matches sells to buy lots, oldest lot first."""

    @staticmethod
    def match(
        sorted_records: Sequence[TradeRecord],
        oversell_policy: OversellPolicy = OversellPolicy.DROP,
    ) -> List[TradePair]:
        """
        Match every SELL against the symbol's BUY lots in sort order.

        All BUY records become lots before any SELL is matched, so lots are
        consumed oldest first regardless of the SELL's own date.
        ``sorted_records`` must already be in canonical order (see
        ``sort_records``). Records are never mutated; lots are private copies.

        Args:
            sorted_records: records ordered by (symbol, date, BUY before SELL)
            oversell_policy: handling of sells exceeding available lots

        Returns:
            One TradePair per realized SELL, in SELL processing order
        """
        # Lots grouped per symbol, arrival order preserved
        open_lots: Dict[str, Deque[Lot]] = defaultdict(deque)
        sells: List[TradeRecord] = []

        for record in sorted_records:
            if record.side == Side.BUY:
                open_lots[record.symbol].append(Lot.from_record(record))
            elif record.side == Side.SELL:
                sells.append(record)

        pairs: List[TradePair] = []
        dropped = 0

        for sell in sells:
            lots = open_lots[sell.symbol]
            remaining = sell.quantity
            matches: List[LotMatch] = []

            while remaining > 0 and lots:
                lot = lots[0]
                matched = lot.consume(remaining)
                if matched > 0:
                    matches.append(
                        LotMatch(
                            source_record_id=lot.source_record_id,
                            date=lot.date,
                            quantity=matched,
                            price=lot.price,
                        )
                    )
                    remaining -= matched
                if lot.remaining_quantity <= 0:
                    lots.popleft()

            if not matches:
                logger.warning("SELL %s has no prior BUY lots for %s; dropped", sell.id, sell.symbol)
                dropped += 1
                continue

            if remaining == 0:
                pairs.append(FIFOMatcher._build_pair(sell, matches, sell.quantity))
            elif oversell_policy == OversellPolicy.CLAMP:
                realized_qty = sell.quantity - remaining
                logger.warning(
                    "SELL %s oversold %s by %s shares; realizing %s matched shares",
                    sell.id, sell.symbol, remaining, realized_qty,
                )
                pairs.append(FIFOMatcher._build_pair(sell, matches, realized_qty))
            else:
                logger.warning(
                    "SELL %s oversold %s by %s shares; dropped",
                    sell.id, sell.symbol, remaining,
                )
                dropped += 1

        logger.info("FIFO matched %d sells, dropped %d", len(pairs), dropped)
        return pairs

    @staticmethod
    def _build_pair(sell: TradeRecord, matches: List[LotMatch], realized_qty: float) -> TradePair:
        """Blend matched lots into a virtual buy and compute realized P&L."""
        matched_qty = sum(m.quantity for m in matches)
        weighted_avg_price = sum(m.price * m.quantity for m in matches) / matched_qty

        realized_pnl = FIFOMatcher.compute_realized_pnl(weighted_avg_price, sell.price, realized_qty)
        if weighted_avg_price > 0:
            realized_pnl_percent = realized_pnl / (weighted_avg_price * realized_qty) * 100
        else:
            realized_pnl_percent = 0.0

        first = matches[0]
        return TradePair(
            virtual_buy=VirtualBuy(
                symbol=sell.symbol,
                date=first.date,
                quantity=realized_qty,
                weighted_avg_price=weighted_avg_price,
            ),
            sell_trade=sell,
            realized_pnl=realized_pnl,
            realized_pnl_percent=realized_pnl_percent,
            holding_period_days=FIFOMatcher.holding_period_days(first.date, sell.date),
            matches=tuple(matches),
        )

    @staticmethod
    def compute_realized_pnl(open_price: float, close_price: float, qty: float) -> float:
        """Compute realized P&L for a long position closed at ``close_price``."""
        return (close_price - open_price) * qty

    @staticmethod
    def holding_period_days(opened, closed) -> int:
        """Whole days between the first lot's date and the sell date."""
        return (closed - opened).days

