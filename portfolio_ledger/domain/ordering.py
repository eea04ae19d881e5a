# portfolio_ledger/domain/ordering.py
"""Canonical chronological ordering of trade records."""

from typing import Iterable, Tuple

from portfolio_ledger.domain.models import Side, TradeRecord

# BUY sorts ahead of SELL on the same symbol and day
_SIDE_RANK = {Side.BUY: 0, Side.SELL: 1}


def record_sort_key(record: TradeRecord) -> Tuple[str, object, int]:
    return (record.symbol, record.date, _SIDE_RANK.get(record.side, 2))


def sort_records(records: Iterable[TradeRecord]) -> Tuple[TradeRecord, ...]:
    """
    Order records by (symbol, date, BUY before SELL).

    The sort is stable, so records equal on all three keys keep their input
    order. A tuple is returned so consumers cannot reorder the shared sequence.
    """
    return tuple(sorted(records, key=record_sort_key))
