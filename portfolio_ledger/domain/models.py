# portfolio_ledger/domain/models.py
"""Domain value objects."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class Side(str, Enum):
    """Normalized transaction side."""
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    FEE = "FEE"
    DEPOSIT = "DEPOSIT"
    CORP_ACTION = "CORP_ACTION"


@dataclass(frozen=True)
class TradeRecord:
    """A single validated trade derived from one export row."""
    id: str
    symbol: str
    side: Side
    quantity: float
    price: float  # derived from Amount, never the quoted price column
    date: date
    fees: float = 0.0

    @property
    def notional(self) -> float:
        return self.price * self.quantity


@dataclass
class Lot:
    """Working view of a BUY record during FIFO matching."""
    source_record_id: str
    symbol: str
    date: date
    remaining_quantity: float
    price: float

    @classmethod
    def from_record(cls, record: TradeRecord) -> "Lot":
        return cls(
            source_record_id=record.id,
            symbol=record.symbol,
            date=record.date,
            remaining_quantity=record.quantity,
            price=record.price,
        )

    def consume(self, qty: float) -> float:
        """Take up to ``qty`` shares from the lot, returning what was taken."""
        taken = min(qty, self.remaining_quantity)
        self.remaining_quantity -= taken
        return taken


@dataclass(frozen=True)
class LotMatch:
    """Quantity of one BUY lot consumed by a SELL."""
    source_record_id: str
    date: date
    quantity: float
    price: float

    @property
    def cost(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class VirtualBuy:
    """Blended buy side of a realized trade."""
    symbol: str
    date: date  # date of the first lot consumed
    quantity: float
    weighted_avg_price: float


@dataclass(frozen=True)
class TradePair:
    """A SELL matched against its FIFO buy lots."""
    virtual_buy: VirtualBuy
    sell_trade: TradeRecord
    realized_pnl: float
    realized_pnl_percent: float
    holding_period_days: int
    matches: Tuple[LotMatch, ...] = ()

    @property
    def symbol(self) -> str:
        return self.sell_trade.symbol

    @property
    def matched_cost(self) -> float:
        return sum(m.cost for m in self.matches)


@dataclass
class PositionState:
    """Tracks the running weighted-average position for a symbol."""
    symbol: str
    quantity: float = 0.0
    avg_buy_price: float = 0.0
    total_cost: float = 0.0

    def reset(self):
        """Reset cost basis after a full liquidation."""
        self.quantity = 0.0
        self.avg_buy_price = 0.0
        self.total_cost = 0.0

    def to_position(self) -> "Position":
        return Position(
            symbol=self.symbol,
            quantity=self.quantity,
            avg_buy_price=self.avg_buy_price,
            total_cost=self.total_cost,
        )


@dataclass(frozen=True)
class Position:
    """An open holding. Valuation fields are filled by the price step."""
    symbol: str
    quantity: float
    avg_buy_price: float
    total_cost: float
    current_price: Optional[float] = None
    market_value: Optional[float] = None
    unrealized_pnl: Optional[float] = None
    unrealized_pnl_percent: Optional[float] = None


@dataclass(frozen=True)
class PortfolioSummary:
    """Portfolio level totals, recomputed on every request."""
    total_cost: float
    total_market_value: float
    total_unrealized_pnl: float
    total_unrealized_pnl_percent: float
    total_realized_pnl: float
    total_realized_pnl_percent: float
    total_pnl: float
    total_pnl_percent: float
    position_count: int
    trade_count: int
