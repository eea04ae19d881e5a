"""Test configuration and fixtures."""

from datetime import date
from typing import Dict, Optional

import pytest

from portfolio_ledger.domain.models import Side, TradeRecord
from portfolio_ledger.pricing.cache import PriceCache
from portfolio_ledger.pricing.service import MarketPriceService
from portfolio_ledger.pricing.sources import StaticPriceSource


@pytest.fixture(name="sample_csv")
def sample_csv_fixture():
    """Provide a sample brokerage activity export."""
    return """"Activity Date","Process Date","Settle Date","Instrument","Description","Trans Code","Quantity","Price","Amount"
"1/2/2025","1/2/2025","1/3/2025","AAPL","Apple
CUSIP: 037833100","Buy","100","$150.00","($15,000.00)"
"1/3/2025","1/3/2025","1/6/2025","AAPL","Apple
CUSIP: 037833100","Sell","50","$160.00","$8,000.00"
"1/6/2025","1/6/2025","1/7/2025","PLUG","Plug Power","Buy","200","$1.50","($300.00)"
"1/7/2025","1/7/2025","1/7/2025","AAPL","Cash Div: R/D 2025-01-03 P/D 2025-01-07","CDIV","","","$12.50"
"1/8/2025","1/8/2025","1/8/2025","","Gold Subscription Fee","GOLD","","","($5.00)"
"1/9/2025","1/9/2025","1/10/2025","TSLA","Tesla","Sell","10","$400.00","$4,000.00"

"","","","","","","","","The data provided is for informational purposes only."
"""


@pytest.fixture(name="make_record")
def make_record_fixture():
    """Factory for trade records with sensible defaults."""
    counter = {"n": 0}

    def _make(
        symbol: str,
        side: Side,
        quantity: float,
        price: float,
        day: date,
        record_id: Optional[str] = None,
    ) -> TradeRecord:
        index = counter["n"]
        counter["n"] += 1
        return TradeRecord(
            id=record_id or f"{symbol}-{index}",
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            date=day,
        )

    return _make


class StubPriceSource:
    """Counts calls and serves a fixed table."""

    def __init__(self, prices: Dict[str, float]):
        self.prices = prices
        self.calls = []

    async def fetch_price(self, symbol: str) -> Optional[float]:
        self.calls.append(symbol)
        return self.prices.get(symbol)


@pytest.fixture(name="stub_source")
def stub_source_fixture():
    return StubPriceSource({"AAPL": 170.0})


@pytest.fixture(name="price_service")
def price_service_fixture(stub_source):
    """Stub primary source with the reference table as fallback."""
    return MarketPriceService(
        primary=stub_source,
        fallback=StaticPriceSource(),
        cache=PriceCache(),
        timeout=1.0,
    )
