# portfolio_ledger/pipeline.py
"""Pipeline functions for building a portfolio report from an activity export."""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from portfolio_ledger.domain.fifo_matcher import FIFOMatcher, OversellPolicy
from portfolio_ledger.domain.models import PortfolioSummary, Position, TradePair, TradeRecord
from portfolio_ledger.domain.ordering import sort_records
from portfolio_ledger.domain.positions import PositionAccumulator
from portfolio_ledger.domain.summary import summarize
from portfolio_ledger.io.csv_parser import CsvSource, parse_transactions_csv
from portfolio_ledger.pricing.service import MarketPriceService
from portfolio_ledger.pricing.valuation import enrich_positions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioReport:
    """Everything the presentation layer renders."""
    records: Tuple[TradeRecord, ...]
    trade_pairs: Tuple[TradePair, ...]
    positions: Tuple[Position, ...]
    summary: PortfolioSummary


def analyze_records(
    records: Iterable[TradeRecord],
    oversell_policy: OversellPolicy = OversellPolicy.DROP,
) -> PortfolioReport:
    """
    Run the accounting core over normalized records.
    Positions are returned unvalued; the summary treats them as unpriced.
    """
    records = tuple(records)
    ordered = sort_records(records)

    # Both passes read the same immutable ordering and keep their own state
    trade_pairs = FIFOMatcher.match(ordered, oversell_policy)
    positions = PositionAccumulator.accumulate(ordered)

    return PortfolioReport(
        records=records,
        trade_pairs=tuple(trade_pairs),
        positions=tuple(positions),
        summary=summarize(positions, trade_pairs, len(records)),
    )


async def revalue_report(report: PortfolioReport, price_service: MarketPriceService) -> PortfolioReport:
    """Refresh current prices for the open positions and recompute the summary."""
    positions = await enrich_positions(report.positions, price_service)
    return replace(
        report,
        positions=tuple(positions),
        summary=summarize(positions, report.trade_pairs, len(report.records)),
    )


async def build_report(
    source: CsvSource,
    price_service: Optional[MarketPriceService] = None,
    *,
    diagnostics: Optional[List[str]] = None,
    oversell_policy: OversellPolicy = OversellPolicy.DROP,
) -> PortfolioReport:
    """
    Parse an export, run the core, and value open positions.

    Args:
        source: CSV text, path or file object
        price_service: price collaborator; positions stay unvalued when None
        diagnostics: optional list collecting skipped-row messages
        oversell_policy: FIFO handling of sells beyond known buys

    Raises:
        EmptyInputError: if the export has no rows
        NoValidRecordsError: if no row is a valid trade
    """
    records = parse_transactions_csv(source, diagnostics=diagnostics)
    report = analyze_records(records, oversell_policy)
    if price_service is None:
        return report

    report = await revalue_report(report, price_service)
    logger.info(
        "Report built: %d records, %d realized trades, %d open positions",
        len(report.records), len(report.trade_pairs), len(report.positions),
    )
    return report


def build_report_sync(
    source: CsvSource,
    price_service: Optional[MarketPriceService] = None,
    *,
    diagnostics: Optional[List[str]] = None,
    oversell_policy: OversellPolicy = OversellPolicy.DROP,
) -> PortfolioReport:
    """
    Blocking wrapper around ``build_report``.
    The price service's connections are closed before the event loop ends.
    """
    async def _run():
        report = build_report(
            source,
            price_service,
            diagnostics=diagnostics,
            oversell_policy=oversell_policy,
        )
        if price_service is None:
            return await report
        async with price_service:
            return await report

    return asyncio.run(_run())
