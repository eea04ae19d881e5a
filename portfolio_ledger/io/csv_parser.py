# portfolio_ledger/io/csv_parser.py
"""
Brokerage activity CSV parser.
Handles reading the export, row validation, and normalization into trade records.
"""

import io
import logging
import math
import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import IO, Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from portfolio_ledger.domain.models import Side, TradeRecord
from portfolio_ledger.errors import EmptyInputError, NoValidRecordsError

logger = logging.getLogger(__name__)

CsvSource = Union[str, "os.PathLike[str]", IO[str], IO[bytes]]


@dataclass(frozen=True)
class RawRow:
    """One export row with the columns the ledger cares about."""
    instrument: Optional[str]
    trans_code: Optional[str]
    quantity: Optional[str]
    amount: Optional[str]
    activity_date: Optional[str]
    description: Optional[str] = None
    process_date: Optional[str] = None
    settle_date: Optional[str] = None

    COLUMNS = {
        "instrument": "Instrument",
        "trans_code": "Trans Code",
        "quantity": "Quantity",
        "amount": "Amount",
        "activity_date": "Activity Date",
        "description": "Description",
        "process_date": "Process Date",
        "settle_date": "Settle Date",
    }

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "RawRow":
        """Build from a string-keyed row; missing or NaN cells become None."""
        return cls(**{field: _cell(row.get(column)) for field, column in cls.COLUMNS.items()})


def _cell(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return str(value)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


class LedgerNormalizer:
    """Convert raw export rows into validated trade records."""

    # Broker transaction codes. Only BUY/SELL reach the accounting core.
    TRANS_CODE_SIDES = {
        "BUY": Side.BUY,
        "SELL": Side.SELL,
        "CDIV": Side.DIVIDEND,
        "AFEE": Side.FEE,
        "GOLD": Side.FEE,
        "RTP": Side.DEPOSIT,
        "SOFF": Side.CORP_ACTION,
    }

    DATE_FORMATS = [
        "%m/%d/%Y",
        "%Y-%m-%d",
        "%Y-%m-%dT%H:%M:%S",
    ]

    _AMOUNT_NOISE = re.compile(r"[$,\s]")
    # Plain decimals only; float() alone would also take "1_000", "inf" and "nan"
    _DECIMAL = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")

    @staticmethod
    def parse_quantity(raw: Optional[str]) -> Optional[float]:
        """Parse a share quantity; None when missing, unparseable, or not positive."""
        if raw is None:
            return None
        text = raw.replace('"', "").strip()
        if not LedgerNormalizer._DECIMAL.fullmatch(text):
            return None
        quantity = float(text)
        if not math.isfinite(quantity) or quantity <= 0:
            return None
        return quantity

    @staticmethod
    def parse_amount(raw: Optional[str]) -> float:
        """
        Parse a cash amount such as "$1,500.00", "-$12.30" or "($1,500.00)".

        Blank amounts are 0. Parentheses mean a negative amount.

        Raises:
            ValueError: if the cleaned text is not a number
        """
        if _is_blank(raw):
            return 0.0
        text = LedgerNormalizer._AMOUNT_NOISE.sub("", raw)
        negative = text.startswith("(") and text.endswith(")")
        if negative:
            text = text[1:-1]
        if not LedgerNormalizer._DECIMAL.fullmatch(text):
            raise ValueError(f"Could not parse amount: {raw}")
        value = float(text)
        return -value if negative else value

    @staticmethod
    def parse_activity_date(raw: str) -> date:
        """
        Parse an activity date in M/D/YYYY or ISO form.

        Raises:
            ValueError: if no known format matches
        """
        text = raw.strip()
        for fmt in LedgerNormalizer.DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Could not parse activity date: {raw}")

    @staticmethod
    def derive_price(side: Side, amount: float, quantity: float) -> float:
        """Per-share price from the cash amount (Amount is authoritative)."""
        if side == Side.BUY:
            return abs(amount) / quantity
        return amount / quantity

    @staticmethod
    def normalize_row(index: int, row: RawRow) -> Tuple[Optional[TradeRecord], Optional[str]]:
        """
        Normalize a single row.

        Returns:
            (record, None) when admitted, (None, reason) when skipped
        """
        if _is_blank(row.instrument) or _is_blank(row.trans_code):
            return None, "missing instrument or trans code"

        trans_code = row.trans_code.strip().upper()
        side = LedgerNormalizer.TRANS_CODE_SIDES.get(trans_code)
        if side is None:
            return None, f"unsupported trans code {trans_code!r}"
        if side not in (Side.BUY, Side.SELL):
            return None, f"non-trade transaction {side.value}"

        quantity = LedgerNormalizer.parse_quantity(row.quantity)
        if quantity is None:
            return None, f"invalid quantity {row.quantity!r}"

        try:
            amount = LedgerNormalizer.parse_amount(row.amount)
        except ValueError:
            return None, f"invalid amount {row.amount!r}"
        if amount == 0:
            return None, "cannot derive price from zero amount"

        price = LedgerNormalizer.derive_price(side, amount, quantity)
        if not math.isfinite(price) or price <= 0:
            return None, f"invalid derived price {price!r}"

        if _is_blank(row.activity_date):
            return None, "missing activity date"
        try:
            activity_date = LedgerNormalizer.parse_activity_date(row.activity_date)
        except ValueError:
            return None, f"invalid activity date {row.activity_date!r}"

        record = TradeRecord(
            id=f"{row.instrument}-{index}",
            symbol=row.instrument.strip(),
            side=side,
            quantity=abs(quantity),
            price=price,
            date=activity_date,
            fees=0.0,
        )
        return record, None

    @staticmethod
    def normalize_rows(
        rows: Iterable[Union[Mapping[str, Any], RawRow]],
        diagnostics: Optional[List[str]] = None,
    ) -> List[TradeRecord]:
        """
        Normalize export rows into trade records.
        Bad rows are skipped; pass a list as ``diagnostics`` to collect why.

        Args:
            rows: string-keyed rows (CSV column names) or RawRow objects
            diagnostics: optional list receiving one message per skipped row

        Returns:
            Trade records in input order

        Raises:
            EmptyInputError: if ``rows`` is empty
            NoValidRecordsError: if no row survives validation
        """
        records: List[TradeRecord] = []
        rows_seen = 0

        for index, row in enumerate(rows):
            rows_seen += 1
            raw = row if isinstance(row, RawRow) else RawRow.from_mapping(row)
            record, reason = LedgerNormalizer.normalize_row(index, raw)
            if record is None:
                logger.debug("Skipping row %d (%s): %s", index, raw.instrument, reason)
                if diagnostics is not None:
                    diagnostics.append(f"Row {index} ({(raw.instrument or '').strip()}): {reason}")
                continue
            records.append(record)

        if rows_seen == 0:
            raise EmptyInputError()

        if not records:
            raise NoValidRecordsError(
                f"No valid trades found in {rows_seen} rows. Please check the format.",
                rows_seen=rows_seen,
            )

        logger.info("Normalized %d trade records from %d rows", len(records), rows_seen)
        return records


_READ_KWARGS: Dict[str, Any] = {
    "dtype": str,
    "keep_default_na": False,
    "skip_blank_lines": True,
    "on_bad_lines": "skip",
}


def read_transactions_text(text: str) -> List[Dict[str, str]]:
    """Read export content already held in memory. Empty text raises EmptyInputError."""
    return _read_frame(io.StringIO(text.lstrip("\ufeff")), **_READ_KWARGS)


def read_transactions_csv(source: CsvSource) -> List[Dict[str, str]]:
    """
    Read an activity export into string-keyed rows.

    Args:
        source: CSV text (every ``str`` is treated as content, never as a
            file name), a ``os.PathLike`` path, or a file object

    Returns:
        One dict per data row, every value a string ("" for empty cells)

    Raises:
        EmptyInputError: if the source has no header or content
    """
    if isinstance(source, str):
        return read_transactions_text(source)
    return _read_frame(source, encoding="utf-8-sig", **_READ_KWARGS)


def _read_frame(buffer: Any, **read_kwargs: Any) -> List[Dict[str, str]]:
    try:
        frame = pd.read_csv(buffer, **read_kwargs)
    except pd.errors.EmptyDataError as exc:
        raise EmptyInputError() from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    frame = frame.fillna("")
    return frame.to_dict(orient="records")


def parse_transactions_csv(
    source: CsvSource,
    diagnostics: Optional[List[str]] = None,
) -> List[TradeRecord]:
    """Read an activity export and normalize it into trade records."""
    return LedgerNormalizer.normalize_rows(read_transactions_csv(source), diagnostics=diagnostics)
