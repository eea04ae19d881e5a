"""Test activity export parsing and normalization."""

from datetime import date

import pytest

from portfolio_ledger.domain.models import Side
from portfolio_ledger.errors import EmptyInputError, NoValidRecordsError
from portfolio_ledger.io.csv_parser import (
    LedgerNormalizer,
    RawRow,
    parse_transactions_csv,
    read_transactions_csv,
    read_transactions_text,
)


def _row(**overrides):
    row = {
        "Activity Date": "1/2/2025",
        "Instrument": "AAPL",
        "Trans Code": "Buy",
        "Quantity": "100",
        "Amount": "($1,500.00)",
    }
    row.update(overrides)
    return row


def test_buy_price_derived_from_amount():
    """BUY price is abs(Amount) / Quantity."""
    records = LedgerNormalizer.normalize_rows([_row(Amount="-1500.00")])

    assert len(records) == 1
    assert records[0].side == Side.BUY
    assert round(records[0].price, 6) == 15.0


def test_sell_price_derived_from_amount():
    records = LedgerNormalizer.normalize_rows(
        [_row(**{"Trans Code": "Sell", "Amount": "1600.00"})]
    )

    assert records[0].side == Side.SELL
    assert round(records[0].price, 6) == 16.0


def test_record_fields():
    records = LedgerNormalizer.normalize_rows([_row(), _row(Instrument=" MSFT ")])

    first, second = records
    assert first.id == "AAPL-0"
    assert first.symbol == "AAPL"
    assert first.quantity == 100.0
    assert first.date == date(2025, 1, 2)
    assert first.fees == 0.0
    # id keeps the raw instrument cell, symbol is trimmed
    assert second.id == " MSFT -1"
    assert second.symbol == "MSFT"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,500.00", 1500.0),
        ("($1,500.00)", -1500.0),
        ("-$12.30", -12.3),
        (" 42 ", 42.0),
        ("", 0.0),
        (None, 0.0),
    ],
)
def test_parse_amount(raw, expected):
    assert LedgerNormalizer.parse_amount(raw) == expected


def test_parse_amount_rejects_garbage():
    with pytest.raises(ValueError):
        LedgerNormalizer.parse_amount("n/a")


def test_parse_quantity_strips_quotes():
    assert LedgerNormalizer.parse_quantity('"12.5" ') == 12.5
    assert LedgerNormalizer.parse_quantity("0") is None
    assert LedgerNormalizer.parse_quantity("-3") is None
    assert LedgerNormalizer.parse_quantity("abc") is None
    assert LedgerNormalizer.parse_quantity("inf") is None


def test_numbers_must_be_plain_decimals():
    assert LedgerNormalizer.parse_quantity("1_000") is None
    assert LedgerNormalizer.parse_quantity("nan") is None
    assert LedgerNormalizer.parse_quantity(".5") == 0.5
    with pytest.raises(ValueError):
        LedgerNormalizer.parse_amount("$1_500.00")


def test_parse_activity_date_formats():
    assert LedgerNormalizer.parse_activity_date("1/9/2025") == date(2025, 1, 9)
    assert LedgerNormalizer.parse_activity_date("12/31/2024") == date(2024, 12, 31)
    assert LedgerNormalizer.parse_activity_date("2025-03-04") == date(2025, 3, 4)
    with pytest.raises(ValueError):
        LedgerNormalizer.parse_activity_date("yesterday")


@pytest.mark.parametrize(
    "overrides",
    [
        {"Instrument": ""},
        {"Instrument": "   "},
        {"Trans Code": ""},
        {"Trans Code": "XFER"},
        {"Trans Code": "CDIV"},
        {"Trans Code": "GOLD"},
        {"Quantity": ""},
        {"Quantity": "0"},
        {"Amount": ""},
        {"Amount": "$0.00"},
        {"Amount": "oops"},
        {"Trans Code": "Sell", "Amount": "(1600.00)"},
        {"Activity Date": ""},
        {"Activity Date": "not a date"},
    ],
)
def test_invalid_rows_are_skipped(overrides):
    """Each bad row is dropped while the good row survives."""
    records = LedgerNormalizer.normalize_rows([_row(**overrides), _row()])

    assert len(records) == 1
    assert records[0].id == "AAPL-1"


def test_missing_columns_are_skipped():
    records = LedgerNormalizer.normalize_rows([{"Instrument": "AAPL"}, _row()])
    assert [r.id for r in records] == ["AAPL-1"]


def test_diagnostics_collect_skip_reasons():
    diagnostics = []
    LedgerNormalizer.normalize_rows(
        [_row(**{"Trans Code": "XFER"}), _row(), _row(Quantity="x")],
        diagnostics=diagnostics,
    )

    assert len(diagnostics) == 2
    assert "XFER" in diagnostics[0]
    assert diagnostics[1].startswith("Row 2 (AAPL)")


def test_empty_input_raises():
    with pytest.raises(EmptyInputError):
        LedgerNormalizer.normalize_rows([])


def test_no_valid_records_raises():
    with pytest.raises(NoValidRecordsError) as excinfo:
        LedgerNormalizer.normalize_rows([_row(Instrument=""), _row(Quantity="0")])

    assert excinfo.value.rows_seen == 2
    assert "No valid trades" in excinfo.value.reason


def test_raw_row_from_mapping():
    raw = RawRow.from_mapping({"Instrument": "AAPL", "Quantity": float("nan")})

    assert raw.instrument == "AAPL"
    assert raw.quantity is None
    assert raw.trans_code is None


def test_read_transactions_csv_text(sample_csv):
    rows = read_transactions_csv(sample_csv)

    assert len(rows) == 7
    assert rows[0]["Instrument"] == "AAPL"
    assert rows[0]["Amount"] == "($15,000.00)"
    assert rows[3]["Quantity"] == ""


def test_read_transactions_csv_path(tmp_path, sample_csv):
    path = tmp_path / "activity.csv"
    path.write_text(sample_csv, encoding="utf-8")

    assert read_transactions_csv(path) == read_transactions_csv(sample_csv)


def test_read_empty_file_raises(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(EmptyInputError):
        read_transactions_csv(path)


def test_header_only_raises_empty_input():
    with pytest.raises(EmptyInputError):
        parse_transactions_csv('"Activity Date","Instrument","Trans Code","Quantity","Amount"\n')


@pytest.mark.parametrize(
    "text",
    [
        "",
        "\ufeff",
        '"Activity Date","Instrument","Trans Code","Quantity","Amount"',
    ],
)
def test_empty_text_is_never_read_as_a_path(text):
    with pytest.raises(EmptyInputError):
        parse_transactions_csv(text)


def test_read_transactions_text(sample_csv):
    assert read_transactions_text("\ufeff" + sample_csv) == read_transactions_csv(sample_csv)


def test_parse_sample_export(sample_csv):
    diagnostics = []
    records = parse_transactions_csv(sample_csv, diagnostics=diagnostics)

    assert [r.id for r in records] == ["AAPL-0", "AAPL-1", "PLUG-2", "TSLA-5"]
    assert [r.side for r in records] == [Side.BUY, Side.SELL, Side.BUY, Side.SELL]
    assert round(records[0].price, 6) == 150.0
    assert round(records[1].price, 6) == 160.0
    assert round(records[2].price, 6) == 1.5
    assert len(diagnostics) == 3
