# portfolio_ledger/errors.py
"""Exceptions surfaced to callers of the ledger pipeline."""


class LedgerError(ValueError):
    """Base class for fatal ledger ingestion errors."""


class EmptyInputError(LedgerError):
    """Raised when the transaction source yields no rows at all."""

    def __init__(self, message: str = "No data found in transaction export"):
        super().__init__(message)


class NoValidRecordsError(LedgerError):
    """Raised when every row was filtered out during normalization."""

    def __init__(self, reason: str, rows_seen: int = 0):
        self.reason = reason
        self.rows_seen = rows_seen
        super().__init__(reason)


class PriceSourceError(RuntimeError):
    """Raised by a live price source when a quote cannot be retrieved."""
