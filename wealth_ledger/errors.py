"""
Error Taxonomy

Validation and lookup errors are reported to the immediate caller. Persistence
and import-row errors are caught where they occur and surfaced through result
objects.
"""

from typing import Optional


class WealthLedgerError(Exception):
    """Base class for all ledger errors"""


class ValidationError(WealthLedgerError, ValueError):
    """Caller-supplied data violates a field constraint"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(WealthLedgerError, LookupError):
    """Operation targets an asset id that is not in the ledger"""

    def __init__(self, asset_id: str):
        super().__init__(f"Asset {asset_id} not found")
        self.asset_id = asset_id


class PersistenceError(WealthLedgerError):
    """Durable storage read or write failed"""


class ImportRowError(WealthLedgerError):
    """A single record in a bulk import was rejected"""

    def __init__(self, row: int, reason: str):
        super().__init__(f"Row {row}: {reason}")
        self.row = row
        self.reason = reason
