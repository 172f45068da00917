"""Ledger package: the store, its persistence adapters and the net worth calculator."""

from money_tracker.ledger.calculator import (
    category_totals,
    compute_bank_total,
    compute_net_worth,
    format_signed_amount,
)
from money_tracker.ledger.errors import (
    IdentityRequiredError,
    LedgerError,
    ValidationError,
)
from money_tracker.ledger.migration import normalize_record, normalize_records
from money_tracker.ledger.persistence import (
    LedgerPersistence,
    LocalLedgerPersistence,
    RemoteLedgerPersistence,
)
from money_tracker.ledger.store import LedgerStore

__all__ = [
    # Calculator
    "category_totals",
    "compute_bank_total",
    "compute_net_worth",
    "format_signed_amount",
    # Errors
    "IdentityRequiredError",
    "LedgerError",
    "ValidationError",
    # Migration
    "normalize_record",
    "normalize_records",
    # Persistence
    "LedgerPersistence",
    "LocalLedgerPersistence",
    "RemoteLedgerPersistence",
    # Store
    "LedgerStore",
]
