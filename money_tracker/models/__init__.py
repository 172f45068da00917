"""
Data Models Package

This package contains all Pydantic models used in Money Tracker.
All data flowing through the system must conform to these schemas.
"""

from money_tracker.models.ledger import (
    LOCAL_DEVICE_UID,
    BankAccount,
    BankBalances,
    Identity,
    Ledger,
    LedgerSnapshot,
    LedgerState,
    TransactionCategory,
    TransactionRecord,
    UserProfile,
)
from money_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LOCAL_DEVICE_UID",
    "BankAccount",
    "BankBalances",
    "Identity",
    "Ledger",
    "LedgerSnapshot",
    "LedgerState",
    "TransactionCategory",
    "TransactionRecord",
    "UserProfile",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
