"""Services package."""

from money_tracker.services.banking import (
    BalanceLookupInterface,
    BankingError,
    HttpBalanceClient,
)
from money_tracker.services.profile import ProfileService
from money_tracker.services.storage import (
    AuditStorageInterface,
    BackendReadError,
    BackendWriteError,
    ConnectionError,
    DocumentStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStorage,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    LocalFileKeyValueStorage,
    StorageError,
)

__all__ = [
    # Banking
    "BalanceLookupInterface",
    "BankingError",
    "HttpBalanceClient",
    # Profile
    "ProfileService",
    # Storage services
    "AuditStorageInterface",
    "BackendReadError",
    "BackendWriteError",
    "ConnectionError",
    "DocumentStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStorage",
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "InMemoryKeyValueStorage",
    "KeyValueStorageInterface",
    "LocalFileKeyValueStorage",
    "StorageError",
]
