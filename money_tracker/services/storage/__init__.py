"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage:
a local key-value backend (files or memory) and a remote per-identity
document backend (Google Sheets or memory).
"""

from money_tracker.services.storage.interface import (
    AuditStorageInterface,
    BackendReadError,
    BackendWriteError,
    ConnectionError,
    DocumentStorageInterface,
    DocumentTooLargeError,
    KeyValueStorageInterface,
    StorageError,
    merge_document_fields,
)
from money_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStorage,
)
from money_tracker.services.storage.local import LocalFileKeyValueStorage
from money_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    InMemoryKeyValueStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStorageInterface",
    "KeyValueStorageInterface",
    "merge_document_fields",
    # Exceptions
    "BackendReadError",
    "BackendWriteError",
    "ConnectionError",
    "DocumentTooLargeError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStorage",
    # Local and in-memory implementations
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "InMemoryKeyValueStorage",
    "LocalFileKeyValueStorage",
]
