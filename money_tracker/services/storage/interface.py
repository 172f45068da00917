"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the two backend shapes
a ledger can live in:
1. A local key-value store scoped to the device
2. A remote document store with one document per identity

Defining them as ports allows us to:
1. Swap Google Sheets for another document store later
2. Use in-memory storage for testing
3. Keep the ledger logic decoupled from storage implementation

The interfaces are intentionally small - just the operations the ledger
and profile writers need.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional
from uuid import UUID

from money_tracker.models.audit import AuditEvent


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for a device-local key-value store.

    Values are opaque bytes; callers own serialization.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """
        Read the value stored under a key.

        Returns:
            The stored bytes, or None if the key is absent

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass


class DocumentStorageInterface(ABC):
    """
    Abstract interface for a remote per-identity document store.

    A document is a mapping of top-level fields. The ledger occupies the
    `transactions` field; the profile occupies `profile`.
    """

    @abstractmethod
    async def get_document(self, uid: str) -> Optional[dict[str, Any]]:
        """
        Fetch an identity's document.

        Returns:
            The document fields, or None if no document exists

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def set_document(
        self,
        uid: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        """
        Write fields to an identity's document.

        Args:
            uid: Identity whose document is written
            fields: Top-level fields to write
            merge: If True, only the given fields change (nested mappings
                   are merged key by key). If False, the document is
                   replaced by exactly these fields.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_identity(
        self,
        uid: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent events for one identity (newest first)."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


def merge_document_fields(
    existing: Mapping[str, Any],
    fields: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Merge fields into a document the way a merge-write does.

    Nested mappings are merged recursively; every other value
    (lists included) replaces what was there.
    """
    merged = dict(existing)
    for key, value in fields.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_document_fields(current, value)
        else:
            merged[key] = value
    return merged


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class BackendReadError(StorageError):
    """Reading from the backing store failed."""
    pass


class BackendWriteError(StorageError):
    """Writing to the backing store failed."""
    pass


class DocumentTooLargeError(BackendWriteError):
    """A document field is too big for the backend to hold."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
