"""
Shared fixtures.

Every backend here is in-memory or a temp directory; no test talks to a
real spreadsheet or balance service.
"""

import itertools
from typing import Any, Optional

import pytest

from money_tracker.audit import AuditLogger
from money_tracker.ledger import LedgerStore, LocalLedgerPersistence, RemoteLedgerPersistence
from money_tracker.models.ledger import Identity
from money_tracker.services.storage import (
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
)


DEVICE_KEY = "santi-money-tracker-state"


class FailingKeyValueStorage(KeyValueStorageInterface):
    """Key-value store whose reads and/or writes always blow up."""

    def __init__(self, fail_reads: bool = True, fail_writes: bool = True):
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.values: dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        if self.fail_reads:
            raise OSError("disk unavailable")
        return self.values.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise OSError("quota exceeded")
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)


class FailingDocumentStorage(DocumentStorageInterface):
    """Document store that can be told to fail reads and/or writes."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False):
        self.inner = InMemoryDocumentStorage()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get_document(self, uid: str) -> Optional[dict[str, Any]]:
        if self.fail_reads:
            raise RuntimeError("permission denied")
        return await self.inner.get_document(uid)

    async def set_document(self, uid: str, fields, merge: bool = True) -> None:
        if self.fail_writes:
            raise RuntimeError("permission denied")
        await self.inner.set_document(uid, fields, merge=merge)


@pytest.fixture
def clock():
    """Deterministic millisecond clock: 1000, 1001, 1002, ..."""
    counter = itertools.count(1000)
    return lambda: next(counter)


@pytest.fixture
def alice() -> Identity:
    return Identity(uid="uid-alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def bob() -> Identity:
    return Identity(uid="uid-bob", phone_number="+15550100")


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def documents() -> InMemoryDocumentStorage:
    return InMemoryDocumentStorage()


@pytest.fixture
def kv_storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def remote_store(documents, audit_logger, clock) -> LedgerStore:
    return LedgerStore(RemoteLedgerPersistence(documents), audit_logger=audit_logger, clock=clock)


@pytest.fixture
def local_store(kv_storage, audit_logger, clock) -> LedgerStore:
    return LedgerStore(
        LocalLedgerPersistence(kv_storage, DEVICE_KEY),
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def audit_types(audit_storage):
    """Call to get the audit event types recorded so far, in order."""
    return lambda: [event.event_type.value for event in audit_storage.events]


@pytest.fixture
def failing_kv() -> FailingKeyValueStorage:
    return FailingKeyValueStorage()


@pytest.fixture
def flaky_documents() -> FailingDocumentStorage:
    """Healthy until a test flips fail_reads / fail_writes."""
    return FailingDocumentStorage()
