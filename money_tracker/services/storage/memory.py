"""
In-Memory Storage

Process-local implementations of every storage interface.
Used by the test suite; the app itself always falls back to local files.
"""

import copy
from collections.abc import Mapping
from typing import Any, Optional
from uuid import UUID

from money_tracker.models.audit import AuditEvent
from money_tracker.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
    KeyValueStorageInterface,
    merge_document_fields,
)


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """Dictionary-backed key-value store."""

    def __init__(self, initial: Optional[Mapping[str, bytes]] = None):
        self._values: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self._values.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._values[key] = bytes(value)

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)


class InMemoryDocumentStorage(DocumentStorageInterface):
    """
    Dictionary-backed document store.

    Documents are deep-copied on the way in and out so callers can
    never mutate stored state by accident.
    """

    def __init__(self, documents: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._documents: dict[str, dict[str, Any]] = {
            uid: copy.deepcopy(dict(doc)) for uid, doc in (documents or {}).items()
        }
        self.write_count = 0

    async def get_document(self, uid: str) -> Optional[dict[str, Any]]:
        document = self._documents.get(uid)
        return copy.deepcopy(document) if document is not None else None

    async def set_document(
        self,
        uid: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        fields = copy.deepcopy(dict(fields))
        if merge and uid in self._documents:
            self._documents[uid] = merge_document_fields(self._documents[uid], fields)
        else:
            self._documents[uid] = fields
        self.write_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matches = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(matches, key=lambda e: e.timestamp)

    async def get_events_by_identity(
        self,
        uid: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        matches = [e for e in self.events if e.identity_uid == uid]
        matches.sort(key=lambda e: e.timestamp, reverse=True)
        return matches[:limit]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
