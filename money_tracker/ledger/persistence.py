"""
Ledger Persistence Adapters

DESIGN DECISION: The ledger store talks to one small adapter interface,
and each adapter maps it onto one backend shape:

- LocalLedgerPersistence: the whole snapshot serialized as one JSON blob
  under one fixed device key. KNOWN LIMITATION: the key is scoped to the
  device, not the identity, so identities on the same device share one
  ledger. Kept as-is to stay compatible with existing device snapshots.

- RemoteLedgerPersistence: the `transactions` field of the identity's
  document, always merge-written so profile fields are never clobbered.

Writes are full overwrites of the snapshot, never incremental.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from money_tracker.models.ledger import LedgerSnapshot, TransactionRecord
from money_tracker.services.storage import (
    BackendReadError,
    BackendWriteError,
    DocumentStorageInterface,
    KeyValueStorageInterface,
)


logger = structlog.get_logger(__name__)

TRANSACTIONS_FIELD = "transactions"


class LedgerPersistence(ABC):
    """Reads and writes one identity's ledger snapshot."""

    # Whether a missing snapshot should be created on first load
    initializes_missing: bool = False

    @abstractmethod
    async def read(self, uid: str) -> Optional[list[Any]]:
        """
        Read the stored record list.

        Returns:
            Raw stored records (not yet normalized), or None if
            no snapshot exists for this identity

        Raises:
            BackendReadError: If the backend fails or the snapshot is unreadable
        """
        pass

    @abstractmethod
    async def write(self, uid: str, records: list[TransactionRecord]) -> None:
        """
        Replace the stored snapshot with these records.

        Raises:
            BackendWriteError: If the backend write fails
        """
        pass

    async def initialize(self, uid: str) -> None:
        """Create an empty snapshot for an identity seen for the first time."""
        await self.write(uid, [])

    @staticmethod
    def _serialize(records: list[TransactionRecord]) -> list[dict]:
        return [record.to_storage_dict() for record in records]


class LocalLedgerPersistence(LedgerPersistence):
    """Ledger snapshot stored under a fixed device key."""

    initializes_missing = False

    def __init__(self, storage: KeyValueStorageInterface, key: str):
        self._storage = storage
        self._key = key
        logger.info(
            "local_ledger_storage",
            key=key,
            note="snapshot is shared by every identity on this device",
        )

    @property
    def key(self) -> str:
        return self._key

    async def read(self, uid: str) -> Optional[list[Any]]:
        try:
            raw = await self._storage.get(self._key)
        except Exception as e:
            raise BackendReadError(f"Local snapshot unavailable: {e}") from e

        if raw is None:
            return None

        try:
            data = json.loads(raw.decode("utf-8"))
            if isinstance(data, list):
                # Bare record arrays predate the snapshot wrapper
                data = {"transactions": data}
            snapshot = LedgerSnapshot.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as e:
            raise BackendReadError(f"Local snapshot is corrupted: {e}") from e

        if snapshot.net_worth is not None:
            logger.debug("stored_net_worth_ignored", stored=snapshot.net_worth)
        return list(snapshot.transactions)

    async def write(self, uid: str, records: list[TransactionRecord]) -> None:
        snapshot = LedgerSnapshot(transactions=self._serialize(records))
        payload = json.dumps(snapshot.to_storage_dict()).encode("utf-8")
        try:
            await self._storage.set(self._key, payload)
        except Exception as e:
            raise BackendWriteError(f"Local snapshot write failed: {e}") from e


class RemoteLedgerPersistence(LedgerPersistence):
    """Ledger stored in the `transactions` field of a per-identity document."""

    initializes_missing = True

    def __init__(self, documents: DocumentStorageInterface):
        self._documents = documents

    async def read(self, uid: str) -> Optional[list[Any]]:
        try:
            document = await self._documents.get_document(uid)
        except Exception as e:
            raise BackendReadError(f"Document read failed: {e}") from e

        if document is None or document.get(TRANSACTIONS_FIELD) is None:
            return None

        transactions = document[TRANSACTIONS_FIELD]
        if not isinstance(transactions, list):
            raise BackendReadError(
                f"Stored {TRANSACTIONS_FIELD} is a {type(transactions).__name__}, expected a list"
            )
        return transactions

    async def write(self, uid: str, records: list[TransactionRecord]) -> None:
        try:
            await self._documents.set_document(
                uid,
                {TRANSACTIONS_FIELD: self._serialize(records)},
                merge=True,
            )
        except Exception as e:
            raise BackendWriteError(f"Document write failed: {e}") from e
