"""
Ledger Store

Owns the authoritative in-memory ledger for the active identity and
keeps the backing store synchronized with it.

State machine:

    UNLOADED --load--> LOADING --> READY
    READY --append/clear--> READY          (after the persist attempt)
    READY --sign_out--> UNLOADED           (no final persist)

DESIGN DECISIONS:
1. Validate before mutating. A rejected append leaves the ledger untouched.
2. Reads fail soft: an unreadable backend yields an empty ledger so the
   tracker stays usable.
3. Writes are optimistic: the in-memory ledger keeps the mutation even
   if the write fails. The failure is logged and audited, never raised.
4. Switching identity discards the previous ledger before loading the
   next one, so nothing leaks across identities.
5. Persist is a full overwrite, so concurrent writers for one identity
   (e.g. two browser tabs) resolve as last-writer-wins.
"""

import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

if TYPE_CHECKING:
    from money_tracker.audit import AuditLogger

from money_tracker.ledger.calculator import AMOUNT_LIMIT, CENTS, compute_net_worth
from money_tracker.ledger.errors import IdentityRequiredError, ValidationError
from money_tracker.ledger.migration import normalize_records
from money_tracker.ledger.persistence import LedgerPersistence
from money_tracker.models.ledger import (
    Identity,
    Ledger,
    LedgerState,
    TransactionCategory,
    TransactionRecord,
)
from money_tracker.services.storage import BackendReadError, BackendWriteError


logger = structlog.get_logger(__name__)


def current_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class LedgerStore:
    """
    The ledger for one identity at a time.

    Usage:
        store = LedgerStore(RemoteLedgerPersistence(documents))
        await store.load(identity)
        await store.append("Salary", "2500", "income")
        store.net_worth  # Decimal("2500.00")
    """

    def __init__(
        self,
        persistence: LedgerPersistence,
        audit_logger: Optional["AuditLogger"] = None,
        clock: Optional[Callable[[], int]] = None,
        max_amount: Optional[Decimal] = None,
    ):
        """
        Args:
            persistence: Adapter for the backing store
            audit_logger: Optional audit trail
            clock: Returns epoch milliseconds; used to assign record ids
            max_amount: Largest amount accepted for a single entry
        """
        self._persistence = persistence
        self._audit_logger = audit_logger
        self._clock = clock or current_millis
        self._max_amount = (
            min(Decimal(str(max_amount)), AMOUNT_LIMIT) if max_amount is not None else AMOUNT_LIMIT
        )

        self._state = LedgerState.UNLOADED
        self._identity: Optional[Identity] = None
        self._transactions: list[TransactionRecord] = []
        self._last_persist_ok: Optional[bool] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def persistence(self) -> LedgerPersistence:
        return self._persistence

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def ledger(self) -> Ledger:
        """A copy of the current ledger; mutating it does not affect the store."""
        return Ledger(
            owner_uid=self._identity.uid if self._identity else None,
            transactions=[record.model_copy() for record in self._transactions],
        )

    @property
    def net_worth(self) -> Decimal:
        return compute_net_worth(self._transactions)

    @property
    def last_persist_ok(self) -> Optional[bool]:
        """Outcome of the most recent persist; None before the first one."""
        return self._last_persist_ok

    # ------------------------------------------------------------------
    # Identity lifecycle
    # ------------------------------------------------------------------

    def _discard(self) -> None:
        self._transactions = []
        self._identity = None
        self._state = LedgerState.UNLOADED
        self._last_persist_ok = None

    async def load(self, identity: Optional[Identity]) -> Ledger:
        """
        Load an identity's ledger from the backing store.

        With no identity the ledger is empty and the backend is not
        touched. Read failures are logged and yield an empty ledger.
        """
        self._discard()

        if identity is None:
            return self.ledger

        self._identity = identity
        self._state = LedgerState.LOADING
        log = logger.bind(uid=identity.uid)

        try:
            raw_records = await self._persistence.read(identity.uid)
        except BackendReadError as e:
            log.warning("ledger_load_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_ledger_load_failed(identity.uid, str(e))
            self._state = LedgerState.READY
            return self.ledger

        if raw_records is None:
            log.info("ledger_snapshot_missing")
            if self._persistence.initializes_missing:
                await self._initialize_snapshot(identity.uid)
            self._state = LedgerState.READY
            return self.ledger

        records, migrated = normalize_records(raw_records)
        self._transactions = records
        self._state = LedgerState.READY

        log.info("ledger_loaded", count=len(records), migrated=migrated)
        if self._audit_logger:
            await self._audit_logger.log_ledger_loaded(identity.uid, len(records), migrated)
        return self.ledger

    async def _initialize_snapshot(self, uid: str) -> None:
        try:
            await self._persistence.initialize(uid)
        except BackendWriteError as e:
            logger.warning("ledger_snapshot_init_failed", uid=uid, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_persist_failed(uid, 0, str(e))
            return
        if self._audit_logger:
            await self._audit_logger.log_snapshot_initialized(uid)

    def sign_out(self) -> None:
        """Forget the in-memory ledger. The backing store is left as is."""
        if self._identity is not None:
            logger.info("ledger_discarded", uid=self._identity.uid)
        self._discard()

    async def handle_identity_change(self, identity: Optional[Identity]) -> Ledger:
        """
        Identity-event callback.

        None signs out; a new uid discards the old ledger and loads the
        new one; the same uid while ready leaves everything as it is.
        """
        if identity is None:
            self.sign_out()
            return self.ledger

        if (
            self._identity is not None
            and self._identity.uid == identity.uid
            and self._state == LedgerState.READY
        ):
            self._identity = identity
            return self.ledger

        return await self.load(identity)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_identity(self, operation: str) -> Identity:
        if self._identity is None or self._state != LedgerState.READY:
            raise IdentityRequiredError(operation)
        return self._identity

    def validate(self, label: Any, amount: Any, category: Any) -> tuple[str, Decimal, TransactionCategory]:
        """
        Check user input without touching the ledger.

        Returns:
            (label, amount, category) cleaned up

        Raises:
            ValidationError: Naming the first offending field
        """
        clean_label = str(label).strip() if label is not None else ""
        if not clean_label:
            raise ValidationError("label", "Enter a description")
        if len(clean_label) > 200:
            raise ValidationError("label", "Keep the description under 200 characters")

        if isinstance(amount, bool) or amount is None:
            raise ValidationError("amount", "Enter an amount")
        try:
            clean_amount = Decimal(str(amount).strip().replace(",", ""))
        except (InvalidOperation, ValueError):
            raise ValidationError("amount", "Enter a number")
        if not clean_amount.is_finite():
            raise ValidationError("amount", "Enter a real amount")
        if clean_amount <= 0:
            raise ValidationError("amount", "Amount must be greater than zero")
        if clean_amount > self._max_amount:
            raise ValidationError("amount", f"Amount must not exceed {self._max_amount:,}")
        # Entries are kept in cents
        clean_amount = clean_amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        if clean_amount == 0:
            raise ValidationError("amount", "Amount must be at least 0.01")

        try:
            clean_category = TransactionCategory(str(getattr(category, "value", category)).strip().lower())
        except ValueError:
            clean_category = TransactionCategory.UNKNOWN
        if clean_category not in TransactionCategory.user_choices():
            raise ValidationError("category", "Pick asset, liability, income or expense")

        return clean_label, clean_amount, clean_category

    async def append(
        self,
        label: Any,
        amount: Any,
        category: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Ledger:
        """
        Add an entry to the end of the ledger and persist.

        Raises:
            IdentityRequiredError: Nobody is signed in
            ValidationError: Input was rejected; the ledger is unchanged
        """
        identity = self._require_identity("add a transaction")

        try:
            clean_label, clean_amount, clean_category = self.validate(label, amount, category)
            record = TransactionRecord(
                id=self._clock(),
                label=clean_label,
                amount=clean_amount,
                category=clean_category,
            )
        except ValidationError as e:
            await self._reject(identity.uid, e.field, e.message, correlation_id)
            raise
        except PydanticValidationError as e:
            errors = e.errors()
            loc = errors[0].get("loc") if errors else None
            field = str(loc[0]) if loc else "record"
            await self._reject(identity.uid, field, str(e), correlation_id)
            raise ValidationError(field, "Invalid value") from e

        # Same-millisecond ids are tolerated; id is advisory, not a key
        self._transactions.append(record)
        logger.info(
            "transaction_appended",
            uid=identity.uid,
            transaction_id=record.id,
            category=record.category.value,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_appended(
                uid=identity.uid,
                transaction_id=record.id,
                category=record.category.value,
                amount=str(record.amount),
                correlation_id=correlation_id,
            )

        await self.persist()
        return self.ledger

    async def _reject(
        self,
        uid: str,
        field: str,
        message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        logger.info("transaction_rejected", uid=uid, field=field, reason=message)
        if self._audit_logger:
            await self._audit_logger.log_validation_rejected(
                uid=uid, field=field, message=message, correlation_id=correlation_id
            )

    async def clear(self, confirmed: bool = False) -> Ledger:
        """
        Empty the ledger and persist the empty snapshot.

        Without confirmation this is a no-op.

        Raises:
            IdentityRequiredError: Nobody is signed in
        """
        identity = self._require_identity("wipe the ledger")

        if not confirmed:
            logger.info("ledger_clear_cancelled", uid=identity.uid)
            if self._audit_logger:
                await self._audit_logger.log_clear_cancelled(identity.uid)
            return self.ledger

        removed = len(self._transactions)
        self._transactions = []
        logger.info("ledger_cleared", uid=identity.uid, removed=removed)
        if self._audit_logger:
            await self._audit_logger.log_ledger_cleared(identity.uid, removed)

        await self.persist()
        return self.ledger

    async def persist(self) -> bool:
        """
        Write the full in-memory ledger to the backing store.

        Failures are logged and audited but never raised, and the
        in-memory ledger is not rolled back.

        Returns:
            True if the write succeeded
        """
        identity = self._require_identity("save the ledger")
        records = list(self._transactions)

        try:
            await self._persistence.write(identity.uid, records)
        except BackendWriteError as e:
            self._last_persist_ok = False
            logger.error("ledger_persist_failed", uid=identity.uid, count=len(records), error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_persist_failed(identity.uid, len(records), str(e))
            return False

        self._last_persist_ok = True
        logger.debug("ledger_persisted", uid=identity.uid, count=len(records))
        return True
