"""
Main Orchestrator for Money Tracker

This module ties together all the components and defines the
flows the UI triggers:
1. Identity change (sign in → profile → load ledger; sign out → discard)
2. Add transaction (validate → append → persist)
3. Reset ledger (confirm → clear → persist)
4. Bank refresh (lookup → separate bank total)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No mutation without an identity
- Bank balances never merge into the manual net worth
- Every step is audited

Each flow runs to completion, including its storage calls, before the
UI handles the next event, so no two flows touch the ledger at once.
"""

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog

from money_tracker.audit import AuditLogger, create_correlation_id
from money_tracker.config import Settings, get_settings
from money_tracker.ledger import (
    IdentityRequiredError,
    LedgerStore,
    LocalLedgerPersistence,
    RemoteLedgerPersistence,
    compute_net_worth,
)
from money_tracker.ledger.calculator import to_cents
from money_tracker.models.ledger import BankBalances, Identity, Ledger
from money_tracker.services.banking import (
    BalanceLookupInterface,
    BankingError,
    HttpBalanceClient,
)
from money_tracker.services.profile import ProfileService
from money_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStorage,
    LocalFileKeyValueStorage,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NetWorthSummary:
    """What the summary panel shows."""

    net_worth: Decimal
    bank_total: Optional[Decimal]
    transaction_count: int

    @property
    def combined_total(self) -> Decimal:
        """Manual net worth plus bank balances, when balances are known."""
        return to_cents(self.net_worth + (self.bank_total or Decimal("0")))


class TrackerSession:
    """
    One user's view of the tracker.

    Driven entirely by identity events: the UI forwards every
    sign-in/sign-out to on_identity_changed().
    """

    def __init__(
        self,
        store: LedgerStore,
        profile_service: Optional[ProfileService] = None,
        balance_client: Optional[BalanceLookupInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._profile_service = profile_service
        self._balance_client = balance_client
        self._audit_logger = audit_logger
        self._bank_balances: Optional[BankBalances] = None

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def identity(self) -> Optional[Identity]:
        return self._store.identity

    @property
    def ledger(self) -> Ledger:
        return self._store.ledger

    @property
    def bank_balances(self) -> Optional[BankBalances]:
        return self._bank_balances

    @property
    def banking_enabled(self) -> bool:
        return self._balance_client is not None

    async def on_identity_changed(self, identity: Optional[Identity]) -> Ledger:
        """
        Handle an identity event.

        Sign-out discards the ledger and any bank balances without a
        final write. Sign-in as a different identity discards the old
        state before the new ledger is loaded.
        """
        previous = self._store.identity

        if identity is None:
            self._bank_balances = None
            ledger = await self._store.handle_identity_change(None)
            if previous is not None and self._audit_logger:
                await self._audit_logger.log_signed_out(previous.uid)
            return ledger

        if previous is None or previous.uid != identity.uid:
            self._bank_balances = None
            if self._audit_logger:
                await self._audit_logger.log_signed_in(identity.uid, identity.contact)
            if self._profile_service:
                await self._profile_service.record_sign_in(identity)

        return await self._store.handle_identity_change(identity)

    async def add_transaction(
        self,
        label: Any,
        amount: Any,
        category: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Ledger:
        """Validate and append an entry. Raises ValidationError / IdentityRequiredError."""
        correlation_id = correlation_id or create_correlation_id()
        return await self._store.append(label, amount, category, correlation_id=correlation_id)

    async def reset_ledger(self, confirmed: bool) -> Ledger:
        """Wipe the ledger; does nothing unless confirmed."""
        return await self._store.clear(confirmed=confirmed)

    async def refresh_bank_balances(self) -> BankBalances:
        """
        Fetch linked account balances for the signed-in identity.

        Raises:
            IdentityRequiredError: Nobody is signed in
            BankingError: No lookup configured, or the lookup failed
        """
        identity = self._store.identity
        if identity is None:
            raise IdentityRequiredError("refresh bank balances")
        if self._balance_client is None:
            raise BankingError("Bank balance lookup is not configured")

        try:
            balances = await self._balance_client.fetch_balances(identity.uid)
        except BankingError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="balance_lookup",
                    error_message=str(e),
                    uid=identity.uid,
                )
            raise

        # Identity may have changed while the lookup was in flight
        if self._store.identity is None or self._store.identity.uid != identity.uid:
            logger.warning("stale_balances_dropped", uid=identity.uid)
            return balances

        self._bank_balances = balances
        if self._audit_logger:
            await self._audit_logger.log_bank_balances_fetched(
                uid=identity.uid,
                account_count=len(balances.accounts),
                total=str(balances.total),
            )
        return balances

    def summary(self) -> NetWorthSummary:
        ledger = self._store.ledger
        return NetWorthSummary(
            net_worth=compute_net_worth(ledger.transactions),
            bank_total=self._bank_balances.total if self._bank_balances else None,
            transaction_count=len(ledger),
        )

    async def report_error(self, error: Exception, context: Optional[str] = None) -> None:
        """Record an unexpected failure the UI caught, so it lands in the audit log."""
        identity = self._store.identity
        logger.error(
            "unexpected_error",
            context=context,
            error=str(error),
            uid=identity.uid if identity else None,
        )
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"context": context, "uid": identity.uid if identity else None},
            )

    async def close(self) -> None:
        if self._balance_client is not None:
            await self._balance_client.close()


def _create_balance_client(settings: Settings) -> Optional[BalanceLookupInterface]:
    try:
        banking = settings.banking
    except Exception as e:
        logger.info("banking_disabled", reason=str(e))
        return None
    return HttpBalanceClient(banking)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[TrackerSession, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Storage follows APP `storage_backend`: "google_sheets" uses the
    per-identity document store, "local" the device key-value store.
    A remote backend that fails to configure falls back to local.

    Returns:
        (tracker_session, sheets_client)
    """
    settings = settings or get_settings()
    app_settings = settings.app

    sheets_client = None
    persistence = None
    profile_service = None
    audit_logger = None

    if app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            documents = GoogleSheetsDocumentStorage(sheets_client)
            persistence = RemoteLedgerPersistence(documents)
            profile_service = ProfileService(documents)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Remote storage not configured - continue on this device
            logger.warning("remote_storage_unavailable", error=str(e))
            sheets_client = None
            persistence = None
            profile_service = None

    if persistence is None:
        kv_storage = LocalFileKeyValueStorage(Path(app_settings.local_storage_dir))
        persistence = LocalLedgerPersistence(kv_storage, app_settings.local_storage_key)
        audit_logger = AuditLogger()  # Local-only logging

    store = LedgerStore(
        persistence,
        audit_logger=audit_logger,
        max_amount=Decimal(str(app_settings.max_transaction_amount)),
    )

    session = TrackerSession(
        store,
        profile_service=profile_service,
        balance_client=_create_balance_client(settings),
        audit_logger=audit_logger,
    )

    return session, sheets_client
