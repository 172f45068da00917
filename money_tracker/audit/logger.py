"""
Audit Logger

Two sinks for the same event stream: a JSON structlog line for the
process log, and an optional AuditStorageInterface for the durable
trail. The ledger store and the tracker session call the log_* helpers
after each step; a failing audit sink never interrupts a ledger flow.
"""

import logging
from typing import Optional, Union
from uuid import UUID, uuid4

import structlog

from money_tracker.models.audit import AuditEvent, AuditEventBuilder
from money_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Union[int, str] = "INFO") -> None:
    """
    Set the stdlib root level that structlog's filter_by_level honours.

    Call once from the entrypoint (the Streamlit app).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Writes every AuditEvent to the process log and, if configured,
    to durable audit storage.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("money_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_signed_in(self, uid: str, contact: str) -> None:
        await self.log(AuditEventBuilder.identity_signed_in(uid=uid, contact=contact))

    async def log_signed_out(self, uid: Optional[str]) -> None:
        await self.log(AuditEventBuilder.identity_signed_out(uid=uid))

    async def log_ledger_loaded(self, uid: str, count: int, migrated: int = 0) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(uid=uid, count=count, migrated=migrated))

    async def log_ledger_load_failed(self, uid: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.ledger_load_failed(uid=uid, error_message=error_message))

    async def log_snapshot_initialized(self, uid: str) -> None:
        await self.log(AuditEventBuilder.snapshot_initialized(uid=uid))

    async def log_transaction_appended(
        self,
        uid: str,
        transaction_id: int,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new ledger entry."""
        event = AuditEventBuilder.transaction_appended(
            uid=uid,
            transaction_id=transaction_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_rejected(
        self,
        uid: Optional[str],
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected user input."""
        event = AuditEventBuilder.validation_rejected(
            uid=uid,
            field=field,
            message=message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_cleared(self, uid: str, removed: int) -> None:
        await self.log(AuditEventBuilder.ledger_cleared(uid=uid, removed=removed))

    async def log_clear_cancelled(self, uid: str) -> None:
        await self.log(AuditEventBuilder.clear_cancelled(uid=uid))

    async def log_persist_failed(self, uid: str, count: int, error_message: str) -> None:
        await self.log(
            AuditEventBuilder.persist_failed(uid=uid, count=count, error_message=error_message)
        )

    async def log_bank_balances_fetched(self, uid: str, account_count: int, total: str) -> None:
        await self.log(
            AuditEventBuilder.bank_balances_fetched(
                uid=uid, account_count=account_count, total=total
            )
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        uid: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            uid=uid,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a form submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
