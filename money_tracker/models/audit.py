"""
Audit Models for Money Tracker

Identity changes, ledger mutations, rejected input and backend
failures each produce one AuditEvent. A write that failed after the
UI already showed the new entry is only visible here.

DESIGN DECISION: The audit trail is append-only; events are never
edited or removed, even when the ledger they describe is wiped.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    IDENTITY_SIGNED_IN = "identity_signed_in"
    IDENTITY_SIGNED_OUT = "identity_signed_out"

    # Ledger reads
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    SNAPSHOT_INITIALIZED = "snapshot_initialized"

    # Ledger mutations
    TRANSACTION_APPENDED = "transaction_appended"
    VALIDATION_REJECTED = "validation_rejected"
    LEDGER_CLEARED = "ledger_cleared"
    CLEAR_CANCELLED = "clear_cancelled"
    PERSIST_FAILED = "persist_failed"

    # Bank balances
    BANK_BALANCES_FETCHED = "bank_balances_fetched"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """How loudly an event is logged."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry in the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="UTC time the event was recorded"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Whose ledger this is about
    identity_uid: Optional[str] = Field(
        default=None,
        description="UID of the identity the event relates to"
    )

    # Ties together events caused by one user action
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One-line summary shown in the audit sheet"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured context, serialized as JSON in the sheet"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="True when a button press or form submit caused it"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "identity_uid": self.identity_uid,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, identity_uid,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.identity_uid or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    One constructor per event type, so call sites never pick severity by hand.

    Usage:
        event = AuditEventBuilder.transaction_appended(
            uid="abc", transaction_id=1700000000000,
            category="income", amount="100.00",
        )
    """

    @staticmethod
    def identity_signed_in(uid: str, contact: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IDENTITY_SIGNED_IN,
            identity_uid=uid,
            description=f"Signed in as {contact}",
            is_user_action=True,
        )

    @staticmethod
    def identity_signed_out(uid: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IDENTITY_SIGNED_OUT,
            identity_uid=uid,
            description="Signed out; in-memory ledger discarded",
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(uid: str, count: int, migrated: int = 0) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            identity_uid=uid,
            description=f"Loaded {count} transaction(s)",
            details={"count": count, "migrated": migrated},
        )

    @staticmethod
    def ledger_load_failed(uid: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            identity_uid=uid,
            description="Could not read stored ledger; starting empty",
            error_message=error_message,
        )

    @staticmethod
    def snapshot_initialized(uid: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_INITIALIZED,
            identity_uid=uid,
            description="Created an empty ledger snapshot",
        )

    @staticmethod
    def transaction_appended(
        uid: str,
        transaction_id: int,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPENDED,
            identity_uid=uid,
            correlation_id=correlation_id,
            description=f"Added {category} of {amount}",
            details={
                "transaction_id": transaction_id,
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_rejected(
        uid: Optional[str],
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            severity=AuditSeverity.WARNING,
            identity_uid=uid,
            correlation_id=correlation_id,
            description=f"Rejected input: {field}",
            details={"field": field, "message": message},
            is_user_action=True,
        )

    @staticmethod
    def ledger_cleared(uid: str, removed: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            identity_uid=uid,
            description=f"Wiped {removed} transaction(s)",
            details={"removed": removed},
            is_user_action=True,
        )

    @staticmethod
    def clear_cancelled(uid: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLEAR_CANCELLED,
            identity_uid=uid,
            description="Wipe requested without confirmation; nothing changed",
            is_user_action=True,
        )

    @staticmethod
    def persist_failed(uid: str, count: int, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_FAILED,
            severity=AuditSeverity.ERROR,
            identity_uid=uid,
            description="Ledger write failed; in-memory state kept",
            details={"count": count},
            error_message=error_message,
        )

    @staticmethod
    def bank_balances_fetched(uid: str, account_count: int, total: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BANK_BALANCES_FETCHED,
            identity_uid=uid,
            description=f"Fetched {account_count} bank account balance(s)",
            details={"account_count": account_count, "total": total},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        uid: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            identity_uid=uid,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
