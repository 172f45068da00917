"""
Tests for Money Tracker

Test strategy:
1. Unit tests for individual components (models, calculator, migration)
2. Integration tests for flows (with in-memory backends)
3. No real API calls in tests (use in-memory storage and mock transports)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from money_tracker.models.ledger import (
    BankAccount,
    BankBalances,
    Identity,
    Ledger,
    LedgerSnapshot,
    LOCAL_DEVICE_UID,
    TransactionCategory,
    TransactionRecord,
    UserProfile,
)
from money_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionRecord:
    """Tests for the canonical ledger entry."""

    def test_record_creation(self):
        """Test TransactionRecord creation."""
        record = TransactionRecord(
            id=1700000000000,
            label="Salary",
            amount=Decimal("2500.00"),
            category=TransactionCategory.INCOME,
        )
        assert record.label == "Salary"
        assert record.amount == Decimal("2500.00")
        assert record.wallet is None

    def test_record_strips_whitespace(self):
        """Test that whitespace is stripped from the label."""
        record = TransactionRecord(id=1, label="  Rent  ", amount=10, category="expense")
        assert record.label == "Rent"
        assert record.category == TransactionCategory.EXPENSE

    def test_record_rejects_negative_amount(self):
        """Amounts are magnitudes; the category carries the sign."""
        with pytest.raises(ValueError):
            TransactionRecord(id=1, label="Test", amount=Decimal("-100"), category="income")

    def test_record_rejects_blank_label(self):
        with pytest.raises(ValueError):
            TransactionRecord(id=1, label="   ", amount=1, category="income")

    def test_record_rejects_overlong_label(self):
        with pytest.raises(ValueError):
            TransactionRecord(id=1, label="x" * 201, amount=1, category="income")

    @pytest.mark.parametrize(
        "category, expected",
        [
            (TransactionCategory.ASSET, Decimal("50")),
            (TransactionCategory.INCOME, Decimal("50")),
            (TransactionCategory.LIABILITY, Decimal("-50")),
            (TransactionCategory.EXPENSE, Decimal("-50")),
            (TransactionCategory.UNKNOWN, Decimal("0")),
        ],
    )
    def test_signed_amount_follows_category(self, category, expected):
        record = TransactionRecord(id=1, label="x", amount=Decimal("50"), category=category)
        assert record.signed_amount == expected

    def test_to_storage_dict_uses_plain_numbers(self):
        """Stored snapshots hold JSON numbers and omit absent wallets."""
        record = TransactionRecord(
            id=42, label="Savings", amount=Decimal("12.50"), category="asset"
        )
        assert record.to_storage_dict() == {
            "id": 42,
            "label": "Savings",
            "amount": 12.5,
            "category": "asset",
        }

    def test_to_storage_dict_keeps_wallet(self):
        record = TransactionRecord(
            id=1, label="Cash", amount=5, category="income", wallet="Pocket"
        )
        assert record.to_storage_dict()["wallet"] == "Pocket"


class TestLedgerModels:
    """Tests for Ledger and LedgerSnapshot."""

    def test_empty_ledger(self):
        ledger = Ledger()
        assert len(ledger) == 0
        assert ledger.net_worth == Decimal("0.00")
        assert ledger.owner_uid is None

    def test_ledger_net_worth_is_derived(self):
        ledger = Ledger(
            owner_uid="u1",
            transactions=[
                TransactionRecord(id=1, label="Pay", amount=100, category="income"),
                TransactionRecord(id=2, label="Food", amount=40, category="expense"),
            ],
        )
        assert ledger.net_worth == Decimal("60.00")

    def test_snapshot_reads_legacy_net_worth_alias(self):
        snapshot = LedgerSnapshot.model_validate({"transactions": [], "netWorth": 99})
        assert snapshot.net_worth == 99

    def test_snapshot_never_writes_net_worth(self):
        snapshot = LedgerSnapshot(transactions=[{"id": 1}], netWorth=12.0)
        assert snapshot.to_storage_dict() == {"transactions": [{"id": 1}]}

    def test_snapshot_ignores_unknown_keys(self):
        snapshot = LedgerSnapshot.model_validate({"transactions": [], "theme": "dark"})
        assert snapshot.transactions == []


class TestCategories:
    """Tests for the category enum."""

    def test_user_choices_exclude_unknown(self):
        choices = TransactionCategory.user_choices()
        assert len(choices) == 4
        assert TransactionCategory.UNKNOWN not in choices

    def test_category_values(self):
        """Test category values are lowercase strings."""
        for category in TransactionCategory:
            assert category.value == category.value.lower()


class TestIdentityAndProfile:
    """Tests for identity and profile models."""

    def test_contact_prefers_email(self):
        identity = Identity(uid="u1", email="a@b.c", phone_number="+1")
        assert identity.contact == "a@b.c"

    def test_contact_falls_back_to_phone_then_uid(self):
        assert Identity(uid="u1", phone_number="+1").contact == "+1"
        assert Identity(uid="u1").contact == "u1"

    def test_identity_is_immutable(self):
        identity = Identity(uid="u1")
        with pytest.raises(ValueError):
            identity.uid = "u2"

    def test_identity_requires_uid(self):
        with pytest.raises(ValueError):
            Identity(uid="")

    def test_local_device_identity(self):
        identity = Identity.local_device()
        assert identity.uid == LOCAL_DEVICE_UID

    def test_profile_defaults_timestamps(self):
        profile = UserProfile(email="a@b.c")
        assert profile.created_at is not None
        assert profile.last_login_at is not None


class TestBankModels:
    """Tests for bank balance models."""

    def test_bank_total(self):
        balances = BankBalances(
            accounts=[
                BankAccount(name="Checking", balance=Decimal("1200.10")),
                BankAccount(name="Credit card", balance=Decimal("-200.05")),
            ]
        )
        assert balances.total == Decimal("1000.05")

    def test_no_accounts_total_is_zero(self):
        assert BankBalances().total == Decimal("0.00")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPENDED,
            description="Added income of 100",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            identity_uid="u1",
            description="Loaded 2 transaction(s)",
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "ledger_loaded"
        assert log_dict["identity_uid"] == "u1"
        assert log_dict["correlation_id"] is None

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            correlation_id=correlation_id,
            description="Rejected input: label",
            details={"field": "label"},
        )
        row = event.to_sheets_row()

        assert len(row) == 10
        assert row[2] == "validation_rejected"
        assert row[5] == str(correlation_id)
        assert row[7] == '{"field": "label"}'
        assert row[9] == "False"

    def test_audit_event_builder_transaction_appended(self):
        """Test AuditEventBuilder for a new entry."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_appended(
            uid="u1",
            transaction_id=1000,
            category="income",
            amount="100.00",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_APPENDED
        assert event.identity_uid == "u1"
        assert event.details["transaction_id"] == 1000
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_persist_failed(self):
        """A failed write is an error, not a user action."""
        event = AuditEventBuilder.persist_failed(uid="u1", count=3, error_message="quota")

        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota"
        assert event.details == {"count": 3}
        assert event.is_user_action is False

    def test_audit_event_builder_ledger_cleared(self):
        event = AuditEventBuilder.ledger_cleared(uid="u1", removed=5)

        assert event.severity == AuditSeverity.WARNING
        assert event.details["removed"] == 5
