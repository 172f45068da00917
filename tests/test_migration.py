"""Tests for load-time record normalization."""

from decimal import Decimal

from money_tracker.ledger import compute_net_worth, normalize_record, normalize_records
from money_tracker.ledger.migration import UNTAGGED_LABEL, is_legacy_record
from money_tracker.models.ledger import TransactionCategory, TransactionRecord


class TestLegacyRecords:
    """Records from the wallet/tag revision carry a signed amount."""

    def test_detects_legacy_shape(self):
        assert is_legacy_record({"id": 1, "amount": 5, "wallet": "Cash", "tag": "food"})
        assert not is_legacy_record({"id": 1, "amount": 5, "label": "x", "category": "income"})
        assert not is_legacy_record({"id": 1, "amount": 5, "tag": "x", "type": "income"})

    def test_positive_legacy_amount_becomes_income(self):
        record = normalize_record({"id": 1700, "amount": 100, "wallet": "Bank", "tag": "salary"})

        assert record.category == TransactionCategory.INCOME
        assert record.amount == Decimal("100")
        assert record.label == "salary"
        assert record.wallet == "Bank"
        assert record.id == 1700

    def test_negative_legacy_amount_becomes_expense(self):
        record = normalize_record({"id": 2, "amount": -40.5, "wallet": "Cash", "tag": "food"})

        assert record.category == TransactionCategory.EXPENSE
        assert record.amount == Decimal("40.5")
        assert record.signed_amount == Decimal("-40.5")

    def test_missing_tag_is_untagged(self):
        record = normalize_record({"id": 3, "amount": 10, "wallet": "Cash", "tag": ""})
        assert record.label == UNTAGGED_LABEL

    def test_legacy_contribution_is_preserved(self):
        raw = [
            {"id": 1, "amount": 250, "wallet": "Bank", "tag": "pay"},
            {"id": 2, "amount": -75, "wallet": "Card", "tag": "groceries"},
        ]
        records, migrated = normalize_records(raw)

        assert migrated == 2
        assert sum(r.signed_amount for r in records) == Decimal("175")


class TestCanonicalRecords:
    """Records already in the label/category shape."""

    def test_canonical_record_passes_through(self):
        record = normalize_record(
            {"id": 5, "label": "Rent", "amount": 900, "category": "expense"}
        )
        assert record == TransactionRecord(
            id=5, label="Rent", amount=Decimal("900"), category="expense"
        )

    def test_type_key_is_read_as_category(self):
        record = normalize_record({"id": 6, "label": "Car", "amount": 8000, "type": "asset"})
        assert record.category == TransactionCategory.ASSET

    def test_unknown_category_is_kept_as_unknown(self):
        record = normalize_record({"id": 7, "label": "Bonus", "amount": 10, "category": "gift"})
        assert record.category == TransactionCategory.UNKNOWN
        assert record.signed_amount == 0

    def test_malformed_amount_becomes_zero(self):
        record = normalize_record({"id": 8, "label": "Oops", "amount": "lots", "category": "income"})
        assert record.amount == Decimal("0")

    def test_blank_label_becomes_untagged(self):
        record = normalize_record({"id": 9, "label": " ", "amount": 1, "category": "income"})
        assert record.label == UNTAGGED_LABEL

    def test_bad_ids_become_zero(self):
        assert normalize_record({"id": "abc", "label": "x", "amount": 1, "category": "income"}).id == 0
        assert normalize_record({"label": "x", "amount": 1, "category": "income"}).id == 0
        assert normalize_record({"id": "123", "label": "x", "amount": 1, "category": "income"}).id == 123

    def test_overlong_label_is_truncated(self):
        record = normalize_record({"id": 1, "label": "y" * 300, "amount": 1, "category": "income"})
        assert len(record.label) == 200


class TestNormalizeRecords:
    """Whole-list normalization."""

    def test_order_is_preserved(self):
        raw = [
            {"id": 3, "label": "c", "amount": 1, "category": "income"},
            {"id": 1, "amount": 1, "wallet": "w", "tag": "a"},
            {"id": 2, "label": "b", "amount": 1, "category": "expense"},
        ]
        records, migrated = normalize_records(raw)

        assert [r.id for r in records] == [3, 1, 2]
        assert migrated == 1

    def test_non_records_are_skipped(self):
        records, migrated = normalize_records(
            ["junk", None, 7, {"id": 1, "label": "ok", "amount": 2, "category": "asset"}]
        )
        assert len(records) == 1
        assert migrated == 0

    def test_mixed_ledger_net_worth(self):
        """Legacy and canonical records sum consistently after migration."""
        raw = [
            {"id": 1, "amount": 100, "wallet": "Bank", "tag": "pay"},
            {"id": 2, "label": "Loan", "amount": 30, "category": "liability"},
        ]
        records, _ = normalize_records(raw)
        assert compute_net_worth(records) == Decimal("70.00")
