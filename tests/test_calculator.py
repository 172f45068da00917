"""Tests for the net worth calculator."""

import random
from decimal import Decimal

import pytest

from money_tracker.ledger import (
    category_totals,
    compute_net_worth,
    format_signed_amount,
)
from money_tracker.ledger.calculator import (
    coerce_amount,
    coerce_category,
    signed_amount,
    to_cents,
)
from money_tracker.models.ledger import TransactionCategory, TransactionRecord


def record(amount, category, id=1, label="entry") -> TransactionRecord:
    return TransactionRecord(id=id, label=label, amount=Decimal(str(amount)), category=category)


class TestComputeNetWorth:
    """Net worth is the signed sum over every record."""

    def test_empty_ledger_is_zero(self):
        assert compute_net_worth([]) == Decimal("0.00")

    def test_income_minus_expense(self):
        ledger = [record(100, "income"), record(40, "expense")]
        assert compute_net_worth(ledger) == Decimal("60.00")

    def test_asset_minus_liability(self):
        ledger = [record(500, "asset"), record(200, "liability")]
        assert compute_net_worth(ledger) == Decimal("300.00")

    def test_can_go_negative(self):
        assert compute_net_worth([record(75, "liability")]) == Decimal("-75.00")

    def test_order_independent(self):
        ledger = [
            record("10.10", "income", id=1),
            record("3.03", "expense", id=2),
            record("500", "asset", id=3),
            record("199.99", "liability", id=4),
        ]
        expected = compute_net_worth(ledger)
        shuffled = list(ledger)
        random.Random(7).shuffle(shuffled)
        assert compute_net_worth(shuffled) == expected
        assert compute_net_worth(reversed(ledger)) == expected

    def test_decimal_amounts_do_not_drift(self):
        ledger = [record("0.10", "income", id=i) for i in range(10)]
        assert compute_net_worth(ledger) == Decimal("1.00")

    def test_unknown_category_contributes_zero(self):
        ledger = [record(100, "income"), record(999, TransactionCategory.UNKNOWN)]
        assert compute_net_worth(ledger) == Decimal("100.00")

    def test_raw_mappings(self):
        """Stored records are accepted before normalization too."""
        ledger = [
            {"category": "asset", "amount": 500},
            {"type": "liability", "amount": "200"},
        ]
        assert compute_net_worth(ledger) == Decimal("300.00")

    @pytest.mark.parametrize(
        "bad_amount", ["abc", None, True, float("nan"), "Infinity", [1], 1e30, "-1e999999"]
    )
    def test_malformed_amount_contributes_zero(self, bad_amount):
        ledger = [{"category": "income", "amount": 10}, {"category": "income", "amount": bad_amount}]
        assert compute_net_worth(ledger) == Decimal("10.00")

    def test_malformed_records_contribute_zero(self):
        ledger = [record(10, "income"), "garbage", 42, None, {"category": "bonus", "amount": 5}]
        assert compute_net_worth(ledger) == Decimal("10.00")


class TestCoercion:
    """Tests for the stored-value coercion helpers."""

    def test_coerce_amount_parses_strings(self):
        assert coerce_amount(" 12.5 ") == Decimal("12.5")

    def test_coerce_amount_keeps_decimals(self):
        assert coerce_amount(Decimal("3.30")) == Decimal("3.30")

    def test_coerce_category_is_case_insensitive(self):
        assert coerce_category(" Income ") == TransactionCategory.INCOME

    @pytest.mark.parametrize("value", ["bonus", None, 3, ""])
    def test_coerce_category_unknown(self, value):
        assert coerce_category(value) == TransactionCategory.UNKNOWN

    def test_signed_amount_uses_magnitude_of_stored_value(self):
        assert signed_amount({"category": "expense", "amount": -40}) == Decimal("-40")

    def test_amount_at_the_limit_is_kept(self):
        assert coerce_amount("1000000000000") == Decimal("1000000000000")

    def test_to_cents_handles_totals_beyond_context_precision(self):
        assert to_cents(Decimal("1e30")) == Decimal("1e30")
        assert str(to_cents(Decimal("-1e30"))).endswith(".00")

    def test_oversized_record_does_not_break_the_total(self):
        ledger = [record("1e30", "asset"), record(10, "income")]
        assert compute_net_worth(ledger) > Decimal("1e29")


class TestCategoryTotals:
    """Tests for the per-category summary."""

    def test_totals_per_category(self):
        ledger = [
            record(100, "income"),
            record(50, "income"),
            record(40, "expense"),
            record(500, "asset"),
        ]
        totals = category_totals(ledger)
        assert totals[TransactionCategory.INCOME] == Decimal("150.00")
        assert totals[TransactionCategory.EXPENSE] == Decimal("40.00")
        assert totals[TransactionCategory.ASSET] == Decimal("500.00")
        assert totals[TransactionCategory.LIABILITY] == Decimal("0.00")

    def test_unknown_is_not_listed(self):
        totals = category_totals([record(5, TransactionCategory.UNKNOWN)])
        assert TransactionCategory.UNKNOWN not in totals
        assert sum(totals.values()) == Decimal("0")


class TestFormatSignedAmount:
    """Tests for the ledger list rendering."""

    def test_positive_has_plus(self):
        assert format_signed_amount(record(1234, "income")) == "+1,234.00"

    def test_negative_has_minus(self):
        assert format_signed_amount(record("40.5", "expense")) == "-40.50"

    def test_zero_has_no_sign(self):
        assert format_signed_amount(record(7, TransactionCategory.UNKNOWN)) == "0.00"
