"""
Net Worth Calculator

Pure, side-effect-free reductions over ledger records.

Net worth is Σ sign(category) * amount, where asset and income
count up, liability and expense count down, and anything else
counts as zero. Summation is order-independent, so the result
never depends on how the ledger happens to be displayed.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Union

from money_tracker.models.ledger import (
    BankBalances,
    TransactionCategory,
    TransactionRecord,
)


CENTS = Decimal("0.01")

# Largest magnitude a single amount may have; larger stored values count as 0
AMOUNT_LIMIT = Decimal("1000000000000")

RecordLike = Union[TransactionRecord, Mapping[str, Any]]


def coerce_amount(value: Any) -> Decimal:
    """Convert any stored amount to a finite, in-range Decimal; anything else is 0."""
    if isinstance(value, bool) or value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not amount.is_finite() or abs(amount) > AMOUNT_LIMIT:
        return Decimal("0")
    return amount


def to_cents(value: Decimal) -> Decimal:
    """Round to cents without running out of context precision."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENTS)


def coerce_category(value: Any) -> TransactionCategory:
    """Map a stored category value onto the enum; unrecognized is UNKNOWN."""
    if isinstance(value, TransactionCategory):
        return value
    if isinstance(value, str):
        try:
            return TransactionCategory(value.strip().lower())
        except ValueError:
            pass
    return TransactionCategory.UNKNOWN


def signed_amount(record: RecordLike) -> Decimal:
    """A single record's contribution to net worth."""
    if isinstance(record, TransactionRecord):
        return record.signed_amount
    if not isinstance(record, Mapping):
        return Decimal("0")
    category = coerce_category(record.get("category", record.get("type")))
    return abs(coerce_amount(record.get("amount"))) * category.sign


def compute_net_worth(records: Iterable[RecordLike]) -> Decimal:
    """Derive net worth from ledger records, rounded to cents."""
    total = sum((signed_amount(record) for record in records), Decimal("0"))
    return to_cents(total)


def category_totals(records: Iterable[RecordLike]) -> dict[TransactionCategory, Decimal]:
    """Unsigned totals per user category, for the summary panel."""
    totals = {category: Decimal("0") for category in TransactionCategory.user_choices()}
    for record in records:
        if isinstance(record, TransactionRecord):
            category, amount = record.category, record.amount
        elif isinstance(record, Mapping):
            category = coerce_category(record.get("category", record.get("type")))
            amount = abs(coerce_amount(record.get("amount")))
        else:
            continue
        if category in totals:
            totals[category] += amount
    return {category: to_cents(total) for category, total in totals.items()}


def compute_bank_total(balances: BankBalances) -> Decimal:
    """Sum of linked account balances. Kept apart from net worth."""
    total = sum((coerce_amount(a.balance) for a in balances.accounts), Decimal("0"))
    return to_cents(total)


def format_signed_amount(record: TransactionRecord) -> str:
    """Render an entry's contribution the way the ledger list shows it."""
    value = to_cents(record.signed_amount)
    prefix = "+" if value > 0 else ""
    return f"{prefix}{value:,.2f}"
