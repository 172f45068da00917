"""
Load-time record normalization.

Ledgers written by earlier revisions use a different record shape:

    legacy:    {"id", "amount" (signed), "wallet", "tag"}
    canonical: {"id", "label", "amount" (magnitude), "category"}

Later browser revisions also wrote the category under "type".
Every stored record passes through normalize_record() on load so the
rest of the code only ever sees the canonical TransactionRecord.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional

import structlog

from money_tracker.ledger.calculator import coerce_amount, coerce_category
from money_tracker.models.ledger import TransactionCategory, TransactionRecord


logger = structlog.get_logger(__name__)

UNTAGGED_LABEL = "untagged"
LABEL_MAX_LENGTH = 200
WALLET_MAX_LENGTH = 100


def is_legacy_record(raw: Mapping[str, Any]) -> bool:
    """Legacy records have no category of any kind and carry a tag or wallet."""
    has_category = "category" in raw or "type" in raw
    return not has_category and ("tag" in raw or "wallet" in raw)


def _coerce_id(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float) and value.is_integer():
        return max(int(value), 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()[:LABEL_MAX_LENGTH]


def normalize_record(raw: Any) -> Optional[TransactionRecord]:
    """
    Convert one stored record to the canonical shape.

    Returns None for values that are not records at all.
    """
    if isinstance(raw, TransactionRecord):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning("record_skipped", reason="not_a_mapping", value_type=type(raw).__name__)
        return None

    wallet = _clean_text(raw.get("wallet"))[:WALLET_MAX_LENGTH] or None

    if is_legacy_record(raw):
        signed = coerce_amount(raw.get("amount"))
        label = _clean_text(raw.get("tag")) or UNTAGGED_LABEL
        category = TransactionCategory.INCOME if signed >= 0 else TransactionCategory.EXPENSE
        amount = abs(signed)
    else:
        label = _clean_text(raw.get("label")) or _clean_text(raw.get("tag")) or UNTAGGED_LABEL
        category = coerce_category(raw.get("category", raw.get("type")))
        amount = abs(coerce_amount(raw.get("amount")))

    return TransactionRecord(
        id=_coerce_id(raw.get("id")),
        label=label,
        amount=amount if amount.is_finite() else Decimal("0"),
        category=category,
        wallet=wallet,
    )


def normalize_records(raw_records: Iterable[Any]) -> tuple[list[TransactionRecord], int]:
    """
    Normalize a stored record list, preserving order.

    Returns:
        (records, migrated_count) where migrated_count is the number
        of legacy-shaped records that were converted
    """
    records: list[TransactionRecord] = []
    migrated = 0
    for raw in raw_records:
        if isinstance(raw, Mapping) and is_legacy_record(raw):
            migrated += 1
        record = normalize_record(raw)
        if record is not None:
            records.append(record)
    if migrated:
        logger.info("legacy_records_migrated", count=migrated)
    return records, migrated
