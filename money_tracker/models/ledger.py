"""
Core Data Models for Money Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep net worth a derivation, never a stored value

DESIGN DECISION: One canonical TransactionRecord shape.
Records written by older revisions (signed amounts, wallet/tag instead of
label/category) are normalized at load time by money_tracker.ledger.migration,
so nothing downstream branches on which fields happen to be present.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionCategory(str, Enum):
    """
    Ledger entry categories.

    The category alone decides the sign of an entry's contribution
    to net worth. UNKNOWN is never accepted from user input; it only
    appears when a stored record carries an unrecognized value.
    """
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    UNKNOWN = "unknown"

    @property
    def sign(self) -> int:
        """+1 for increases, -1 for decreases, 0 for unrecognized."""
        return _CATEGORY_SIGNS[self]

    @classmethod
    def user_choices(cls) -> list["TransactionCategory"]:
        """Categories a user may pick when adding an entry."""
        return [cls.ASSET, cls.LIABILITY, cls.INCOME, cls.EXPENSE]


_CATEGORY_SIGNS = {
    TransactionCategory.ASSET: 1,
    TransactionCategory.INCOME: 1,
    TransactionCategory.LIABILITY: -1,
    TransactionCategory.EXPENSE: -1,
    TransactionCategory.UNKNOWN: 0,
}


class LedgerState(str, Enum):
    """Lifecycle of the in-memory ledger."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


# =============================================================================
# LEDGER MODELS
# =============================================================================

class TransactionRecord(BaseModel):
    """
    One user-entered ledger entry.

    The amount is always a non-negative magnitude; the category
    carries the sign.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        ...,
        ge=0,
        description="Creation time in epoch milliseconds"
    )
    label: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What this entry is"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Magnitude of the entry"
    )
    category: TransactionCategory = Field(
        ...,
        description="Determines the sign of the entry"
    )
    wallet: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Wallet the money moved through (legacy records only)"
    )

    @property
    def signed_amount(self) -> Decimal:
        """This entry's contribution to net worth."""
        return self.amount * self.category.sign

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        # Stored snapshots hold plain JSON numbers
        return float(amount)

    def to_storage_dict(self) -> dict:
        """Convert to the JSON-ready shape written to snapshots."""
        return self.model_dump(mode="json", exclude_none=True)


class Ledger(BaseModel):
    """
    Ordered sequence of transaction records for one identity.

    Insertion order is preserved. Net worth is computed on access.
    """

    owner_uid: Optional[str] = Field(
        default=None,
        description="Identity the ledger belongs to; None when unloaded"
    )
    transactions: list[TransactionRecord] = Field(default_factory=list)

    @property
    def net_worth(self) -> Decimal:
        from money_tracker.ledger.calculator import compute_net_worth

        return compute_net_worth(self.transactions)

    def __len__(self) -> int:
        return len(self.transactions)


class LedgerSnapshot(BaseModel):
    """
    Local snapshot shape: {"transactions": [...], "netWorth"?: number}.

    net_worth is read only so that old snapshots parse; it is never
    trusted and never written.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transactions: list = Field(default_factory=list)
    net_worth: Optional[float] = Field(default=None, alias="netWorth")

    def to_storage_dict(self) -> dict:
        return {"transactions": list(self.transactions)}


# =============================================================================
# IDENTITY MODELS
# =============================================================================

LOCAL_DEVICE_UID = "local-device"


class Identity(BaseModel):
    """An authenticated user reference, as delivered by identity events."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone_number: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def local_device(cls) -> "Identity":
        """Anonymous identity used when no sign-in provider is configured."""
        return cls(uid=LOCAL_DEVICE_UID, display_name="This device")

    @property
    def contact(self) -> str:
        """Best human-readable handle for this identity."""
        return self.email or self.phone_number or self.display_name or self.uid


class UserProfile(BaseModel):
    """Profile sub-document stored next to the ledger."""

    display_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_login_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# BANK BALANCE MODELS
# =============================================================================

class BankAccount(BaseModel):
    """One linked account as reported by the balance lookup."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    subtype: Optional[str] = None
    mask: Optional[str] = Field(
        default=None,
        description="Last digits of the account number"
    )
    balance: Decimal = Field(default=Decimal("0"))


class BankBalances(BaseModel):
    """
    Result of a balance lookup.

    The bank total is additive to, but never merged into,
    the manual ledger's net worth.
    """

    accounts: list[BankAccount] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total(self) -> Decimal:
        from money_tracker.ledger.calculator import compute_bank_total

        return compute_bank_total(self)
