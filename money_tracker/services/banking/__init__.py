"""Bank balance lookup package."""

from money_tracker.services.banking.client import (
    BalanceLookupInterface,
    BankingError,
    HttpBalanceClient,
    parse_balances,
)

__all__ = [
    "BalanceLookupInterface",
    "BankingError",
    "HttpBalanceClient",
    "parse_balances",
]
