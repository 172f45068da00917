"""
Money Tracker - Source Package

A personal net-worth tracker: a signed-in user logs manual cash
transactions and sees a running net worth, optionally alongside
balances of linked bank accounts.

DESIGN PRINCIPLES:
1. Net worth is always derived from the ledger, never stored
2. Validate before mutating, never after
3. The tracker stays usable when storage is briefly unavailable
4. Every ledger action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Tracker Team"
