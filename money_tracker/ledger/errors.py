"""Ledger exceptions."""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    User input was rejected before any mutation.

    `field` names the offending input so the UI can point at it.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class IdentityRequiredError(LedgerError):
    """A mutating operation was attempted with nobody signed in."""

    def __init__(self, operation: Optional[str] = None):
        self.operation = operation
        message = "Sign in first"
        if operation:
            message = f"Sign in before you {operation}"
        super().__init__(message)
