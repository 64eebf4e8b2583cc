"""Custom exceptions for the sync application."""

from typing import Optional


class SyncError(Exception):
    """Base exception for sync errors."""

    pass


class ConfigurationError(SyncError):
    """Error in configuration."""

    pass


class ValidationError(SyncError):
    """Payload from the bank or the ledger did not have the expected shape."""

    pass


class AccountNotFoundError(SyncError):
    """Bank account could not be resolved to a ledger account."""

    def __init__(self, account_id: str, reason: str):
        super().__init__(f"Account {account_id} not resolvable: {reason}")
        self.account_id = account_id
        self.reason = reason


class UnknownCurrencyError(SyncError):
    """Numeric ISO 4217 code has no alphabetic mapping."""

    def __init__(self, numeric_code: int):
        super().__init__(f"Unknown ISO 4217 numeric currency code: {numeric_code}")
        self.numeric_code = numeric_code


class BankAPIError(SyncError):
    """Non-retryable error from the Monobank API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class LedgerAPIError(SyncError):
    """Error response from the Firefly III API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
