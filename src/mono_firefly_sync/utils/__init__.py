"""Utility modules."""

from .exceptions import (
    SyncError,
    ConfigurationError,
    ValidationError,
    AccountNotFoundError,
    UnknownCurrencyError,
    BankAPIError,
    LedgerAPIError,
)
from .logging_config import setup_logging

__all__ = [
    "SyncError",
    "ConfigurationError",
    "ValidationError",
    "AccountNotFoundError",
    "UnknownCurrencyError",
    "BankAPIError",
    "LedgerAPIError",
    "setup_logging",
]
