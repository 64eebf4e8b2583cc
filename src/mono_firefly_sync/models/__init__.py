"""Data models for the sync service."""

from .transaction import (
    BankAccount,
    LedgerAccount,
    LedgerTransaction,
    StatementEntry,
    TransactionType,
    ReconciliationState,
    RecoveryResult,
    RecoveryStatus,
)

__all__ = [
    "BankAccount",
    "LedgerAccount",
    "LedgerTransaction",
    "StatementEntry",
    "TransactionType",
    "ReconciliationState",
    "RecoveryResult",
    "RecoveryStatus",
]
