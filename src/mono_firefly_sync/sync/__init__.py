"""Reconciliation engine and its components."""

from .accounts import AccountDirectory, ClientInfoCache
from .engine import Anchor, EngineState, ReconciliationEngine
from .index import SyncIndex
from .mapper import TransactionMapper, build_payload, currency_alpha_code
from .statements import StatementSource
from .writer import LedgerWriter

__all__ = [
    "AccountDirectory",
    "ClientInfoCache",
    "Anchor",
    "EngineState",
    "ReconciliationEngine",
    "SyncIndex",
    "TransactionMapper",
    "build_payload",
    "currency_alpha_code",
    "StatementSource",
    "LedgerWriter",
]
