"""Shared fixtures and in-memory fakes of the Monobank and Firefly clients."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from mono_firefly_sync.config import FireflyConfig, MonobankConfig, SyncServiceConfig
from mono_firefly_sync.models.transaction import (
    LedgerAccount,
    LedgerTransaction,
    StatementEntry,
)
from mono_firefly_sync.sync.engine import ReconciliationEngine

IBAN_X = "UA213223130000026007233566001"
IBAN_Y = "UA213223130000026007233566002"
IBAN_Z = "UA213223130000026007233566003"

# 2024-03-01 10:00:00 UTC
ANCHOR_TIME = 1709287200


def make_entry(
    entry_id: str,
    time: int,
    amount: int,
    balance: int = 0,
    currency_code: int = 980,
    comment: Optional[str] = None,
    description: str = "Shop",
) -> StatementEntry:
    return StatementEntry(
        id=entry_id,
        time=datetime.fromtimestamp(time, tz=timezone.utc),
        description=description,
        amount=amount,
        balance=balance,
        currency_code=currency_code,
        comment=comment,
    )


def make_transaction(
    transaction_id: int,
    type: str = "withdrawal",
    amount: str = "50.00",
    date: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    tags: tuple[str, ...] = ("monosync",),
    source_id: Optional[int] = 1,
    source_iban: Optional[str] = IBAN_X,
    destination_id: Optional[int] = None,
    destination_iban: Optional[str] = None,
    external_url: Optional[str] = "https://api.monobank.ua",
) -> LedgerTransaction:
    date = date or datetime.fromtimestamp(ANCHOR_TIME, tz=timezone.utc)
    return LedgerTransaction(
        id=transaction_id,
        created_at=created_at or date,
        date=date,
        type=type,
        amount=Decimal(amount),
        tags=tags,
        source_id=source_id,
        source_iban=source_iban,
        destination_id=destination_id,
        destination_iban=destination_iban,
        external_url=external_url,
    )


class FakeMonobank:
    """Serves statements from memory with the real page cap semantics."""

    def __init__(self, accounts: list[dict], page_size: int = 500):
        self.accounts = accounts
        self.page_size = page_size
        self.statements: dict[str, list[StatementEntry]] = {}
        self.statement_calls: list[tuple[str, int, Optional[int]]] = []
        self.client_info_calls = 0

    def get_client_info(self) -> dict:
        self.client_info_calls += 1
        return {"clientId": "c1", "name": "Test", "accounts": self.accounts}

    def get_statements(
        self, account_id: str, from_time: int, to_time: Optional[int] = None
    ) -> list[StatementEntry]:
        self.statement_calls.append((account_id, from_time, to_time))
        entries = [
            e
            for e in self.statements.get(account_id, [])
            if e.timestamp >= from_time and (to_time is None or e.timestamp <= to_time)
        ]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[: self.page_size]


class FakeFirefly:
    """Holds ledger accounts and transactions, records created payloads."""

    def __init__(self, accounts: list[LedgerAccount]):
        self.accounts = accounts
        self.transactions: list[LedgerTransaction] = []
        self.created: list[dict] = []
        self.fail_with: Optional[Exception] = None

    def iter_accounts(self):
        yield from self.accounts

    def iter_transactions(self):
        yield from self.transactions

    def create_transaction(self, payload: dict) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(payload)
        return str(100 + len(self.created))


@pytest.fixture
def service_config() -> SyncServiceConfig:
    return SyncServiceConfig(
        monobank=MonobankConfig(token="mono-token", retry_delay=0, cache_file=None),
        firefly=FireflyConfig(api_url="http://firefly.test/api", token="ff-token"),
        currencies={980: "UAH", 840: "USD", 978: "EUR"},
    )


@pytest.fixture
def bank() -> FakeMonobank:
    return FakeMonobank(
        [
            {"id": "acc-x", "currencyCode": 980, "balance": 96000, "iban": IBAN_X},
            {"id": "acc-y", "currencyCode": 840, "balance": 2000, "iban": IBAN_Y},
            {"id": "acc-z", "currencyCode": 980, "balance": 0, "iban": IBAN_Z},
        ]
    )


@pytest.fixture
def ledger() -> FakeFirefly:
    return FakeFirefly(
        [
            LedgerAccount(id=1, iban=IBAN_X, current_balance=Decimal("950.00"), name="Black card"),
            LedgerAccount(id=2, iban=IBAN_Y, current_balance=Decimal("20.00"), name="USD card"),
            LedgerAccount(id=3, iban=None, current_balance=Decimal("0"), name="Cash"),
        ]
    )


@pytest.fixture
def engine(service_config, bank, ledger) -> ReconciliationEngine:
    return ReconciliationEngine.from_config(service_config, bank=bank, ledger=ledger)
