"""
Reconciliation engine.
Recovers the gap between Firefly and Monobank after downtime, then ingests
live statement events one at a time.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional
import logging
import threading

from ..clients.firefly import FireflyClient
from ..clients.monobank import MonobankClient
from ..config import SyncServiceConfig
from ..models.transaction import (
    BankAccount,
    LedgerAccount,
    LedgerTransaction,
    ReconciliationState,
    RecoveryResult,
    RecoveryStatus,
    StatementEntry,
    TransactionType,
)
from ..utils.exceptions import UnknownCurrencyError
from .accounts import AccountDirectory, ClientInfoCache
from .index import SyncIndex
from .mapper import TransactionMapper
from .statements import StatementSource
from .writer import LedgerWriter

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle of the engine within one process."""

    IDLE = "idle"
    ANCHOR_SEARCH = "anchor_search"
    BACKFILL = "backfill"
    LIVE = "live"
    FAILED = "failed"


@dataclass(frozen=True)
class Anchor:
    """Statement entry matching the newest transaction this service wrote."""

    account: BankAccount
    entry: StatementEntry
    transaction: LedgerTransaction


class ReconciliationEngine:
    """
    Keeps Firefly's transaction set in step with Monobank statements.

    ``recover`` runs anchor search and backfill once; ``handle_event`` maps and
    writes one live event. Both hold the same lock, so events delivered during
    a backfill wait for it to finish instead of racing its writes. Entries the
    last pass wrote, and entries written live since, are kept in
    ``recovered_ids`` and never written twice.
    """

    def __init__(
        self,
        directory: AccountDirectory,
        statements: StatementSource,
        mapper: TransactionMapper,
        writer: LedgerWriter,
        sort_transactions: bool = False,
    ):
        """
        Initialize the engine.

        Args:
            directory: Bank/ledger account directory
            statements: Statement source for the bank side
            mapper: Statement entry to payload mapper
            writer: Ledger writer
            sort_transactions: Sort ledger transactions by creation time
                before the anchor scan instead of trusting server order
        """
        self.directory = directory
        self.statements = statements
        self.mapper = mapper
        self.writer = writer
        self.sort_transactions = sort_transactions

        self.state = EngineState.IDLE
        self.last_result: Optional[RecoveryResult] = None
        self.skipped_unresolved = 0
        self.events_processed = 0
        self.recovered_ids: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: SyncServiceConfig,
        bank: Optional[MonobankClient] = None,
        ledger: Optional[FireflyClient] = None,
    ) -> "ReconciliationEngine":
        """Wire up clients and components from application configuration."""
        bank = bank or MonobankClient(config.monobank)
        ledger = ledger or FireflyClient(config.firefly)

        cache_file = Path(config.monobank.cache_file) if config.monobank.cache_file else None
        cache = ClientInfoCache(
            bank.get_client_info,
            ttl=config.monobank.client_info_ttl,
            cache_file=cache_file,
        )
        directory = AccountDirectory(bank, ledger, cache)

        index = SyncIndex(Path(config.sync.index_file)) if config.sync.index_file else None

        return cls(
            directory=directory,
            statements=StatementSource(bank, config.monobank.statement_page_size),
            mapper=TransactionMapper(
                directory,
                config.currencies,
                tag=config.sync.tag,
                external_url=config.sync.external_url,
            ),
            writer=LedgerWriter(ledger, index),
            sort_transactions=config.sync.sort_transactions,
        )

    # ==================== ANCHOR SEARCH ====================

    def recent_transactions(self) -> Iterator[LedgerTransaction]:
        """Ledger transactions, newest first."""
        transactions: Iterable[LedgerTransaction] = self.directory.ledger.iter_transactions()
        if self.sort_transactions:
            transactions = sorted(transactions, key=lambda t: t.created_at, reverse=True)
        yield from transactions

    def find_tagged_transaction(self) -> Optional[LedgerTransaction]:
        """The newest ledger transaction carrying the provenance tag or marker."""
        for transaction in self.recent_transactions():
            if transaction.is_tagged(self.mapper.tag, self.mapper.external_url):
                return transaction
        return None

    def find_anchor(self, transaction: LedgerTransaction) -> Optional[Anchor]:
        """
        Find the statement entry that produced ``transaction``.

        Candidate accounts are the bank accounts on either side of the
        transaction. Each is searched over the UTC day of the transaction for
        an entry whose balance-after equals the ledger account's current
        balance and whose signed amount agrees with the transaction.

        Args:
            transaction: Newest tagged ledger transaction

        Returns:
            The anchor, or None if no candidate account has a matching entry
        """
        candidates = self.directory.accounts_by_iban(
            [transaction.source_iban, transaction.destination_iban]
        )
        if not candidates:
            logger.warning(
                f"No bank account matches either side of transaction {transaction.id}"
            )
            return None

        if transaction.type == TransactionType.WITHDRAWAL.value:
            ledger_account = self.directory.ledger_account_by_id(transaction.source_id)
        else:
            ledger_account = self.directory.ledger_account_by_id(transaction.destination_id)
        if ledger_account is None:
            logger.warning(f"Ledger account of transaction {transaction.id} not found")
            return None

        day = transaction.date.astimezone(timezone.utc).date()
        for account in candidates:
            entries = self.statements.day(account.id, day)
            entry = self._match_entry(account, transaction, ledger_account, entries)
            if entry is not None:
                return Anchor(account=account, entry=entry, transaction=transaction)

        return None

    @staticmethod
    def _match_entry(
        account: BankAccount,
        transaction: LedgerTransaction,
        ledger_account: LedgerAccount,
        entries: list[StatementEntry],
    ) -> Optional[StatementEntry]:
        expected_balance = round(ledger_account.current_balance * 100)
        expected_amount = round(transaction.amount * 100)

        for entry in entries:
            if entry.balance != expected_balance:
                continue
            if transaction.type == TransactionType.WITHDRAWAL.value:
                if entry.amount == -expected_amount and account.iban == transaction.source_iban:
                    return entry
            elif transaction.type == TransactionType.DEPOSIT.value:
                if entry.amount == expected_amount and account.iban == transaction.destination_iban:
                    return entry
        return None

    # ==================== BACKFILL ====================

    def backfill(self, anchor: Anchor, result: RecoveryResult) -> RecoveryResult:
        """
        Replay every account's statements from the anchor time to now.

        Accounts and pages are processed strictly in sequence. Every entry is
        marked seen before mapping, so an entry is handled once per pass even
        if several accounts' walks return it.

        Args:
            anchor: Backfill start point
            result: Result object to update

        Returns:
            The updated result
        """
        state = ReconciliationState()
        state.mark(anchor.entry.id)
        self.recovered_ids = {anchor.entry.id}
        from_time = anchor.entry.timestamp

        for account in self.directory.bank_accounts():
            logger.debug(f"Backfilling account {account.id} from {anchor.entry.time.isoformat()}")

            for entry in self.statements.walk(account.id, from_time):
                if not state.mark(entry.id):
                    continue

                if self.writer.is_synced(entry.id):
                    result.already_synced += 1
                    self.recovered_ids.add(entry.id)
                    continue

                try:
                    payload = self.mapper.map(account.id, entry)
                except UnknownCurrencyError as e:
                    logger.error(
                        f"Skipping statement entry {entry.id} of account {account.id}: {e}",
                        extra={"account_id": account.id, "entry_id": entry.id},
                    )
                    result.failed += 1
                    continue

                if payload is None:
                    result.skipped += 1
                    self.skipped_unresolved += 1
                    continue

                self.writer.create(payload)
                self.recovered_ids.add(entry.id)
                result.recovered += 1

        result.status = RecoveryStatus.COMPLETED
        logger.info(f"Recovered {result.recovered} transactions")
        return result

    def recover(self) -> RecoveryResult:
        """
        Run one recovery pass: anchor search followed by backfill.

        Never raises; failures are logged and recorded in the result, and the
        engine always ends up live.

        Returns:
            Summary of the pass
        """
        with self._lock:
            started = datetime.now(timezone.utc)
            result = RecoveryResult(status=RecoveryStatus.FAILED, started_at=started)

            try:
                self.state = EngineState.ANCHOR_SEARCH
                self.directory.refresh_ledger_accounts()

                transaction = self.find_tagged_transaction()
                if transaction is None:
                    logger.info("No previously synced transaction found, nothing to recover")
                    result.status = RecoveryStatus.COLD_START
                else:
                    anchor = self.find_anchor(transaction)
                    if anchor is None:
                        logger.warning(
                            f"No statement entry matches transaction {transaction.id}, "
                            f"skipping recovery"
                        )
                        result.status = RecoveryStatus.NO_ANCHOR
                    else:
                        logger.info(
                            f"Anchored at statement entry {anchor.entry.id} of account "
                            f"{anchor.account.id} ({anchor.entry.time.isoformat()})"
                        )
                        result.anchor_entry_id = anchor.entry.id
                        result.anchor_account_id = anchor.account.id
                        result.start_time = anchor.entry.time

                        self.state = EngineState.BACKFILL
                        self.backfill(anchor, result)
            except Exception as e:
                self.state = EngineState.FAILED
                result.status = RecoveryStatus.FAILED
                result.error = str(e)
                logger.warning(f"Recovery failed: {e}", exc_info=True)

            result.processing_time_seconds = (
                datetime.now(timezone.utc) - started
            ).total_seconds()
            self.last_result = result
            self.state = EngineState.LIVE
            return result

    # ==================== LIVE ====================

    def handle_event(self, account_id: str, entry: StatementEntry) -> Optional[str]:
        """
        Map and write one live statement event.

        Args:
            account_id: Monobank account the entry belongs to
            entry: Statement entry from the webhook

        Returns:
            Id of the created transaction, or None when the entry was skipped

        Raises:
            UnknownCurrencyError: If the entry's currency cannot be mapped
            LedgerAPIError: If Firefly rejects the transaction
        """
        with self._lock:
            self.events_processed += 1

            if entry.id in self.recovered_ids:
                logger.info(f"Statement entry {entry.id} already written by this process, ignoring")
                return None

            if self.writer.is_synced(entry.id):
                logger.info(f"Statement entry {entry.id} already synced, ignoring")
                return None

            self.directory.refresh_ledger_accounts()
            payload = self.mapper.map(account_id, entry)
            if payload is None:
                self.skipped_unresolved += 1
                logger.info(
                    f"Account {account_id} has no ledger counterpart, "
                    f"skipping statement entry {entry.id}",
                    extra={"account_id": account_id, "entry_id": entry.id},
                )
                return None

            logger.info(
                f"Writing statement entry {entry.id} of account {account_id}",
                extra={"account_id": account_id, "entry_id": entry.id, "payload": payload},
            )
            transaction_id = self.writer.create(payload)
            self.recovered_ids.add(entry.id)
            return transaction_id
