"""
Account directory: resolves Monobank accounts to Firefly accounts by IBAN.
"""

from pathlib import Path
from typing import Any, Callable, Iterable, Optional
import json
import logging
import time

from ..clients.firefly import FireflyClient
from ..clients.monobank import MonobankClient, parse_accounts
from ..models.transaction import BankAccount, LedgerAccount
from ..utils.exceptions import AccountNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_INFO_TTL = 5 * 60


class ClientInfoCache:
    """
    Time-bounded cache for the Monobank client-info document.

    A failed refresh of a stale value falls back to the stale value; a failed
    first fetch propagates.
    """

    def __init__(
        self,
        fetch: Callable[[], dict[str, Any]],
        ttl: float = DEFAULT_CLIENT_INFO_TTL,
        cache_file: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            fetch: Callable returning a fresh client-info document
            ttl: Seconds a fetched value stays fresh
            cache_file: Optional JSON file the value is persisted to
            clock: Time source (unix seconds)
        """
        self._fetch = fetch
        self.ttl = ttl
        self.cache_file = cache_file
        self._clock = clock
        self.value: Optional[dict[str, Any]] = None
        self.fetched_at: Optional[float] = None

        if cache_file is not None:
            self._load_file(cache_file)

    def _load_file(self, path: Path) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                value = json.load(f)
            fetched_at = path.stat().st_mtime
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable client-info cache {path}: {e}")
            return

        if isinstance(value, dict):
            self.value = value
            self.fetched_at = fetched_at

    def _store_file(self, value: dict[str, Any]) -> None:
        if self.cache_file is None:
            return
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, "w", encoding="utf-8") as f:
                json.dump(value, f)
        except OSError as e:
            logger.warning(f"Could not write client-info cache {self.cache_file}: {e}")

    @property
    def is_fresh(self) -> bool:
        if self.value is None or self.fetched_at is None:
            return False
        return self._clock() - self.fetched_at < self.ttl

    def get(self, force: bool = False) -> dict[str, Any]:
        """
        Return the client-info document, refreshing it when stale.

        Args:
            force: Refresh even if the cached value is fresh

        Returns:
            Client-info document
        """
        if not force and self.is_fresh:
            return self.value

        try:
            value = self._fetch()
        except Exception as e:
            if self.value is None:
                raise
            logger.warning(f"Client-info refresh failed, reusing stale copy: {e}")
            return self.value

        self.value = value
        self.fetched_at = self._clock()
        self._store_file(value)
        return value


class AccountDirectory:
    """
    Read-through view over bank and ledger account listings.

    Bank accounts come from the client-info cache. Ledger accounts are read
    in full by ``refresh_ledger_accounts`` and held until the next refresh.
    """

    def __init__(
        self,
        bank: MonobankClient,
        ledger: FireflyClient,
        cache: Optional[ClientInfoCache] = None,
    ):
        self.bank = bank
        self.ledger = ledger
        self.cache = cache or ClientInfoCache(bank.get_client_info)
        self._ledger_accounts: Optional[list[LedgerAccount]] = None

    def bank_accounts(self) -> list[BankAccount]:
        return parse_accounts(self.cache.get())

    def refresh_ledger_accounts(self) -> list[LedgerAccount]:
        """Re-read every ledger account from Firefly."""
        self._ledger_accounts = list(self.ledger.iter_accounts())
        logger.debug(f"Loaded {len(self._ledger_accounts)} ledger accounts")
        return self._ledger_accounts

    def ledger_accounts(self) -> list[LedgerAccount]:
        if self._ledger_accounts is None:
            return self.refresh_ledger_accounts()
        return self._ledger_accounts

    def find_bank_account(self, account_id: str) -> Optional[BankAccount]:
        return next((a for a in self.bank_accounts() if a.id == account_id), None)

    def ledger_account_by_id(self, account_id: Optional[int]) -> Optional[LedgerAccount]:
        if account_id is None:
            return None
        return next((a for a in self.ledger_accounts() if a.id == account_id), None)

    def ledger_account_by_iban(self, iban: str) -> Optional[LedgerAccount]:
        return next((a for a in self.ledger_accounts() if a.iban == iban), None)

    def accounts_by_iban(self, ibans: Iterable[Optional[str]]) -> list[BankAccount]:
        """Bank accounts whose IBAN is one of ``ibans``."""
        wanted = {iban for iban in ibans if iban}
        return [a for a in self.bank_accounts() if a.iban in wanted]

    def resolve(self, bank_account_id: str) -> LedgerAccount:
        """
        Resolve a bank account id to the ledger account with the same IBAN.

        Args:
            bank_account_id: Monobank account id

        Returns:
            Matching ledger account

        Raises:
            AccountNotFoundError: If either side of the pairing is missing
        """
        bank_account = self.find_bank_account(bank_account_id)
        if bank_account is None:
            raise AccountNotFoundError(bank_account_id, "unknown bank account")

        ledger_account = self.ledger_account_by_iban(bank_account.iban)
        if ledger_account is None:
            raise AccountNotFoundError(
                bank_account_id, f"no ledger account with IBAN {bank_account.iban}"
            )
        return ledger_account

    def pairs(self) -> list[tuple[BankAccount, Optional[LedgerAccount]]]:
        """Every bank account with its ledger counterpart, if any."""
        return [(a, self.ledger_account_by_iban(a.iban)) for a in self.bank_accounts()]
