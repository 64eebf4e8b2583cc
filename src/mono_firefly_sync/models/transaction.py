"""Data models for bank accounts, statement entries and ledger records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ..utils.exceptions import ValidationError


class TransactionType(Enum):
    """Ledger transaction type from the tracked account's perspective."""

    DEPOSIT = "deposit"  # Money in
    WITHDRAWAL = "withdrawal"  # Money out


class RecoveryStatus(Enum):
    """Outcome of a recovery pass."""

    COLD_START = "cold_start"  # No tagged transaction in the ledger yet
    NO_ANCHOR = "no_anchor"  # Tagged transaction found, no statement entry matched it
    COMPLETED = "completed"
    FAILED = "failed"


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise ValidationError(f"{kind}: missing field '{key}'")
    return data[key]


def _to_decimal(value: Any, kind: str, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{kind}: field '{key}' is not a number: {value!r}") from e


def _to_int(value: Any, kind: str, key: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{kind}: field '{key}' is not an integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{kind}: field '{key}' is not an integer: {value!r}") from e


def _to_datetime(value: Any, kind: str, key: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError(f"{kind}: field '{key}' is not a timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"{kind}: field '{key}' is not a timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class BankAccount:
    """Monobank account snapshot from /personal/client-info."""

    id: str
    currency_code: int
    iban: str
    # Minor units (kopiyky, cents)
    balance: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "BankAccount":
        kind = "bank account"
        return cls(
            id=str(_require(data, "id", kind)),
            currency_code=_to_int(_require(data, "currencyCode", kind), kind, "currencyCode"),
            iban=str(_require(data, "iban", kind)),
            balance=_to_int(_require(data, "balance", kind), kind, "balance"),
        )


@dataclass(frozen=True)
class LedgerAccount:
    """Firefly III account snapshot."""

    id: int
    iban: Optional[str]
    # Major units
    current_balance: Decimal
    name: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LedgerAccount":
        """Build from a JSON:API ``accounts`` resource."""
        kind = "ledger account"
        if _require(data, "type", kind) != "accounts":
            raise ValidationError(f"{kind}: unexpected resource type {data['type']!r}")
        attributes = _require(data, "attributes", kind)
        balance = _require(attributes, "current_balance", kind)
        return cls(
            id=_to_int(_require(data, "id", kind), kind, "id"),
            iban=attributes.get("iban") or None,
            # Firefly reports null for accounts without a balance
            current_balance=(
                Decimal(0)
                if balance is None
                else _to_decimal(balance, kind, "current_balance")
            ),
            name=attributes.get("name") or "",
        )


@dataclass(frozen=True)
class StatementEntry:
    """
    One Monobank statement item.

    Amounts are signed minor units; ``balance`` is the account balance right
    after this entry was applied.
    """

    id: str
    time: datetime
    description: str
    amount: int
    balance: int
    currency_code: int
    comment: Optional[str] = None

    @property
    def timestamp(self) -> int:
        """Unix seconds, as the statement API expects in its path."""
        return int(self.time.timestamp())

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "StatementEntry":
        kind = "statement item"
        comment = data.get("comment") if isinstance(data, dict) else None
        return cls(
            id=str(_require(data, "id", kind)),
            time=datetime.fromtimestamp(
                _to_int(_require(data, "time", kind), kind, "time"), tz=timezone.utc
            ),
            description=str(_require(data, "description", kind)),
            amount=_to_int(_require(data, "amount", kind), kind, "amount"),
            balance=_to_int(_require(data, "balance", kind), kind, "balance"),
            currency_code=_to_int(_require(data, "currencyCode", kind), kind, "currencyCode"),
            comment=str(comment) if comment is not None else None,
        )


@dataclass(frozen=True)
class LedgerTransaction:
    """
    Firefly III transaction group reduced to its first split.

    Only the first journal of a group is ever written by this service, so it
    is the only one considered when looking for our own transactions.
    """

    id: int
    created_at: datetime
    date: datetime
    type: str
    # Unsigned, major units
    amount: Decimal
    description: str = ""
    tags: tuple[str, ...] = ()
    source_id: Optional[int] = None
    source_iban: Optional[str] = None
    destination_id: Optional[int] = None
    destination_iban: Optional[str] = None
    external_id: Optional[str] = None
    external_url: Optional[str] = None

    def is_tagged(self, tag: str, marker: str) -> bool:
        """Whether this transaction carries the provenance tag or marker."""
        return tag in self.tags or self.external_url == marker

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LedgerTransaction":
        """Build from a JSON:API ``transactions`` resource."""
        kind = "ledger transaction"
        if _require(data, "type", kind) != "transactions":
            raise ValidationError(f"{kind}: unexpected resource type {data['type']!r}")
        attributes = _require(data, "attributes", kind)
        journals = _require(attributes, "transactions", kind)
        if not isinstance(journals, list) or not journals:
            raise ValidationError(f"{kind}: group {data.get('id')} has no splits")
        journal = journals[0]

        def optional_int(key: str) -> Optional[int]:
            value = journal.get(key)
            return None if value is None else _to_int(value, kind, key)

        return cls(
            id=_to_int(_require(data, "id", kind), kind, "id"),
            created_at=_to_datetime(_require(attributes, "created_at", kind), kind, "created_at"),
            date=_to_datetime(_require(journal, "date", kind), kind, "date"),
            type=str(_require(journal, "type", kind)),
            amount=_to_decimal(_require(journal, "amount", kind), kind, "amount"),
            description=journal.get("description") or "",
            tags=tuple(journal.get("tags") or ()),
            source_id=optional_int("source_id"),
            source_iban=journal.get("source_iban") or None,
            destination_id=optional_int("destination_id"),
            destination_iban=journal.get("destination_iban") or None,
            external_id=journal.get("external_id"),
            external_url=journal.get("external_url"),
        )


@dataclass
class ReconciliationState:
    """Statement entry ids already handled during one recovery pass."""

    seen_ids: set[str] = field(default_factory=set)

    def mark(self, entry_id: str) -> bool:
        """
        Record an entry id.

        Returns:
            True if the id was new, False if it had already been seen
        """
        if entry_id in self.seen_ids:
            return False
        self.seen_ids.add(entry_id)
        return True

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self.seen_ids

    def __len__(self) -> int:
        return len(self.seen_ids)


@dataclass
class RecoveryResult:
    """Summary of one recovery pass."""

    status: RecoveryStatus
    anchor_entry_id: Optional[str] = None
    anchor_account_id: Optional[str] = None
    start_time: Optional[datetime] = None
    recovered: int = 0
    skipped: int = 0
    failed: int = 0
    already_synced: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time_seconds: float = 0.0

    @property
    def seen(self) -> int:
        """Entries examined after the anchor."""
        return self.recovered + self.skipped + self.failed + self.already_synced
