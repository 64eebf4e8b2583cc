"""
Statement entry to Firefly transaction mapping.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional
import logging

import pycountry

from ..models.transaction import LedgerAccount, StatementEntry, TransactionType
from ..utils.exceptions import AccountNotFoundError, UnknownCurrencyError
from .accounts import AccountDirectory

logger = logging.getLogger(__name__)

MINOR_UNITS = Decimal(100)
CENTS = Decimal("0.01")


def currency_alpha_code(
    numeric_code: int, overrides: Optional[Mapping[int, str]] = None
) -> str:
    """
    Translate an ISO 4217 numeric code to its alphabetic code.

    ``overrides`` entries win over the ISO 4217 table.

    Raises:
        UnknownCurrencyError: If the code is neither overridden nor assigned
    """
    code = int(numeric_code)
    if overrides and code in overrides:
        return overrides[code]

    currency = pycountry.currencies.get(numeric=f"{code:03d}")
    if currency is None:
        raise UnknownCurrencyError(numeric_code)
    return currency.alpha_3


def transaction_type(entry: StatementEntry) -> TransactionType:
    return TransactionType.DEPOSIT if entry.amount > 0 else TransactionType.WITHDRAWAL


def format_amount(minor_units: int) -> str:
    """Unsigned major-unit amount as a fixed-point string, e.g. -5000 -> "50.00"."""
    return str((Decimal(abs(minor_units)) / MINOR_UNITS).quantize(CENTS))


def build_payload(
    ledger_account_id: int,
    entry: StatementEntry,
    currency_code: str,
    tag: str,
    external_url: str,
) -> dict[str, Any]:
    """
    Build the Firefly split payload for a statement entry.

    The tracked account goes on the destination side of deposits and the
    source side of withdrawals; the counterparty is left for Firefly to
    derive from the description.

    Args:
        ledger_account_id: Firefly account paired with the entry's bank account
        entry: Statement entry to convert
        currency_code: Alphabetic ISO 4217 code
        tag: Provenance tag
        external_url: Provenance marker

    Returns:
        Payload for ``POST /v1/transactions``
    """
    kind = transaction_type(entry)
    payload: dict[str, Any] = {
        "type": kind.value,
        "date": entry.time.isoformat(),
        "currency_code": currency_code,
        "amount": format_amount(entry.amount),
        "description": entry.description,
    }
    if entry.comment is not None:
        payload["notes"] = entry.comment

    account_field = "destination_id" if kind is TransactionType.DEPOSIT else "source_id"
    payload[account_field] = ledger_account_id

    payload["external_id"] = entry.id
    payload["external_url"] = external_url
    payload["tags"] = [tag]
    return payload


class TransactionMapper:
    """Maps statement entries of tracked bank accounts to ledger payloads."""

    def __init__(
        self,
        directory: AccountDirectory,
        currencies: Mapping[int, str],
        tag: str,
        external_url: str,
    ):
        self.directory = directory
        self.currencies = currencies
        self.tag = tag
        self.external_url = external_url

    def resolve(self, bank_account_id: str) -> Optional[LedgerAccount]:
        try:
            return self.directory.resolve(bank_account_id)
        except AccountNotFoundError as e:
            logger.debug(str(e), extra={"account_id": bank_account_id})
            return None

    def map(self, bank_account_id: str, entry: StatementEntry) -> Optional[dict[str, Any]]:
        """
        Map an entry to a payload.

        Returns:
            The payload, or None when the bank account has no ledger
            counterpart and the entry must be skipped

        Raises:
            UnknownCurrencyError: If the entry's currency cannot be mapped
        """
        ledger_account = self.resolve(bank_account_id)
        if ledger_account is None:
            return None

        return build_payload(
            ledger_account.id,
            entry,
            currency_alpha_code(entry.currency_code, self.currencies),
            self.tag,
            self.external_url,
        )
