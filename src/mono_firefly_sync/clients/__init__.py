"""HTTP clients for the bank feed and the ledger service."""

from .firefly import FireflyClient
from .monobank import MonobankClient

__all__ = ["FireflyClient", "MonobankClient"]
