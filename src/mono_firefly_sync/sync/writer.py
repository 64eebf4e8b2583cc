"""
Ledger writer: creates one Firefly transaction per statement entry.
"""

from typing import Any, Optional
import logging

from ..clients.firefly import FireflyClient
from .index import SyncIndex

logger = logging.getLogger(__name__)


class LedgerWriter:
    """
    Writes mapped payloads to Firefly.

    No retries here; a failed create is logged by the client with the full
    response body and the ``LedgerAPIError`` reaches the caller.
    """

    def __init__(self, client: FireflyClient, index: Optional[SyncIndex] = None):
        self.client = client
        self.index = index

    def is_synced(self, entry_id: str) -> bool:
        """Whether the index already holds this entry."""
        return self.index is not None and entry_id in self.index

    def create(self, payload: dict[str, Any]) -> Optional[str]:
        """
        Create the transaction and record it in the index.

        Args:
            payload: Payload built by the transaction mapper

        Returns:
            Id of the created transaction group, if reported
        """
        entry_id = payload.get("external_id")
        transaction_id = self.client.create_transaction(payload)
        logger.info(
            f"Created transaction {transaction_id} for statement entry {entry_id}",
            extra={"entry_id": entry_id, "transaction_id": transaction_id},
        )

        if self.index is not None and entry_id is not None:
            self.index.record(entry_id, transaction_id)
        return transaction_id
