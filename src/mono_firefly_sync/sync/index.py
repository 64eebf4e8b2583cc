"""
Persisted index of statement entries already written to the ledger.
"""

from pathlib import Path
from typing import Optional
import json
import logging
import os

logger = logging.getLogger(__name__)


class SyncIndex:
    """
    Maps Monobank statement entry ids to Firefly transaction group ids.

    Stored as a single JSON object, rewritten atomically after each record.
    """

    def __init__(self, path: Path):
        self.path = path
        self._entries: dict[str, Optional[str]] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Sync index {self.path} is not a JSON object")
        self._entries = {str(k): v for k, v in data.items()}
        logger.info(f"Loaded {len(self._entries)} synced entries from {self.path}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._entries, f)
        os.replace(tmp_path, self.path)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[str]:
        return self._entries.get(entry_id)

    def record(self, entry_id: str, transaction_id: Optional[str]) -> None:
        self._entries[entry_id] = transaction_id
        self._save()
