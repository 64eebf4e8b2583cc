"""
Statement source with backward paging over Monobank statement ranges.
"""

from datetime import date, datetime, time, timezone
from typing import Iterator, Optional
import logging

from ..clients.monobank import MonobankClient
from ..models.transaction import StatementEntry

logger = logging.getLogger(__name__)


class StatementSource:
    """
    Statement access on top of the single-page Monobank endpoint.

    A page is capped at ``page_size`` entries, newest first. A full page means
    the range may hold more, so the range end is moved back to the oldest
    timestamp seen and the call reissued until a short page comes back.
    """

    def __init__(self, client: MonobankClient, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size or client.page_size

    def fetch(
        self, account_id: str, from_time: int, to_time: Optional[int] = None
    ) -> list[StatementEntry]:
        """Fetch one page only. May be truncated if the range is large."""
        return self.client.get_statements(account_id, from_time, to_time)

    def walk(
        self, account_id: str, from_time: int, to_time: Optional[int] = None
    ) -> Iterator[StatementEntry]:
        """
        Iterate over every entry of an account within a time range.

        Entries come newest first. The range end is inclusive on each call, so
        the oldest entry of a full page reappears on the next page; it is
        yielded once.

        Args:
            account_id: Monobank account id
            from_time: Range start, unix seconds, inclusive
            to_time: Range end, unix seconds, inclusive (now when omitted)

        Yields:
            Statement entries
        """
        seen: set[str] = set()
        pages = 0

        while True:
            page = self.fetch(account_id, from_time, to_time)
            pages += 1

            for entry in page:
                if entry.id in seen:
                    continue
                seen.add(entry.id)
                yield entry

            if len(page) < self.page_size:
                break

            oldest = min(entry.timestamp for entry in page)
            if to_time is not None and oldest >= to_time:
                # A whole page shares one timestamp; step past it
                logger.warning(
                    f"Statement page for {account_id} did not move back past {to_time}, "
                    f"skipping to {to_time - 1}"
                )
                oldest = to_time - 1
            if oldest < from_time:
                break
            to_time = oldest

        logger.debug(f"Statement walk for {account_id}: {len(seen)} entries in {pages} pages")

    def day(self, account_id: str, day: date) -> list[StatementEntry]:
        """All entries of one UTC calendar day."""
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(day, time(23, 59, 59), tzinfo=timezone.utc)
        return list(self.walk(account_id, int(start.timestamp()), int(end.timestamp())))
