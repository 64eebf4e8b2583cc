"""
Firefly III API client.
Follows JSON:API ``links.next`` pagination lazily; no automatic retries.
"""

from typing import Any, Iterator, Optional
import logging

import httpx

from ..config import FireflyConfig
from ..models.transaction import LedgerAccount, LedgerTransaction
from ..utils.exceptions import LedgerAPIError, ValidationError

logger = logging.getLogger(__name__)


class FireflyClient:
    """Client for the accounts and transactions endpoints of Firefly III."""

    def __init__(self, config: FireflyConfig, http_client: Optional[httpx.Client] = None):
        """
        Initialize the client.

        Args:
            config: Firefly section of the application configuration
            http_client: Pre-built httpx client (tests pass one with a mock transport)
        """
        self.config = config
        base_url = config.api_url.rstrip("/") + "/"
        self._http = http_client or httpx.Client(
            base_url=base_url,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {config.token}",
            },
        )

    def close(self) -> None:
        self._http.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise LedgerAPIError(f"Firefly {method} {url} failed: {e!r}") from e

        if response.is_error:
            logger.error(
                f"Firefly {method} {url} returned {response.status_code}: {response.text}",
                extra={"status_code": response.status_code, "body": response.text},
            )
            raise LedgerAPIError(
                f"Firefly {method} {url} failed with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def paginate(self, path: str) -> Iterator[dict[str, Any]]:
        """
        Iterate over the ``data`` items of every page of a list endpoint.

        Pages are fetched on demand; the sequence ends at the first page
        without a ``links.next`` reference.

        Args:
            path: Endpoint path relative to the API root (e.g. "v1/accounts")

        Yields:
            Raw JSON:API resource objects
        """
        url: Optional[str] = path
        pages = 0
        while url:
            body = self._send("GET", url).json()
            pages += 1
            if not isinstance(body, dict) or not isinstance(body.get("data"), list):
                raise ValidationError(f"{path}: page {pages} has no 'data' list")

            yield from body["data"]

            links = body.get("links")
            url = links.get("next") if isinstance(links, dict) else None
            if not isinstance(url, str) or not url:
                url = None

        logger.debug(f"{path}: read {pages} pages")

    def iter_accounts(self) -> Iterator[LedgerAccount]:
        """All ledger accounts, lazily."""
        for item in self.paginate("v1/accounts"):
            yield LedgerAccount.from_api(item)

    def iter_transactions(self) -> Iterator[LedgerTransaction]:
        """All transaction groups, lazily, in server order (newest first in practice)."""
        for item in self.paginate("v1/transactions"):
            yield LedgerTransaction.from_api(item)

    def create_transaction(self, payload: dict[str, Any]) -> Optional[str]:
        """
        Store a single-split transaction group.

        Duplicate-hash detection is switched off on the server side; this
        service tracks provenance through the tag and external id instead.

        Args:
            payload: Split payload produced by the transaction mapper

        Returns:
            Id of the created group, when the server reports one
        """
        response = self._send(
            "POST",
            "v1/transactions",
            json={
                "group_title": None,
                "error_if_duplicate_hash": False,
                "transactions": [payload],
            },
        )
        try:
            body = response.json()
        except ValueError:
            return None
        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        return None
