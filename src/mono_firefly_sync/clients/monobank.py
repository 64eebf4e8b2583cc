"""
Monobank personal API client.
Every call retries transient failures forever with a constant delay.
"""

from typing import Any, Callable, Optional
import logging
import time

import httpx

from ..config import MonobankConfig
from ..models.transaction import BankAccount, StatementEntry
from ..utils.exceptions import BankAPIError, ValidationError

logger = logging.getLogger(__name__)

# Status codes worth waiting out: rate limiting and server-side failures
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class MonobankClient:
    """
    Thin client for the Monobank personal API.

    The statement endpoint is rate limited to one call per minute per token,
    so the default retry delay is a full minute.
    """

    def __init__(
        self,
        config: MonobankConfig,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Monobank section of the application configuration
            http_client: Pre-built httpx client (tests pass one with a mock transport)
            sleep: Function used to wait between retries
        """
        self.config = config
        self.page_size = config.statement_page_size
        self.retry_delay = config.retry_delay
        self._sleep = sleep
        self._http = http_client or httpx.Client(
            base_url=config.api_url,
            headers={
                "Accept": "application/json",
                "X-Token": config.token,
            },
        )

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._http.request(method, path, **kwargs)
            except httpx.TransportError as e:
                logger.warning(
                    f"Monobank {method} {path} failed ({e!r}), "
                    f"retrying in {self.retry_delay}s (attempt {attempt})"
                )
                self._sleep(self.retry_delay)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES:
                logger.warning(
                    f"Monobank {method} {path} returned {response.status_code}, "
                    f"retrying in {self.retry_delay}s (attempt {attempt})"
                )
                self._sleep(self.retry_delay)
                continue

            if response.is_error:
                logger.error(
                    f"Monobank {method} {path} returned {response.status_code}: {response.text}",
                    extra={"status_code": response.status_code, "body": response.text},
                )
                raise BankAPIError(
                    f"Monobank {method} {path} failed with {response.status_code}",
                    status_code=response.status_code,
                    body=response.text,
                )

            return response

    def get_client_info(self) -> dict[str, Any]:
        """
        Fetch the raw client-info document (accounts, IBANs, webhook URL).

        Returns:
            Parsed JSON body
        """
        response = self._request("GET", "/personal/client-info")
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("accounts"), list):
            raise ValidationError("client-info: 'accounts' list missing")
        return data

    def get_accounts(self) -> list[BankAccount]:
        """Fetch all bank accounts of the client."""
        return parse_accounts(self.get_client_info())

    def get_statements(
        self, account_id: str, from_time: int, to_time: Optional[int] = None
    ) -> list[StatementEntry]:
        """
        Fetch a single statement page.

        Args:
            account_id: Monobank account id
            from_time: Range start, unix seconds, inclusive
            to_time: Range end, unix seconds, inclusive (now when omitted)

        Returns:
            Entries newest-first, at most ``page_size`` of them
        """
        path = f"/personal/statement/{account_id}/{from_time}"
        if to_time is not None:
            path += f"/{to_time}"

        response = self._request("GET", path)
        data = response.json()
        if not isinstance(data, list):
            raise ValidationError(f"statement for {account_id}: expected a list")

        return [StatementEntry.from_api(item) for item in data]

    def set_webhook(self, url: str) -> None:
        """Register the push endpoint for statement events."""
        self._request("POST", "/personal/webhook", json={"webHookUrl": url})
        logger.info(f"Webhook registered: {url}")


def parse_accounts(client_info: dict[str, Any]) -> list[BankAccount]:
    """Extract bank accounts from a client-info document."""
    return [BankAccount.from_api(item) for item in client_info.get("accounts", [])]
