"""
Webhook receiver for Monobank statement events.

Monobank validates the webhook URL with a GET that must answer 200, then
POSTs one event per statement item. Any non-2xx answer makes Monobank
redeliver the event later.
"""

from typing import Literal, Optional
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict

from .models.transaction import StatementEntry
from .sync.engine import ReconciliationEngine
from .utils.exceptions import SyncError

logger = logging.getLogger(__name__)


# ==================== REQUEST MODELS ====================

class StatementItemPayload(BaseModel):
    """Statement item as delivered by the webhook."""

    model_config = ConfigDict(extra="allow")

    id: str
    time: int
    description: str
    amount: int
    balance: int
    comment: Optional[str] = None
    currencyCode: int


class StatementEventData(BaseModel):
    account: str
    statementItem: StatementItemPayload


class StatementEvent(BaseModel):
    """Webhook body; any other event type is rejected."""

    type: Literal["StatementItem"]
    data: StatementEventData

    def to_entry(self) -> StatementEntry:
        return StatementEntry.from_api(self.data.statementItem.model_dump())


# ==================== APPLICATION ====================

def create_app(engine: ReconciliationEngine) -> FastAPI:
    """
    Build the webhook application around an engine.

    Args:
        engine: Engine that handles live events

    Returns:
        FastAPI application
    """
    app = FastAPI(title="mono-firefly-sync", docs_url=None, redoc_url=None)
    app.state.engine = engine

    @app.exception_handler(RequestValidationError)
    async def reject_malformed_event(request: Request, exc: RequestValidationError):
        logger.error(
            f"Rejected malformed webhook call to {request.url.path}: {exc.errors()}",
            extra={"errors": exc.errors()},
        )
        return JSONResponse(status_code=422, content={"detail": "Unknown request"})

    @app.get("/{path:path}", response_class=PlainTextResponse)
    def verify(path: str) -> str:
        return ""

    @app.post("/{path:path}")
    def receive(path: str, event: StatementEvent) -> dict:
        account_id = event.data.account
        entry = event.to_entry()
        logger.info(
            f"Statement event {entry.id} for account {account_id}",
            extra={"account_id": account_id, "entry_id": entry.id},
        )

        try:
            transaction_id = engine.handle_event(account_id, entry)
        except SyncError as e:
            logger.error(
                f"Failed to sync statement entry {entry.id} of account {account_id}: {e}",
                extra={"account_id": account_id, "entry_id": entry.id},
            )
            raise HTTPException(status_code=500, detail="Internal Server Error") from e

        return {"transaction_id": transaction_id}

    return app
