"""
Unit tests for the webhook receiver.

Run with: pytest tests/test_server.py -v
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from mono_firefly_sync.models.transaction import StatementEntry
from mono_firefly_sync.server import create_app
from mono_firefly_sync.utils.exceptions import LedgerAPIError

EVENT = {
    "type": "StatementItem",
    "data": {
        "account": "acc-x",
        "statementItem": {
            "id": "ZuHWzqkKGVo=",
            "time": 1709287200,
            "description": "Coffee",
            "mcc": 5814,
            "originalMcc": 5814,
            "amount": -5000,
            "operationAmount": -5000,
            "currencyCode": 980,
            "commissionRate": 0,
            "cashbackAmount": 0,
            "balance": 95000,
            "hold": True,
        },
    },
}


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.handle_event.return_value = "101"
    return engine


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


class TestWebhook:
    def test_get_answers_empty_ok(self, client):
        response = client.get("/any/path")

        assert response.status_code == 200
        assert response.text == ""

    def test_statement_event_reaches_engine(self, client, engine):
        response = client.post("/hook", json=EVENT)

        assert response.status_code == 200
        assert response.json() == {"transaction_id": "101"}
        account_id, entry = engine.handle_event.call_args.args
        assert account_id == "acc-x"
        assert isinstance(entry, StatementEntry)
        assert entry.id == "ZuHWzqkKGVo="
        assert entry.amount == -5000
        assert entry.comment is None

    def test_other_event_type_is_rejected(self, client, engine):
        response = client.post("/", json={**EVENT, "type": "AccountUpdate"})

        assert response.status_code == 422
        engine.handle_event.assert_not_called()

    def test_missing_fields_are_rejected(self, client, engine):
        response = client.post("/", json={"type": "StatementItem", "data": {"account": "a"}})

        assert response.status_code == 422
        engine.handle_event.assert_not_called()

    def test_engine_failure_answers_server_error(self, client, engine):
        engine.handle_event.side_effect = LedgerAPIError("rejected", 422, "{}")

        response = client.post("/", json=EVENT)

        assert response.status_code == 500
