"""Shared fixtures for storehook tests."""

import json
import os

# Settings are cached on first use, so the environment is set before imports
os.environ.setdefault("DB_DSN", "sqlite+aiosqlite://")
os.environ.setdefault("APP_LOG_FORMAT", "text")
os.environ.setdefault("PLATFORM_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("PLATFORM_ACCESS_TOKEN", "")

import pytest  # noqa: E402

from storehook.database.connection import DatabaseManager, create_tables  # noqa: E402
from storehook.events import EventClassifier  # noqa: E402
from storehook.reconciliation.store import ReconciliationStore  # noqa: E402
from storehook.validation.signature import SignatureVerifier  # noqa: E402

WEBHOOK_SECRET = "test-webhook-secret"


def make_body(payload) -> bytes:
    """Serialize a payload the way the platform sends it."""
    return json.dumps(payload).encode("utf-8")


def customer_created(customer_id=789, **fields) -> dict:
    data = {"id": customer_id}
    data.update(fields)
    return {"event": "customer.created", "merchant": 1234, "data": data}


def order_created(order_id=123456, customer=None, amount=None, currency="SAR", **fields) -> dict:
    data = {"id": order_id, "customer": customer if customer is not None else {"id": 789}}
    if amount is not None:
        data["amounts"] = {"total": {"amount": amount, "currency": currency}}
    data.update(fields)
    return {"event": "order.created", "merchant": 1234, "data": data}


@pytest.fixture
def verifier():
    return SignatureVerifier()


@pytest.fixture
def classifier():
    return EventClassifier(default_currency="SAR")


@pytest.fixture
async def db_manager(tmp_path):
    """Fresh SQLite database file per test; one connection per session."""
    manager = DatabaseManager(url=f"sqlite+aiosqlite:///{tmp_path / 'storehook.db'}")
    await create_tables(manager)
    yield manager
    await manager.close()


@pytest.fixture
def store(db_manager):
    return ReconciliationStore(db_manager, default_currency="SAR")
