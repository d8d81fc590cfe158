"""
Test Configuration
==================

Pytest fixtures for Digital Warranty tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["BLOCKCHAIN_MODE"] = "mock"
os.environ["WARRANTY_STORE_BACKEND"] = "memory"

from shared.blockchain import MockLedgerClient, reset_ledger_client, set_ledger_client  # noqa: E402
from services.warranty.dependencies import reset_store, set_store  # noqa: E402
from services.warranty.store import InMemoryWarrantyStore  # noqa: E402


CUSTOMER = "0x" + "ab" * 20
MANUFACTURER = "0x" + "cd" * 20


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def ledger() -> MockLedgerClient:
    """Fresh mock ledger for each test."""
    client = MockLedgerClient()
    client.clear_all()
    return client


@pytest.fixture
def store() -> InMemoryWarrantyStore:
    """Fresh in-memory store for each test."""
    return InMemoryWarrantyStore()


@pytest_asyncio.fixture
async def warranty_client(
    ledger: MockLedgerClient,
    store: InMemoryWarrantyStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client for the Warranty Service, wired to the fixtures above."""
    from services.warranty.main import app

    set_ledger_client(ledger)
    set_store(store)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    reset_ledger_client()
    reset_store()


@pytest.fixture
def issuance_payload() -> dict[str, Any]:
    """Sample issuance request body (camelCase, as sent by clients)."""
    return {
        "serialNumber": "SN-1",
        "productName": "Laptop Pro",
        "productModel": "LP-2024",
        "manufacturer": "Acme",
        "retailer": "Shop",
        "customerAddress": CUSTOMER,
        "warrantyPeriodDays": 365,
    }
