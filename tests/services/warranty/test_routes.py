"""
Tests for the Warranty Service HTTP API.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from shared.blockchain import LedgerErrorKind, MockLedgerClient
from services.warranty.exceptions import StoreError
from services.warranty.store import InMemoryWarrantyStore


BASE = "/api/v1/warranty"


class TestWarrantyRoutes:
    """Tests for /api/v1/warranty."""

    @pytest.mark.asyncio
    async def test_issue(self, warranty_client: AsyncClient, issuance_payload: dict[str, Any]) -> None:
        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["warning"] is None
        assert body["data"]["tokenId"] == 1
        assert body["data"]["transactionHash"].startswith("0x")
        assert body["data"]["product"]["serialNumber"] == "SN-1"

    @pytest.mark.asyncio
    async def test_issue_missing_fields(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.post(f"{BASE}/issue", json={"productName": "Laptop"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "missing_fields"

    @pytest.mark.asyncio
    async def test_issue_malformed_period(
        self,
        warranty_client: AsyncClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        issuance_payload["warrantyPeriodDays"] = "a year"

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_issue_duplicate(
        self,
        warranty_client: AsyncClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 409
        assert response.json()["error_code"] == "duplicate_serial"

    @pytest.mark.asyncio
    async def test_issue_ledger_down(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
        store: InMemoryWarrantyStore,
        issuance_payload: dict[str, Any],
    ) -> None:
        ledger.fail_next_submission(LedgerErrorKind.TIMEOUT, "request timed out")

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 503
        assert await store.find_by_serial("SN-1") is None

    @pytest.mark.asyncio
    async def test_issue_ledger_rejects(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        ledger.fail_next_submission(LedgerErrorKind.REVERT, "execution reverted")

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 502
        assert response.json()["error_code"] == "ledger_rejected"

    @pytest.mark.asyncio
    async def test_issue_persistence_failure(
        self,
        warranty_client: AsyncClient,
        store: InMemoryWarrantyStore,
        issuance_payload: dict[str, Any],
    ) -> None:
        store.insert = AsyncMock(side_effect=StoreError("connection reset"))

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "persistence_failed"
        assert body["details"]["tx_hash"].startswith("0x")

    @pytest.mark.asyncio
    async def test_get_warranty(
        self,
        warranty_client: AsyncClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        by_serial = await warranty_client.get(f"{BASE}/SN-1")
        by_token = await warranty_client.get(f"{BASE}/1")

        assert by_serial.status_code == 200
        data = by_serial.json()["data"]
        assert data["hasLedgerData"] is True
        assert data["ledger"]["serialNumber"] == "SN-1"
        assert data["product"]["tokenId"] == 1
        assert by_token.json()["data"]["product"]["serialNumber"] == "SN-1"

    @pytest.mark.asyncio
    async def test_get_warranty_not_found(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.get(f"{BASE}/SN-404")

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"

    @pytest.mark.asyncio
    async def test_validate(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        """Test validity comes from the ledger while it is reachable."""
        await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        response = await warranty_client.get(f"{BASE}/SN-1/validate")
        data = response.json()["data"]
        assert data["isValid"] is True
        assert data["validationSource"] == "ledger"
        assert data["tokenId"] == 1

        ledger.set_available(False)
        response = await warranty_client.get(f"{BASE}/SN-1/validate")
        data = response.json()["data"]
        assert data["isValid"] is True
        assert data["validationSource"] == "local"

    @pytest.mark.asyncio
    async def test_serial_token(
        self,
        warranty_client: AsyncClient,
        store: InMemoryWarrantyStore,
        issuance_payload: dict[str, Any],
    ) -> None:
        await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        response = await warranty_client.get(f"{BASE}/serial/SN-1/token")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tokenId"] == 1
        assert data["source"] == "local"

    @pytest.mark.asyncio
    async def test_serial_token_ledger_down(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
    ) -> None:
        ledger.set_available(False)

        response = await warranty_client.get(f"{BASE}/serial/SN-404/token")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_user_warranties(
        self,
        warranty_client: AsyncClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        await warranty_client.post(f"{BASE}/issue", json=issuance_payload)
        address = issuance_payload["customerAddress"]

        response = await warranty_client.get(f"{BASE}/user/{address.upper().replace('0X', '0x')}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["warranties"][0]["serialNumber"] == "SN-1"

    @pytest.mark.asyncio
    async def test_user_warranties_bad_address(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.get(f"{BASE}/user/0x123")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_warranty_health(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.get(f"{BASE}/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["ledger"]["deployed"] is True
        assert data["store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Digital Warranty Service"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, warranty_client: AsyncClient) -> None:
        response = await warranty_client.get("/", headers={"x-request-id": "req-42"})

        assert response.headers["x-request-id"] == "req-42"

    @pytest.mark.asyncio
    async def test_service_health_uses_configured_clients(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
    ) -> None:
        """Test the service health check reports the installed ledger and store."""
        ledger.set_available(False)

        response = await warranty_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["components"]["store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_issue_reserved_serial(
        self,
        warranty_client: AsyncClient,
        ledger: MockLedgerClient,
        issuance_payload: dict[str, Any],
    ) -> None:
        """Test a serial that would be shadowed by the health route is refused."""
        issuance_payload["serialNumber"] = "health"

        response = await warranty_client.post(f"{BASE}/issue", json=issuance_payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "reserved_serial"
        assert ledger.get_stats()["warranties"] == 0
