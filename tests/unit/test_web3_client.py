"""
Unit tests for the web3 ledger client (no node required).
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, TimeExhausted

from shared.blockchain import (
    WARRANTY_ISSUED,
    IssuanceParams,
    LedgerErrorKind,
    LedgerRejectedError,
    LedgerUnavailableError,
)
from shared.blockchain.web3_client import Web3LedgerClient, classify_error
from services.warranty.models import ValidationSource, WarrantyRecord
from services.warranty.services import IdentifierResolver, ValidityService
from services.warranty.store import InMemoryWarrantyStore


RPC_URL = "http://localhost:8545"
CONTRACT = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
CUSTOMER = "0x" + "ab" * 20


def rate_limited() -> aiohttp.ClientResponseError:
    return aiohttp.ClientResponseError(
        request_info=MagicMock(),
        history=(),
        status=429,
        message="Too Many Requests",
    )


@pytest.fixture
def client() -> Web3LedgerClient:
    return Web3LedgerClient(rpc_url=RPC_URL, contract_address=CONTRACT, timeout=1.0)


class TestClassifyError:
    """Tests for submission failure classification."""

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (TimeExhausted("receipt not found"), LedgerErrorKind.TIMEOUT),
            (asyncio.TimeoutError(), LedgerErrorKind.TIMEOUT),
            (ContractLogicError("execution reverted: Serial exists"), LedgerErrorKind.REVERT),
            (ConnectionRefusedError("connect ECONNREFUSED"), LedgerErrorKind.NETWORK),
            (aiohttp.ClientConnectionError("Cannot connect to host"), LedgerErrorKind.NETWORK),
            (rate_limited(), LedgerErrorKind.NETWORK),
            (ValueError("insufficient funds for gas * price + value"), LedgerErrorKind.GAS),
            (ValueError("nonce too low"), LedgerErrorKind.VALIDATION),
            (ValueError("something odd"), LedgerErrorKind.UNKNOWN),
        ],
    )
    def test_classification(self, error: BaseException, kind: LedgerErrorKind) -> None:
        assert classify_error(error) == kind

    def test_availability_kinds(self) -> None:
        """Test which kinds leave the ledger state unknown."""
        assert LedgerErrorKind.NETWORK.is_availability
        assert LedgerErrorKind.TIMEOUT.is_availability
        assert not LedgerErrorKind.REVERT.is_availability
        assert not LedgerErrorKind.GAS.is_availability


class TestWeb3LedgerClient:
    """Tests for Web3LedgerClient with the RPC layer mocked."""

    def test_requires_endpoint(self) -> None:
        """Test that testnet mode needs an RPC URL and contract address."""
        with pytest.raises(ValueError):
            Web3LedgerClient(rpc_url="", contract_address="")

    @pytest.mark.asyncio
    async def test_submit_without_signer(self, client: Web3LedgerClient) -> None:
        """Test that a missing signer is a validation failure, not an exception."""
        outcome = await client.submit_issuance(
            IssuanceParams(
                customer_address=CUSTOMER,
                product_name="Laptop Pro",
                product_model="LP-2024",
                serial_number="SN-1",
                warranty_period_days=365,
                manufacturer_address=CUSTOMER,
                retailer_address=CUSTOMER,
                metadata_uri="data:application/json;base64,e30=",
            )
        )

        assert not outcome.success
        assert outcome.error_kind == LedgerErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_query_events_sorted(self, client: Web3LedgerClient) -> None:
        """Test that replayed logs come back in emission order."""
        topic = HexBytes(client.event_topic(WARRANTY_ISSUED))

        def log(block: int, index: int) -> dict:
            return {
                "topics": [topic],
                "data": HexBytes("0x"),
                "logIndex": index,
                "blockNumber": block,
                "transactionHash": HexBytes("0x" + f"{block:02x}" * 32),
                "address": CONTRACT,
            }

        w3 = MagicMock()
        w3.eth.get_logs = AsyncMock(return_value=[log(12, 0), log(11, 3), log(11, 1)])
        client._w3 = w3

        records = await client.query_events(WARRANTY_ISSUED, 11, 12)

        assert [(r.block_number, r.log_index) for r in records] == [(11, 1), (11, 3), (12, 0)]
        assert records[0].signature_topic == client.event_topic(WARRANTY_ISSUED)
        query = w3.eth.get_logs.await_args.args[0]
        assert query["fromBlock"] == 11
        assert query["toBlock"] == 12

    @pytest.mark.asyncio
    async def test_call_revert(self, client: Web3LedgerClient) -> None:
        """Test that a reverted view call is a rejection."""
        contract = MagicMock()
        contract.functions.isWarrantyValid.return_value.call = AsyncMock(
            side_effect=ContractLogicError("execution reverted: Warranty does not exist")
        )
        client._contract = contract

        with pytest.raises(LedgerRejectedError):
            await client.is_warranty_valid(99)

    @pytest.mark.asyncio
    async def test_call_result(self, client: Web3LedgerClient) -> None:
        """Test a successful view call."""
        contract = MagicMock()
        contract.functions.isWarrantyValid.return_value.call = AsyncMock(return_value=True)
        client._contract = contract

        assert await client.is_warranty_valid(1) is True
        contract.functions.isWarrantyValid.assert_called_with(1)

    @pytest.mark.asyncio
    async def test_call_http_error_is_unavailable(self, client: Web3LedgerClient) -> None:
        """Test that an HTTP error status from the node is an availability failure."""
        contract = MagicMock()
        contract.functions.isWarrantyValid.return_value.call = AsyncMock(side_effect=rate_limited())
        client._contract = contract

        with pytest.raises(LedgerUnavailableError):
            await client.is_warranty_valid(1)

    @pytest.mark.asyncio
    async def test_query_events_http_error_is_unavailable(self, client: Web3LedgerClient) -> None:
        w3 = MagicMock()
        w3.eth.get_logs = AsyncMock(side_effect=rate_limited())
        client._w3 = w3

        with pytest.raises(LedgerUnavailableError):
            await client.query_events(WARRANTY_ISSUED)

    @pytest.mark.asyncio
    async def test_validity_falls_back_on_rate_limit(self, client: Web3LedgerClient) -> None:
        """Test that a rate-limited node degrades validation to the local answer."""
        contract = MagicMock()
        contract.functions.isWarrantyValid.return_value.call = AsyncMock(side_effect=rate_limited())
        client._contract = contract

        store = InMemoryWarrantyStore()
        purchased = datetime(2024, 1, 1, tzinfo=UTC)
        await store.insert(
            WarrantyRecord(
                serial_number="SN-1",
                product_name="Laptop Pro",
                product_model="LP-2024",
                manufacturer="Acme",
                retailer="Shop",
                customer_address=CUSTOMER,
                warranty_period_days=365,
                purchase_date=purchased,
                token_id=1,
            )
        )
        service = ValidityService(
            client,
            IdentifierResolver(client, store),
            timeout=10.0,
            clock=lambda: purchased,
        )

        result = await service.check("SN-1")

        assert result.validation_source == ValidationSource.LOCAL
        assert result.is_valid is True
