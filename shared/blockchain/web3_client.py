"""
Web3 Ledger Client
==================

DigitalWarranty client over Ethereum JSON-RPC using web3.py.

Transactions are signed locally with the configured key and sent raw.
Read-only calls and event replays are retried on transport errors;
submissions never are, since a retried submission could land twice.

Version: 0.1.0
"""

import asyncio
from typing import Any

import aiohttp
from eth_account import Account
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from shared.blockchain.abi import load_abi
from shared.blockchain.client import (
    BlockRef,
    DecodedEvent,
    EventRecord,
    IssuanceOutcome,
    IssuanceParams,
    LedgerClient,
    LedgerErrorKind,
)
from shared.blockchain.codec import decode_event_record
from shared.blockchain.exceptions import LedgerRejectedError, LedgerUnavailableError
from shared.config import settings, BlockchainMode
from shared.logging import get_logger

logger = get_logger(__name__)

# Raised by the provider stack when the node cannot be reached or answers
# with an HTTP error status (429, 5xx).
TRANSPORT_ERRORS = (Web3Exception, aiohttp.ClientError, OSError)


def classify_error(error: BaseException) -> LedgerErrorKind:
    """Map a web3/transport exception to a submission failure kind."""
    if isinstance(error, (TimeExhausted, asyncio.TimeoutError)):
        return LedgerErrorKind.TIMEOUT
    if isinstance(error, ContractLogicError):
        return LedgerErrorKind.REVERT
    if isinstance(error, (aiohttp.ClientError, OSError)):
        return LedgerErrorKind.NETWORK

    message = str(error).lower()
    if "insufficient funds" in message or "gas" in message:
        return LedgerErrorKind.GAS
    if "nonce" in message or "invalid" in message:
        return LedgerErrorKind.VALIDATION
    if "revert" in message:
        return LedgerErrorKind.REVERT
    return LedgerErrorKind.UNKNOWN


def _to_record(log: Any) -> EventRecord:
    """Convert a receipt/filter log entry."""
    return EventRecord(
        topics=[AsyncWeb3.to_hex(t) for t in log["topics"]],
        data=AsyncWeb3.to_hex(log["data"]),
        log_index=log["logIndex"],
        block_number=log["blockNumber"],
        transaction_hash=AsyncWeb3.to_hex(log["transactionHash"]),
        address=log["address"],
    )


class Web3LedgerClient(LedgerClient):
    """
    Ledger client for EVM testnets and mainnets.

    Each request only awaits its own RPC round trips; the client holds no
    locks, so concurrent requests proceed independently.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        contract_address: str | None = None,
        private_key: str | None = None,
        abi: list[dict[str, Any]] | None = None,
        timeout: float | None = None,
        chain_id: int | None = None,
        mode: BlockchainMode = BlockchainMode.TESTNET,
    ) -> None:
        """
        Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint (default from settings)
            contract_address: DigitalWarranty address (default from settings)
            private_key: Signer key for submissions (default from settings)
            abi: Contract ABI (default: settings.blockchain.abi_path or built-in)
            timeout: Bound for each ledger interaction, in seconds
            chain_id: EIP-155 chain id, looked up from the node when omitted
            mode: Testnet or mainnet
        """
        config = settings.blockchain
        self._mode = mode
        self._rpc_url = rpc_url or config.rpc_url
        self._timeout = timeout or config.timeout_seconds
        self._chain_id = chain_id or config.chain_id
        self.abi = abi or load_abi(config.abi_path)

        address = contract_address or config.contract_address
        if not self._rpc_url or not address:
            raise ValueError(
                "BLOCKCHAIN_RPC_URL and BLOCKCHAIN_CONTRACT_ADDRESS are required "
                f"for blockchain mode '{mode.value}'"
            )

        self._w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
        self._contract_address = AsyncWeb3.to_checksum_address(address)
        self._contract = self._w3.eth.contract(address=self._contract_address, abi=self.abi)

        key = private_key or config.private_key.get_secret_value()
        self._account = Account.from_key(key) if key else None

        logger.debug(
            "web3_ledger_initialized",
            mode=mode.value,
            contract=self._contract_address,
            signer=self._account.address if self._account else None,
        )

    @property
    def mode(self) -> BlockchainMode:
        return self._mode

    async def connect(self) -> None:
        """Verify the node is reachable."""
        connected = await self._bounded(self._w3.is_connected())
        if not connected:
            raise LedgerUnavailableError(f"Cannot reach ledger node at {self._rpc_url}")
        if self._chain_id is None:
            self._chain_id = await self._bounded(self._w3.eth.chain_id)
        logger.info("web3_ledger_connected", chain_id=self._chain_id)

    async def disconnect(self) -> None:
        """Close the provider session."""
        provider = self._w3.provider
        if hasattr(provider, "disconnect"):
            await provider.disconnect()
        logger.info("web3_ledger_disconnected")

    async def health_check(self) -> dict[str, Any]:
        """Check node connectivity and contract deployment."""
        try:
            block_number = await self._bounded(self._w3.eth.block_number)
            code = await self._bounded(self._w3.eth.get_code(self._contract_address))
            deployed = len(code) > 0
            name = await self.call("name") if deployed else None
            symbol = await self.call("symbol") if deployed else None
        except (LedgerUnavailableError, LedgerRejectedError, *TRANSPORT_ERRORS) as e:
            logger.error("ledger_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "mode": self.mode.value,
                "error": str(e),
            }

        return {
            "status": "healthy" if deployed else "degraded",
            "mode": self.mode.value,
            "connected": True,
            "block_number": block_number,
            "contract": {
                "address": self._contract_address,
                "name": name,
                "symbol": symbol,
            },
            "deployed": deployed,
        }

    async def _bounded(self, awaitable: Any) -> Any:
        """Await with the configured timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise LedgerUnavailableError(
                f"Ledger did not answer within {self._timeout}s"
            ) from e

    # =========================================================================
    # Transactions
    # =========================================================================

    async def submit_issuance(self, params: IssuanceParams) -> IssuanceOutcome:
        """Sign, send and await an issueWarranty transaction."""
        if self._account is None:
            return IssuanceOutcome.failure(
                LedgerErrorKind.VALIDATION,
                "No signer configured (BLOCKCHAIN_PRIVATE_KEY)",
            )

        function = self._contract.functions.issueWarranty(
            AsyncWeb3.to_checksum_address(params.customer_address),
            params.product_name,
            params.product_model,
            params.serial_number,
            params.warranty_period_days,
            AsyncWeb3.to_checksum_address(params.manufacturer_address),
            AsyncWeb3.to_checksum_address(params.retailer_address),
            params.metadata_uri,
        )

        tx_hash: str | None = None
        try:
            nonce = await self._bounded(
                self._w3.eth.get_transaction_count(self._account.address, "pending")
            )
            tx: dict[str, Any] = {"from": self._account.address, "nonce": nonce}
            if self._chain_id is not None:
                tx["chainId"] = self._chain_id
            tx = await self._bounded(function.build_transaction(tx))

            signed = self._account.sign_transaction(tx)
            sent = await self._bounded(self._w3.eth.send_raw_transaction(signed.raw_transaction))
            tx_hash = AsyncWeb3.to_hex(sent)
            logger.info("ledger_transaction_sent", tx_hash=tx_hash, nonce=nonce)

            receipt = await self._w3.eth.wait_for_transaction_receipt(
                sent, timeout=self._timeout
            )
        except LedgerUnavailableError as e:
            return IssuanceOutcome.failure(LedgerErrorKind.TIMEOUT, e.message, tx_hash)
        except (*TRANSPORT_ERRORS, ValueError) as e:
            kind = classify_error(e)
            logger.warning(
                "ledger_submission_failed",
                kind=kind.value,
                error=str(e),
                tx_hash=tx_hash,
            )
            return IssuanceOutcome.failure(kind, str(e), tx_hash)

        if receipt["status"] != 1:
            return IssuanceOutcome.failure(
                LedgerErrorKind.REVERT,
                "Transaction reverted",
                tx_hash,
            )

        logger.info(
            "ledger_transaction_confirmed",
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )

        return IssuanceOutcome(
            success=True,
            transaction_hash=tx_hash,
            gas_used=receipt["gasUsed"],
            block_number=receipt["blockNumber"],
            events=[_to_record(log) for log in receipt["logs"]],
        )

    # =========================================================================
    # Reads
    # =========================================================================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(LedgerUnavailableError),
        reraise=True,
    )
    async def query_events(
        self,
        event_name: str,
        from_block: BlockRef = 0,
        to_block: BlockRef = "latest",
    ) -> list[EventRecord]:
        """Fetch logs by contract address and signature topic."""
        try:
            logs = await self._bounded(
                self._w3.eth.get_logs({
                    "address": self._contract_address,
                    "topics": [self.event_topic(event_name)],
                    "fromBlock": from_block,
                    "toBlock": to_block,
                })
            )
        except TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(f"get_logs failed: {e}") from e

        records = [_to_record(log) for log in logs]
        return sorted(records, key=lambda r: (r.block_number or 0, r.log_index))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(LedgerUnavailableError),
        reraise=True,
    )
    async def call(self, method: str, *args: Any) -> Any:
        """Call a view function."""
        try:
            function = getattr(self._contract.functions, method)
            return await self._bounded(function(*args).call())
        except ContractLogicError as e:
            raise LedgerRejectedError(str(e)) from e
        except TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(f"{method} call failed: {e}") from e

    def decode_event(
        self,
        record: EventRecord,
        expected: str | None = None,
    ) -> DecodedEvent:
        """Decode with the shared ABI codec."""
        return decode_event_record(self.abi, record, expected)
