"""
Mock Ledger Client
==================

In-memory simulation of the DigitalWarranty contract for development and
testing.

Besides the happy path it can simulate the failure modes the service has to
survive: unreachable node, slow inclusion, rejected transactions, receipts
whose events carry a stale signature topic or cannot be decoded at all, and
several issuances landing in the same block.

Version: 0.1.0
"""

import asyncio
import hashlib
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from web3 import Web3

from shared.blockchain.abi import TRANSFER, WARRANTY_ISSUED, event_abi
from shared.blockchain.client import (
    BlockRef,
    DecodedEvent,
    EventRecord,
    IssuanceOutcome,
    IssuanceParams,
    LedgerClient,
    LedgerErrorKind,
)
from shared.blockchain.codec import decode_event_record, encode_event
from shared.blockchain.exceptions import LedgerRejectedError, LedgerUnavailableError
from shared.config import BlockchainMode
from shared.logging import get_logger

logger = get_logger(__name__)


MOCK_CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
ZERO_ADDRESS = "0x" + "00" * 20

# Topic of an older contract revision whose event carried fewer fields
LEGACY_WARRANTY_ISSUED_TOPIC = Web3.to_hex(
    Web3.keccak(text="WarrantyIssued(uint256,address,string)")
)


class EmissionStyle(str, Enum):
    """How WarrantyIssued appears in transaction receipts."""

    STANDARD = "standard"
    LEGACY_TOPIC = "legacy_topic"  # decodable data under a stale signature topic
    OPAQUE = "opaque"  # payload that does not decode
    NONE = "none"  # receipt carries no events


@dataclass
class MockWarranty:
    """Contract-side warranty state."""

    token_id: int
    owner: str
    product_name: str
    product_model: str
    serial_number: str
    purchase_date: int
    expiry_date: int
    manufacturer: str
    retailer: str
    token_uri: str
    invalidated: bool = False


class MockLedgerClient(LedgerClient):
    """
    In-memory mock ledger client.

    Simulates the contract without requiring blockchain infrastructure.
    Data is stored in memory and lost on restart.
    """

    def __init__(
        self,
        emission: EmissionStyle = EmissionStyle.STANDARD,
        unique_serials: bool = False,
        submit_delay: float = 0.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize mock client with in-memory storage.

        Args:
            emission: How receipts expose the WarrantyIssued event
            unique_serials: Revert issuances that reuse a serial number
            submit_delay: Seconds each submission waits for "inclusion"
            clock: Source of the contract's block timestamp
        """
        self.emission = emission
        self.unique_serials = unique_serials
        self.submit_delay = submit_delay
        self._clock = clock or (lambda: datetime.now(UTC))

        self._connected = False
        self._available = True
        self._history_available = True
        self._auto_mine = True
        self._block_number = 1000
        self._next_token_id = 1
        self._block_log_index: dict[int, int] = {}
        self._submit_failures: list[tuple[LedgerErrorKind, str]] = []

        # In-memory contract state
        self._warranties: dict[int, MockWarranty] = {}
        self._serials: dict[str, int] = {}
        self._history: list[EventRecord] = []

        logger.debug("mock_ledger_initialized")

    @property
    def mode(self) -> BlockchainMode:
        return BlockchainMode.MOCK

    async def connect(self) -> None:
        """Simulate connection."""
        self._connected = True
        logger.info("mock_ledger_connected")

    async def disconnect(self) -> None:
        """Simulate disconnection."""
        self._connected = False
        logger.info("mock_ledger_disconnected")

    async def health_check(self) -> dict[str, Any]:
        """Check mock ledger health."""
        return {
            "status": "healthy" if self._available else "unhealthy",
            "mode": self.mode.value,
            "connected": self._connected,
            "block_number": self._block_number,
            "contract": {
                "address": MOCK_CONTRACT_ADDRESS,
                "name": "DigitalWarranty",
                "symbol": "DWT",
            },
            "deployed": True,
            "warranties": len(self._warranties),
        }

    def _generate_tx_hash(self) -> str:
        """Generate a mock transaction hash."""
        return "0x" + hashlib.sha256(uuid.uuid4().bytes).hexdigest()

    def _inclusion_block(self) -> int:
        """Block the next transaction lands in."""
        if self._auto_mine:
            self._block_number += 1
            return self._block_number
        return self._block_number + 1

    def _next_log_index(self, block: int) -> int:
        index = self._block_log_index.get(block, 0)
        self._block_log_index[block] = index + 1
        return index

    def _require_available(self) -> None:
        if not self._available:
            raise LedgerUnavailableError("Mock ledger unreachable")

    # =========================================================================
    # Transactions
    # =========================================================================

    async def submit_issuance(self, params: IssuanceParams) -> IssuanceOutcome:
        """Simulate issueWarranty and its receipt."""
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)

        if not self._available:
            return IssuanceOutcome.failure(LedgerErrorKind.NETWORK, "connect ECONNREFUSED")

        if self._submit_failures:
            kind, message = self._submit_failures.pop(0)
            logger.debug("mock_submission_failed", kind=kind.value, message=message)
            return IssuanceOutcome.failure(kind, message)

        if self.unique_serials and params.serial_number in self._serials:
            return IssuanceOutcome.failure(
                LedgerErrorKind.REVERT,
                "execution reverted: Serial number already registered",
                transaction_hash=self._generate_tx_hash(),
            )

        customer = params.customer_address.lower()
        token_id = self._next_token_id
        self._next_token_id += 1

        now = int(self._clock().timestamp())
        warranty = MockWarranty(
            token_id=token_id,
            owner=customer,
            product_name=params.product_name,
            product_model=params.product_model,
            serial_number=params.serial_number,
            purchase_date=now,
            expiry_date=now + params.warranty_period_days * 86400,
            manufacturer=params.manufacturer_address.lower(),
            retailer=params.retailer_address.lower(),
            token_uri=params.metadata_uri,
        )
        self._warranties[token_id] = warranty
        self._serials.setdefault(params.serial_number, token_id)

        tx_hash = self._generate_tx_hash()
        block = self._inclusion_block()

        transfer = encode_event(
            event_abi(self.abi, TRANSFER),
            {"from": ZERO_ADDRESS, "to": customer, "tokenId": token_id},
            log_index=self._next_log_index(block),
            block_number=block,
            transaction_hash=tx_hash,
            address=MOCK_CONTRACT_ADDRESS,
        )
        issued = encode_event(
            event_abi(self.abi, WARRANTY_ISSUED),
            {
                "tokenId": token_id,
                "customer": customer,
                "productName": params.product_name,
                "serialNumber": params.serial_number,
                "purchaseDate": warranty.purchase_date,
                "expiryDate": warranty.expiry_date,
            },
            log_index=self._next_log_index(block),
            block_number=block,
            transaction_hash=tx_hash,
            address=MOCK_CONTRACT_ADDRESS,
        )
        self._history.extend([transfer, issued])

        logger.debug(
            "mock_warranty_issued",
            token_id=token_id,
            serial_number=params.serial_number,
            tx_hash=tx_hash,
            block_number=block,
        )

        return IssuanceOutcome(
            success=True,
            transaction_hash=tx_hash,
            gas_used=180_000 + 16 * len(params.metadata_uri),
            block_number=block,
            events=self._receipt_events(transfer, issued),
        )

    def _receipt_events(self, transfer: EventRecord, issued: EventRecord) -> list[EventRecord]:
        """Events as exposed in the receipt, per emission style."""
        if self.emission == EmissionStyle.NONE:
            return []
        if self.emission == EmissionStyle.LEGACY_TOPIC:
            topics = [LEGACY_WARRANTY_ISSUED_TOPIC, *issued.topics[1:]]
            return [transfer, issued.model_copy(update={"topics": topics})]
        if self.emission == EmissionStyle.OPAQUE:
            return [transfer, issued.model_copy(update={"data": "0xdeadbeef"})]
        return [transfer, issued]

    # =========================================================================
    # Reads
    # =========================================================================

    async def query_events(
        self,
        event_name: str,
        from_block: BlockRef = 0,
        to_block: BlockRef = "latest",
    ) -> list[EventRecord]:
        """Replay events from the in-memory log."""
        self._require_available()
        if not self._history_available:
            return []

        topic = self.event_topic(event_name)
        low = 0 if from_block == "earliest" else from_block
        high = None if to_block == "latest" else (0 if to_block == "earliest" else to_block)

        return [
            record
            for record in self._history
            if record.signature_topic == topic
            and record.block_number is not None
            and record.block_number >= low
            and (high is None or record.block_number <= high)
        ]

    async def call(self, method: str, *args: Any) -> Any:
        """Dispatch a read-only contract call."""
        self._require_available()

        if method == "name":
            return "DigitalWarranty"
        if method == "symbol":
            return "DWT"
        if method == "isWarrantyValid":
            warranty = self._get_warranty(*args)
            return not warranty.invalidated and self._now() < warranty.expiry_date
        if method == "getWarrantyDetails":
            warranty = self._get_warranty(*args)
            return (
                warranty.product_name,
                warranty.product_model,
                warranty.serial_number,
                warranty.purchase_date,
                warranty.expiry_date,
                warranty.manufacturer,
                warranty.retailer,
                not warranty.invalidated and self._now() < warranty.expiry_date,
            )

        raise LedgerRejectedError(f"execution reverted: unknown method {method}")

    def decode_event(
        self,
        record: EventRecord,
        expected: str | None = None,
    ) -> DecodedEvent:
        """Decode with the shared ABI codec."""
        return decode_event_record(self.abi, record, expected)

    def _get_warranty(self, token_id: int) -> MockWarranty:
        warranty = self._warranties.get(int(token_id))
        if warranty is None:
            raise LedgerRejectedError("execution reverted: Warranty does not exist")
        return warranty

    def _now(self) -> int:
        return int(self._clock().timestamp())

    # =========================================================================
    # Test Utilities
    # =========================================================================

    def set_available(self, available: bool) -> None:
        """Make every ledger interaction fail as unreachable."""
        self._available = available

    def set_history_available(self, available: bool) -> None:
        """Simulate a node that does not serve historical events."""
        self._history_available = available

    def fail_next_submission(self, kind: LedgerErrorKind, message: str) -> None:
        """Queue a failed outcome for the next submission."""
        self._submit_failures.append((kind, message))

    def hold_blocks(self) -> None:
        """Stop mining; subsequent submissions share one pending block."""
        self._auto_mine = False

    def mine(self) -> int:
        """Seal the pending block and resume automatic mining."""
        self._block_number += 1
        self._auto_mine = True
        return self._block_number

    def invalidate(self, token_id: int) -> None:
        """Mark a warranty invalid on the contract side."""
        self._get_warranty(token_id).invalidated = True

    def token_for_serial(self, serial_number: str) -> int | None:
        """Contract-side token id of the first issuance of a serial."""
        return self._serials.get(serial_number)

    def clear_all(self) -> None:
        """Clear all mock data (for testing)."""
        self._warranties.clear()
        self._serials.clear()
        self._history.clear()
        self._block_log_index.clear()
        self._submit_failures.clear()
        self._block_number = 1000
        self._next_token_id = 1
        self._available = True
        self._history_available = True
        self._auto_mine = True
        logger.debug("mock_ledger_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get storage statistics."""
        return {
            "warranties": len(self._warranties),
            "events": len(self._history),
            "block_number": self._block_number,
        }
