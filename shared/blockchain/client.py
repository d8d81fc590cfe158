"""
Blockchain Client Interface
===========================

Abstract base class and models for the warranty ledger.

The ledger is an opaque asynchronous RPC peer: the client submits
transactions, waits for inclusion, replays historical events and calls
read-only contract methods. It owns no durable state.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from shared.blockchain.abi import DIGITAL_WARRANTY_ABI, event_abi, event_topic
from shared.config import settings, BlockchainMode
from shared.logging import get_logger

logger = get_logger(__name__)


BlockRef = int | Literal["latest", "earliest"]


class LedgerErrorKind(str, Enum):
    """Classification of a failed submission."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    REVERT = "revert"
    GAS = "gas"
    VALIDATION = "validation"
    UNKNOWN = "unknown"

    @property
    def is_availability(self) -> bool:
        """Whether the ledger state after the failure is unknown."""
        return self in (LedgerErrorKind.NETWORK, LedgerErrorKind.TIMEOUT)


class IssuanceParams(BaseModel):
    """Arguments of the contract's issueWarranty call."""

    customer_address: str
    product_name: str
    product_model: str
    serial_number: str
    warranty_period_days: int = Field(..., gt=0)
    manufacturer_address: str
    retailer_address: str
    metadata_uri: str


class EventRecord(BaseModel):
    """An event (log) emitted during a transaction."""

    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    log_index: int = 0
    block_number: int | None = None
    transaction_hash: str | None = None
    address: str | None = None

    @property
    def signature_topic(self) -> str | None:
        """First topic, the event signature hash for non-anonymous events."""
        return self.topics[0] if self.topics else None


class DecodedEvent(BaseModel):
    """An event record decoded against the contract ABI."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    log_index: int = 0
    block_number: int | None = None
    transaction_hash: str | None = None


class IssuanceOutcome(BaseModel):
    """Result of submitting an issuance transaction."""

    success: bool
    transaction_hash: str | None = None
    gas_used: int | None = None
    block_number: int | None = None
    events: list[EventRecord] = Field(default_factory=list)

    # Populated on failure
    error_kind: LedgerErrorKind | None = None
    error_message: str | None = None

    @classmethod
    def failure(
        cls,
        kind: LedgerErrorKind,
        message: str,
        transaction_hash: str | None = None,
    ) -> "IssuanceOutcome":
        """Build a failed outcome."""
        return cls(
            success=False,
            transaction_hash=transaction_hash,
            error_kind=kind,
            error_message=message,
        )


class LedgerWarrantyView(BaseModel):
    """Live warranty state read from the contract. Never stored."""

    product_name: str
    product_model: str
    serial_number: str
    purchase_date: datetime
    expiry_date: datetime
    manufacturer: str
    retailer: str
    is_valid: bool

    @classmethod
    def from_contract(cls, values: Any) -> "LedgerWarrantyView":
        """Build from the getWarrantyDetails return tuple."""
        (
            product_name,
            product_model,
            serial_number,
            purchase_date,
            expiry_date,
            manufacturer,
            retailer,
            is_valid,
        ) = values
        return cls(
            product_name=product_name,
            product_model=product_model,
            serial_number=serial_number,
            purchase_date=datetime.fromtimestamp(int(purchase_date), UTC),
            expiry_date=datetime.fromtimestamp(int(expiry_date), UTC),
            manufacturer=str(manufacturer),
            retailer=str(retailer),
            is_valid=bool(is_valid),
        )


class LedgerClient(ABC):
    """
    Abstract base class for ledger clients.

    Implements the Strategy pattern for different blockchain modes.
    """

    abi: list[dict[str, Any]] = DIGITAL_WARRANTY_ABI

    @property
    @abstractmethod
    def mode(self) -> BlockchainMode:
        """Get the blockchain mode."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the blockchain network."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the blockchain network."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Check ledger health, including contract name, symbol and deployment."""
        ...

    # =========================================================================
    # Transactions
    # =========================================================================

    @abstractmethod
    async def submit_issuance(self, params: IssuanceParams) -> IssuanceOutcome:
        """
        Submit an issueWarranty transaction and wait for its receipt.

        Failures are reported in the outcome rather than raised, so the
        caller can tell an unknown ledger state (network, timeout) from a
        refusal (revert, gas, validation).

        Args:
            params: Contract call arguments

        Returns:
            IssuanceOutcome with receipt details and emitted events
        """
        ...

    # =========================================================================
    # Reads
    # =========================================================================

    @abstractmethod
    async def query_events(
        self,
        event_name: str,
        from_block: BlockRef = 0,
        to_block: BlockRef = "latest",
    ) -> list[EventRecord]:
        """
        Replay historical events of one type.

        Args:
            event_name: ABI event name
            from_block: First block, inclusive
            to_block: Last block, inclusive

        Returns:
            EventRecords in ledger emission order

        Raises:
            LedgerUnavailableError: If the ledger cannot be reached
        """
        ...

    @abstractmethod
    async def call(self, method: str, *args: Any) -> Any:
        """
        Call a read-only contract method.

        Raises:
            LedgerUnavailableError: If the ledger cannot be reached
            LedgerRejectedError: If the call reverts
        """
        ...

    @abstractmethod
    def decode_event(
        self,
        record: EventRecord,
        expected: str | None = None,
    ) -> DecodedEvent:
        """
        Decode an event record against the contract ABI.

        Args:
            record: Raw event record
            expected: Decode against this event's schema regardless of the
                signature topic. When omitted the topic selects the schema.

        Raises:
            EventDecodeError: If the record does not decode
        """
        ...

    def event_topic(self, event_name: str) -> str:
        """Signature topic of an ABI event."""
        return event_topic(event_abi(self.abi, event_name))

    async def get_warranty_details(self, token_id: int) -> LedgerWarrantyView:
        """Read the live warranty view for a token."""
        values = await self.call("getWarrantyDetails", token_id)
        return LedgerWarrantyView.from_contract(values)

    async def is_warranty_valid(self, token_id: int) -> bool:
        """Ask the contract whether a warranty is currently valid."""
        return bool(await self.call("isWarrantyValid", token_id))


# Global client instance
_client: LedgerClient | None = None


def get_ledger_client() -> LedgerClient:
    """
    Get the configured ledger client instance.

    Returns:
        LedgerClient instance based on settings
    """
    global _client

    if _client is None:
        mode = settings.blockchain.mode

        if mode == BlockchainMode.MOCK:
            from shared.blockchain.mock import MockLedgerClient

            _client = MockLedgerClient()
        elif mode in (BlockchainMode.TESTNET, BlockchainMode.MAINNET):
            from shared.blockchain.web3_client import Web3LedgerClient

            _client = Web3LedgerClient(mode=mode)
        else:
            raise ValueError(f"Unknown blockchain mode: {mode}")

        logger.info(
            "ledger_client_initialized",
            mode=mode.value,
        )

    return _client


def set_ledger_client(client: LedgerClient) -> None:
    """
    Set a custom ledger client.

    Args:
        client: LedgerClient instance
    """
    global _client
    _client = client
    logger.info(
        "ledger_client_set",
        mode=client.mode.value,
    )


def reset_ledger_client() -> None:
    """Reset the client to be re-initialized."""
    global _client
    _client = None
