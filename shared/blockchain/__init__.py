"""
Blockchain Module
=================

Abstraction layer for the DigitalWarranty ledger.

Supports:
- Mock (development/testing)
- Testnet / Mainnet (any EVM JSON-RPC endpoint, via web3.py)

Features:
- Warranty issuance transactions with receipt events
- Historical event replay
- Read-only contract calls (validity, details)
- ABI event decoding

Usage:
    from shared.blockchain import get_ledger_client, IssuanceParams

    client = get_ledger_client()

    outcome = await client.submit_issuance(params)
    if outcome.success:
        for record in outcome.events:
            event = client.decode_event(record)

    valid = await client.is_warranty_valid(token_id)
"""

from shared.blockchain.abi import WARRANTY_ISSUED, WARRANTY_ISSUED_SIGNATURE
from shared.blockchain.client import (
    DecodedEvent,
    EventRecord,
    IssuanceOutcome,
    IssuanceParams,
    LedgerClient,
    LedgerErrorKind,
    LedgerWarrantyView,
    get_ledger_client,
    reset_ledger_client,
    set_ledger_client,
)
from shared.blockchain.exceptions import (
    EventDecodeError,
    LedgerError,
    LedgerRejectedError,
    LedgerUnavailableError,
)
from shared.blockchain.mock import EmissionStyle, MockLedgerClient

__all__ = [
    # Client
    "LedgerClient",
    "get_ledger_client",
    "set_ledger_client",
    "reset_ledger_client",
    # Models
    "DecodedEvent",
    "EventRecord",
    "IssuanceOutcome",
    "IssuanceParams",
    "LedgerErrorKind",
    "LedgerWarrantyView",
    "WARRANTY_ISSUED",
    "WARRANTY_ISSUED_SIGNATURE",
    # Errors
    "LedgerError",
    "LedgerUnavailableError",
    "LedgerRejectedError",
    "EventDecodeError",
    # Implementations
    "MockLedgerClient",
    "EmissionStyle",
]
