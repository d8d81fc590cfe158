"""Replay of the WarrantyIssued log."""

import asyncio

from shared.blockchain import (
    WARRANTY_ISSUED,
    EventDecodeError,
    LedgerClient,
    LedgerUnavailableError,
)
from shared.config import settings
from shared.logging import get_logger
from services.warranty.models.events import WarrantyIssuedEvent

logger = get_logger(__name__)


async def find_issued_event(
    ledger: LedgerClient,
    serial_number: str,
    timeout: float,
    from_block: int | None = None,
) -> WarrantyIssuedEvent | None:
    """
    Find the first WarrantyIssued event for a serial number.

    Replays the event log from the contract's deployment block, so callers
    only use it after a local miss.

    Args:
        ledger: Ledger client
        serial_number: Serial number to look for
        timeout: Bound for the replay, in seconds
        from_block: First block to replay (default: BLOCKCHAIN_DEPLOYMENT_BLOCK)

    Returns:
        The earliest matching event, or None

    Raises:
        LedgerUnavailableError: If the ledger cannot be reached in time
    """
    if from_block is None:
        from_block = settings.blockchain.deployment_block

    try:
        records = await asyncio.wait_for(
            ledger.query_events(WARRANTY_ISSUED, from_block, "latest"),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise LedgerUnavailableError(
            f"WarrantyIssued replay timed out after {timeout}s"
        ) from e

    skipped = 0
    for record in records:
        try:
            event = WarrantyIssuedEvent.from_decoded(ledger.decode_event(record))
        except EventDecodeError:
            skipped += 1
            continue
        if event.serial_number == serial_number:
            return event

    logger.debug(
        "ledger_scan_miss",
        serial_number=serial_number,
        scanned=len(records),
        skipped=skipped,
    )
    return None
