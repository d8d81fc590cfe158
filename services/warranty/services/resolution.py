"""
Identifier Resolution
=====================

Maps identifiers to local records and serial numbers to ledger token ids.

- identifier -> record: local only. Numeric identifiers are tried as a token
  id first, then as a serial number.
- serial -> token id: local index first, then a replay of the WarrantyIssued
  log. A replay hit for a local record without a token id is attached to it.

Version: 0.1.0
"""

import re

from shared.blockchain import LedgerClient
from shared.config import settings
from shared.logging import get_logger
from services.warranty.exceptions import NotFoundError, ValidationError
from services.warranty.models import ResolutionSource, SerialResolution, WarrantyRecord
from services.warranty.models.orm import MAX_TOKEN_ID
from services.warranty.services.ledger_scan import find_issued_event
from services.warranty.store import WarrantyStore

logger = get_logger(__name__)

# ASCII digits only; 19 digits covers every id up to MAX_TOKEN_ID.
TOKEN_ID_PATTERN = re.compile(r"[0-9]{1,19}")


class IdentifierResolver:
    """Identifier cross-resolution between the store and the ledger."""

    def __init__(
        self,
        ledger: LedgerClient,
        store: WarrantyStore,
        timeout: float | None = None,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.timeout = timeout or settings.blockchain.timeout_seconds

    async def resolve_record(self, identifier: str) -> WarrantyRecord:
        """
        Find the local record for a token id or serial number.

        Raises:
            ValidationError: Blank identifier
            NotFoundError: No record by token id or serial
        """
        identifier = identifier.strip()
        if not identifier:
            raise ValidationError("Identifier must not be blank", code="missing_fields")

        record = None
        if TOKEN_ID_PATTERN.fullmatch(identifier) and int(identifier) <= MAX_TOKEN_ID:
            record = await self.store.find_by_token_id(int(identifier))
        if record is None:
            # Serial numbers may themselves be numeric
            record = await self.store.find_by_serial(identifier)

        if record is None:
            raise NotFoundError(f"No warranty found for {identifier}", identifier=identifier)
        return record

    async def token_id_for_serial(self, serial_number: str) -> SerialResolution:
        """
        Resolve a serial number to its ledger token id.

        Args:
            serial_number: Product serial number

        Returns:
            SerialResolution naming the source of the answer

        Raises:
            NotFoundError: Serial unknown locally and on the ledger
            LedgerUnavailableError: Replay needed but the ledger is unreachable
            ConflictError: Ledger token id already belongs to another record
        """
        serial_number = serial_number.strip()
        record = await self.store.find_by_serial(serial_number)

        if record is not None and record.token_id is not None:
            return SerialResolution(
                serial_number=serial_number,
                token_id=record.token_id,
                source=ResolutionSource.LOCAL,
                record_id=record.id,
            )

        logger.info(
            "serial_ledger_replay",
            serial_number=serial_number,
            local_record=record is not None,
        )
        event = await find_issued_event(self.ledger, serial_number, self.timeout)
        if event is None:
            raise NotFoundError(
                f"Token not found for serial number {serial_number}",
                serial_number=serial_number,
            )

        record_id = None
        if record is not None:
            record = await self.store.attach_token_id(serial_number, event.token_id)
            record_id = record.id
            logger.info(
                "token_id_reconciled",
                serial_number=serial_number,
                token_id=event.token_id,
                tx_hash=event.transaction_hash,
            )

        return SerialResolution(
            serial_number=serial_number,
            token_id=event.token_id,
            source=ResolutionSource.LEDGER,
            record_id=record_id,
        )
