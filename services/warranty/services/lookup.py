"""Warranty detail and customer lookups."""

import asyncio

from shared.blockchain import LedgerClient, LedgerError
from shared.config import settings
from shared.logging import get_logger
from services.warranty.exceptions import ValidationError
from services.warranty.models import (
    CustomerWarranties,
    LedgerWarrantyOut,
    WarrantyDetails,
    WarrantyRecordOut,
)
from services.warranty.services.issuance import is_address
from services.warranty.services.resolution import IdentifierResolver
from services.warranty.store import WarrantyStore

logger = get_logger(__name__)


class WarrantyLookupService:
    """Read-side lookups that merge the local record with the ledger view."""

    def __init__(
        self,
        ledger: LedgerClient,
        store: WarrantyStore,
        resolver: IdentifierResolver,
        timeout: float | None = None,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.resolver = resolver
        self.timeout = timeout or settings.blockchain.timeout_seconds

    async def get_warranty(self, identifier: str) -> WarrantyDetails:
        """
        Get a warranty by token id or serial number.

        The ledger view is omitted when the record has no token id or the
        ledger cannot be read.

        Raises:
            NotFoundError: Unknown identifier
        """
        record = await self.resolver.resolve_record(identifier)
        details = WarrantyDetails(product=WarrantyRecordOut.from_record(record))

        if record.token_id is None:
            return details

        try:
            view = await asyncio.wait_for(
                self.ledger.get_warranty_details(record.token_id),
                timeout=self.timeout,
            )
        except (LedgerError, asyncio.TimeoutError) as e:
            logger.warning(
                "ledger_details_unavailable",
                token_id=record.token_id,
                error=str(e) or type(e).__name__,
            )
            return details

        details.ledger = LedgerWarrantyOut.from_view(view)
        details.has_ledger_data = True
        return details

    async def list_customer_warranties(self, address: str) -> CustomerWarranties:
        """
        List a customer's warranties, newest first.

        Raises:
            ValidationError: Malformed address
        """
        address = address.strip()
        if not is_address(address):
            raise ValidationError(
                "Invalid Ethereum address format",
                code="invalid_address",
                field="address",
            )

        records = await self.store.find_by_customer(address.lower())
        return CustomerWarranties(
            address=address.lower(),
            warranties=[WarrantyRecordOut.from_record(r) for r in records],
            count=len(records),
        )
