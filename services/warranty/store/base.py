"""
Warranty Store Interface
========================

Keyed persistence for warranty records. Implementations must be safe for
concurrent use and must enforce uniqueness of serial_number and token_id
themselves; the service's pre-insert lookups are advisory only.

Version: 0.1.0
"""

from typing import Any, Protocol

from services.warranty.models.record import WarrantyRecord


class WarrantyStore(Protocol):
    """Protocol for the local warranty record store."""

    async def find_by_serial(self, serial_number: str) -> WarrantyRecord | None:
        """Record with this serial number, if any."""
        ...

    async def find_by_token_id(self, token_id: int) -> WarrantyRecord | None:
        """Record anchored to this ledger identifier, if any."""
        ...

    async def find_by_customer(self, customer_address: str) -> list[WarrantyRecord]:
        """Records of a customer, newest first."""
        ...

    async def insert(self, record: WarrantyRecord) -> WarrantyRecord:
        """
        Persist a new record.

        Raises:
            ConflictError: Duplicate serial number or token id
            StoreError: Any other storage failure
        """
        ...

    async def attach_token_id(self, serial_number: str, token_id: int) -> WarrantyRecord:
        """
        Attach a ledger identifier discovered after initial persistence.

        Idempotent for the same token id.

        Raises:
            NotFoundError: No record with this serial number
            ConflictError: The record already carries another token id, or
                the token id belongs to another record
            StoreError: Any other storage failure
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Store health."""
        ...
