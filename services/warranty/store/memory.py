"""
In-Memory Warranty Store
========================

Dictionary-backed store for development and tests. Each operation runs
without awaiting, so it is atomic with respect to other coroutines.

Version: 0.1.0
"""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from services.warranty.exceptions import ConflictError, NotFoundError
from services.warranty.models.record import WarrantyRecord
from shared.logging import get_logger

logger = get_logger(__name__)


class InMemoryWarrantyStore:
    """In-memory warranty store. Data is lost on restart."""

    def __init__(self) -> None:
        self._by_serial: dict[str, WarrantyRecord] = {}
        self._serial_by_token: dict[int, str] = {}

    async def find_by_serial(self, serial_number: str) -> WarrantyRecord | None:
        record = self._by_serial.get(serial_number)
        return replace(record) if record else None

    async def find_by_token_id(self, token_id: int) -> WarrantyRecord | None:
        serial_number = self._serial_by_token.get(token_id)
        if serial_number is None:
            return None
        return replace(self._by_serial[serial_number])

    async def find_by_customer(self, customer_address: str) -> list[WarrantyRecord]:
        address = customer_address.lower()
        records = [r for r in self._by_serial.values() if r.customer_address == address]
        return [replace(r) for r in sorted(records, key=lambda r: r.created_at, reverse=True)]

    async def insert(self, record: WarrantyRecord) -> WarrantyRecord:
        if record.serial_number in self._by_serial:
            raise ConflictError(
                f"Warranty with serial number {record.serial_number} already exists",
                code="duplicate_serial",
            )
        if record.token_id is not None and record.token_id in self._serial_by_token:
            raise ConflictError(
                f"Token ID {record.token_id} is already assigned",
                code="duplicate_token_id",
            )

        stored = replace(record)
        self._by_serial[stored.serial_number] = stored
        if stored.token_id is not None:
            self._serial_by_token[stored.token_id] = stored.serial_number

        logger.debug("memory_record_inserted", serial_number=stored.serial_number)
        return replace(stored)

    async def attach_token_id(self, serial_number: str, token_id: int) -> WarrantyRecord:
        record = self._by_serial.get(serial_number)
        if record is None:
            raise NotFoundError(f"No warranty with serial number {serial_number}")

        if record.token_id == token_id:
            return replace(record)
        if record.token_id is not None:
            raise ConflictError(
                f"Warranty {serial_number} is already anchored to token {record.token_id}",
                code="token_id_immutable",
            )
        if token_id in self._serial_by_token:
            raise ConflictError(
                f"Token ID {token_id} is already assigned",
                code="duplicate_token_id",
            )

        record.token_id = token_id
        record.updated_at = datetime.now(UTC)
        self._serial_by_token[token_id] = serial_number
        return replace(record)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "backend": "memory", "records": len(self._by_serial)}
