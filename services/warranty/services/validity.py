"""
Validity Resolution
===================

Answers whether a warranty is currently valid.

The ledger is asked first when the record carries a token id; its answer is
returned as-is. When the ledger cannot answer, or there is no token id, the
answer is computed from the local record. The two are never combined.

Version: 0.1.0
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

from shared.blockchain import LedgerClient, LedgerError
from shared.config import settings
from shared.logging import get_logger
from services.warranty.models import (
    ProductSummary,
    ValidationSource,
    ValidityResult,
    WarrantyRecord,
)
from services.warranty.services.resolution import IdentifierResolver

logger = get_logger(__name__)


class ValidityService:
    """Validity resolution with ledger precedence and local fallback."""

    def __init__(
        self,
        ledger: LedgerClient,
        resolver: IdentifierResolver,
        timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            ledger: Ledger client
            resolver: Identifier resolver for record lookup
            timeout: Bound for the ledger validity call, in seconds
            clock: Source of "now" for the local computation
        """
        self.ledger = ledger
        self.resolver = resolver
        self.timeout = timeout or settings.blockchain.timeout_seconds
        self._clock = clock or (lambda: datetime.now(UTC))

    async def check(self, identifier: str) -> ValidityResult:
        """
        Check validity of the warranty behind an identifier.

        Raises:
            NotFoundError: Unknown identifier
        """
        record = await self.resolver.resolve_record(identifier)

        is_valid = await self._ledger_validity(record)
        source = ValidationSource.LEDGER
        if is_valid is None:
            is_valid = record.is_locally_valid(self._clock())
            source = ValidationSource.LOCAL

        logger.debug(
            "validity_resolved",
            identifier=identifier,
            token_id=record.token_id,
            is_valid=is_valid,
            source=source.value,
        )

        return ValidityResult(
            identifier=identifier,
            token_id=record.token_id,
            serial_number=record.serial_number,
            is_valid=is_valid,
            validation_source=source,
            product=ProductSummary(
                name=record.product_name,
                model=record.product_model,
                purchase_date=record.purchase_date,
                warranty_period_days=record.warranty_period_days,
                expires_at=record.expires_at,
            ),
        )

    async def _ledger_validity(self, record: WarrantyRecord) -> bool | None:
        """Ledger answer, or None when the ledger cannot give one."""
        if record.token_id is None:
            return None

        try:
            return await asyncio.wait_for(
                self.ledger.is_warranty_valid(record.token_id),
                timeout=self.timeout,
            )
        except (LedgerError, asyncio.TimeoutError) as e:
            logger.warning(
                "ledger_validity_unavailable",
                token_id=record.token_id,
                error=str(e) or type(e).__name__,
            )
            return None
