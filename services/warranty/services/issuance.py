"""
Warranty Issuance
=================

Issues a warranty on the ledger and mirrors it into the local store.

Order of work:
1. Preconditions (required fields, address syntax, duplicates)
2. Ledger submission, bounded by the configured timeout
3. Token id recovery
4. Local persistence

The ledger and the store are never written atomically. A ledger success
followed by a store failure is reported as PersistenceError carrying the
transaction hash, and is never retried automatically.

Version: 0.1.0
"""

import asyncio
import base64
import json
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic.alias_generators import to_camel

from shared.blockchain import IssuanceOutcome, IssuanceParams, LedgerClient, LedgerErrorKind
from shared.config import settings
from shared.logging import get_logger
from services.warranty.exceptions import (
    ConflictError,
    IdentifierUnresolved,
    LedgerRejectedError,
    LedgerUnavailableError,
    PersistenceError,
    ValidationError,
)
from services.warranty.models import (
    IssuanceRequest,
    MAX_PERIOD_DAYS,
    IssuanceResult,
    RecordSummary,
    WarrantyRecord,
)
from services.warranty.services.ledger_scan import find_issued_event
from services.warranty.services.recovery import TokenIdRecovery
from services.warranty.store import WarrantyStore

logger = get_logger(__name__)


ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

REQUIRED_FIELDS = ("serial_number", "product_name", "product_model", "customer_address")

UNKNOWN_PARTY = "Unknown"


def is_address(value: str) -> bool:
    """Whether a string is a ledger account address."""
    return bool(ADDRESS_PATTERN.match(value))


def build_metadata_uri(
    *,
    serial_number: str,
    product_name: str,
    product_model: str,
    manufacturer: str,
    retailer: str,
    warranty_period_days: int,
    issued_at: datetime,
) -> str:
    """
    Build the token metadata document as a base64 data URI.

    Returns:
        data:application/json;base64,... URI
    """
    base_url = settings.warranty.public_base_url.rstrip("/")
    document: dict[str, Any] = {
        "name": f"Digital Warranty - {product_name}",
        "description": f"Digital warranty certificate for {product_name} model {product_model}",
        "image": settings.warranty.metadata_image_url,
        "external_url": f"{base_url}/warranty/{serial_number}",
        "attributes": [
            {"trait_type": "Product Name", "value": product_name},
            {"trait_type": "Model", "value": product_model},
            {"trait_type": "Serial Number", "value": serial_number},
            {"trait_type": "Manufacturer", "value": manufacturer},
            {"trait_type": "Retailer", "value": retailer},
            {"trait_type": "Warranty Period (Days)", "value": warranty_period_days},
            {"trait_type": "Issue Date", "value": issued_at.date().isoformat()},
        ],
    }
    encoded = base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")
    return f"data:application/json;base64,{encoded}"


class IssuanceService:
    """Issuance orchestrator."""

    def __init__(
        self,
        ledger: LedgerClient,
        store: WarrantyStore,
        recovery: TokenIdRecovery | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
        ledger_duplicate_check: bool | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            ledger: Ledger client
            store: Local warranty store
            recovery: Token id recovery; built from the ledger when omitted
            timeout: Bound for each ledger interaction, in seconds
            clock: Source of the local purchase timestamp
            ledger_duplicate_check: Scan the ledger for the serial before
                submitting. Defaults to the WARRANTY_LEDGER_DUPLICATE_CHECK setting.
        """
        self.ledger = ledger
        self.store = store
        self.timeout = timeout or settings.blockchain.timeout_seconds
        self.recovery = recovery or TokenIdRecovery(ledger, timeout=self.timeout)
        self._clock = clock or (lambda: datetime.now(UTC))
        self.ledger_duplicate_check = (
            settings.warranty.ledger_duplicate_check
            if ledger_duplicate_check is None
            else ledger_duplicate_check
        )

    async def issue(self, request: IssuanceRequest) -> IssuanceResult:
        """
        Issue a warranty.

        Args:
            request: Issuance request

        Returns:
            IssuanceResult; token_id is None and warning is set when the
            ledger identifier could not be recovered

        Raises:
            ValidationError: Missing fields, malformed address or period
            ConflictError: Serial number already issued
            LedgerUnavailableError: Ledger unreachable or submission timed out
            LedgerRejectedError: Ledger refused the transaction
            PersistenceError: Ledger succeeded but the record was not saved
        """
        fields = self._validate(request)
        serial_number = fields["serial_number"]

        await self._check_duplicates(serial_number)

        issued_at = self._clock()
        params = IssuanceParams(
            customer_address=fields["customer_address"],
            product_name=fields["product_name"],
            product_model=fields["product_model"],
            serial_number=serial_number,
            warranty_period_days=fields["warranty_period_days"],
            manufacturer_address=fields["manufacturer_address"],
            retailer_address=fields["retailer_address"],
            metadata_uri=build_metadata_uri(
                serial_number=serial_number,
                product_name=fields["product_name"],
                product_model=fields["product_model"],
                manufacturer=fields["manufacturer"],
                retailer=fields["retailer"],
                warranty_period_days=fields["warranty_period_days"],
                issued_at=issued_at,
            ),
        )

        outcome = await self._submit(params)
        resolution = await self.recovery.recover(outcome)

        record = WarrantyRecord(
            serial_number=serial_number,
            product_name=fields["product_name"],
            product_model=fields["product_model"],
            manufacturer=fields["manufacturer"],
            retailer=fields["retailer"],
            customer_address=fields["customer_address"],
            warranty_period_days=fields["warranty_period_days"],
            purchase_date=issued_at,
            token_id=resolution.token_id,
            transaction_hash=outcome.transaction_hash,
        )
        stored = await self._persist(record, outcome)

        warning = None
        if not resolution.resolved:
            warning = str(IdentifierUnresolved(outcome.transaction_hash))

        logger.info(
            "warranty_issued",
            serial_number=serial_number,
            token_id=stored.token_id,
            strategy=resolution.strategy,
            tx_hash=outcome.transaction_hash,
            block_number=outcome.block_number,
        )

        return IssuanceResult(
            transaction_hash=outcome.transaction_hash or "",
            gas_used=outcome.gas_used,
            block_number=outcome.block_number,
            product=RecordSummary.from_record(stored),
            token_id=stored.token_id,
            token_id_strategy=resolution.strategy,
            warning=warning,
        )

    # =========================================================================
    # Preconditions
    # =========================================================================

    def _validate(self, request: IssuanceRequest) -> dict[str, Any]:
        """Check input and fill defaults. Returns normalized fields."""
        values = {
            name: (getattr(request, name) or "").strip()
            for name in REQUIRED_FIELDS
        }
        missing = [to_camel(name) for name, value in values.items() if not value]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                code="missing_fields",
                fields=missing,
            )

        customer = values["customer_address"]
        if not is_address(customer):
            raise ValidationError(
                "Invalid Ethereum address format",
                code="invalid_address",
                field="customerAddress",
            )

        parties = {}
        for name in ("manufacturer_address", "retailer_address"):
            value = (getattr(request, name) or "").strip()
            if value and not is_address(value):
                raise ValidationError(
                    f"Invalid Ethereum address format for {to_camel(name)}",
                    code="invalid_address",
                    field=to_camel(name),
                )
            parties[name] = (value or customer).lower()

        period = request.warranty_period_days
        if period is None:
            period = settings.warranty.default_period_days
        elif not 0 < period <= MAX_PERIOD_DAYS:
            raise ValidationError(
                f"warrantyPeriodDays must be between 1 and {MAX_PERIOD_DAYS}",
                code="invalid_period",
                field="warrantyPeriodDays",
            )

        return {
            **values,
            **parties,
            "customer_address": customer.lower(),
            "manufacturer": (request.manufacturer or "").strip() or UNKNOWN_PARTY,
            "retailer": (request.retailer or "").strip() or UNKNOWN_PARTY,
            "warranty_period_days": period,
        }

    async def _check_duplicates(self, serial_number: str) -> None:
        existing = await self.store.find_by_serial(serial_number)
        if existing is not None:
            raise ConflictError(
                f"Warranty with serial number {serial_number} already exists",
                code="duplicate_serial",
                record_id=existing.id,
                token_id=existing.token_id,
            )

        if not self.ledger_duplicate_check:
            return

        event = await find_issued_event(self.ledger, serial_number, self.timeout)
        if event is not None:
            logger.warning(
                "serial_already_on_ledger",
                serial_number=serial_number,
                token_id=event.token_id,
                tx_hash=event.transaction_hash,
            )
            raise ConflictError(
                f"Serial number {serial_number} was already issued on the ledger "
                f"as token {event.token_id}; reconcile instead of resubmitting",
                code="serial_on_ledger",
                tx_hash=event.transaction_hash,
                token_id=event.token_id,
            )

    # =========================================================================
    # Ledger and store
    # =========================================================================

    async def _submit(self, params: IssuanceParams) -> IssuanceOutcome:
        try:
            outcome = await asyncio.wait_for(
                self.ledger.submit_issuance(params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "issuance_submission_timeout",
                serial_number=params.serial_number,
                timeout=self.timeout,
            )
            raise LedgerUnavailableError(
                f"Ledger submission timed out after {self.timeout}s; the transaction "
                "may still be included, verify on the ledger before resubmitting"
            ) from e

        if outcome.success:
            return outcome

        kind = outcome.error_kind or LedgerErrorKind.UNKNOWN
        message = outcome.error_message or "Ledger submission failed"
        logger.error(
            "issuance_submission_failed",
            serial_number=params.serial_number,
            kind=kind.value,
            error=message,
            tx_hash=outcome.transaction_hash,
        )
        if kind.is_availability:
            raise LedgerUnavailableError(message, tx_hash=outcome.transaction_hash)
        raise LedgerRejectedError(message, tx_hash=outcome.transaction_hash, kind=kind.value)

    async def _persist(self, record: WarrantyRecord, outcome: IssuanceOutcome) -> WarrantyRecord:
        tx_hash = outcome.transaction_hash or ""
        try:
            return await self.store.insert(record)
        except ConflictError as e:
            logger.warning(
                "issuance_store_conflict",
                serial_number=record.serial_number,
                code=e.code,
                tx_hash=tx_hash,
            )
            raise ConflictError(e.message, code=e.code, tx_hash=tx_hash) from e
        except Exception as e:
            logger.error(
                "issuance_persistence_failed",
                serial_number=record.serial_number,
                token_id=record.token_id,
                tx_hash=tx_hash,
                error=str(e),
            )
            raise PersistenceError(
                f"Ledger accepted transaction {tx_hash} but the local record "
                f"could not be saved: {e}",
                tx_hash=tx_hash,
                serial_number=record.serial_number,
                token_id=record.token_id,
            ) from e
