"""
Warranty API Schemas
====================

Pydantic request/response models for the warranty core.

Fields are snake_case in Python and camelCase on the wire.

Version: 0.1.0
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.blockchain import LedgerWarrantyView
from services.warranty.models.record import WarrantyRecord


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidationSource(str, Enum):
    """Which system of record produced a validity answer."""

    LEDGER = "ledger"
    LOCAL = "local"


class ResolutionSource(str, Enum):
    """Where a serial number's token id was found."""

    LOCAL = "local"
    LEDGER = "ledger"


class IssuanceRequest(CamelModel):
    """
    Request to issue a warranty.

    Required fields are typed optional so the orchestrator can report
    missing input in its own precondition order.
    """

    serial_number: str | None = None
    product_name: str | None = None
    product_model: str | None = None
    manufacturer: str | None = None
    retailer: str | None = None
    customer_address: str | None = None
    warranty_period_days: int | None = None
    manufacturer_address: str | None = None
    retailer_address: str | None = None


class RecordSummary(CamelModel):
    """Short form of a persisted record."""

    id: str
    serial_number: str
    product_name: str
    customer_address: str

    @classmethod
    def from_record(cls, record: WarrantyRecord) -> RecordSummary:
        return cls(
            id=record.id,
            serial_number=record.serial_number,
            product_name=record.product_name,
            customer_address=record.customer_address,
        )


class IssuanceResult(CamelModel):
    """Successful issuance."""

    transaction_hash: str
    gas_used: int | None = None
    block_number: int | None = None
    product: RecordSummary
    token_id: int | None = None
    token_id_strategy: str | None = None
    warning: str | None = None


class WarrantyRecordOut(CamelModel):
    """Full local record."""

    id: str
    serial_number: str
    product_name: str
    product_model: str
    manufacturer: str
    retailer: str
    customer_address: str
    warranty_period_days: int
    purchase_date: datetime
    expires_at: datetime
    token_id: int | None = None
    transaction_hash: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: WarrantyRecord) -> WarrantyRecordOut:
        return cls(
            id=record.id,
            serial_number=record.serial_number,
            product_name=record.product_name,
            product_model=record.product_model,
            manufacturer=record.manufacturer,
            retailer=record.retailer,
            customer_address=record.customer_address,
            warranty_period_days=record.warranty_period_days,
            purchase_date=record.purchase_date,
            expires_at=record.expires_at,
            token_id=record.token_id,
            transaction_hash=record.transaction_hash,
            is_active=record.is_active,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class LedgerWarrantyOut(CamelModel):
    """Live ledger view of a warranty."""

    product_name: str
    product_model: str
    serial_number: str
    purchase_date: datetime
    expiry_date: datetime
    manufacturer: str
    retailer: str
    is_valid: bool

    @classmethod
    def from_view(cls, view: LedgerWarrantyView) -> LedgerWarrantyOut:
        return cls(**view.model_dump())


class WarrantyDetails(CamelModel):
    """Local record merged with the ledger's live view, when reachable."""

    product: WarrantyRecordOut
    ledger: LedgerWarrantyOut | None = None
    has_ledger_data: bool = False


class ProductSummary(CamelModel):
    """Product attributes reported alongside validity."""

    name: str
    model: str
    purchase_date: datetime
    warranty_period_days: int
    expires_at: datetime


class ValidityResult(CamelModel):
    """Answer to "is this warranty currently valid"."""

    identifier: str
    token_id: int | None = None
    serial_number: str
    is_valid: bool
    validation_source: ValidationSource
    product: ProductSummary


class SerialResolution(CamelModel):
    """Token id found for a serial number."""

    serial_number: str
    token_id: int
    source: ResolutionSource
    record_id: str | None = None


class CustomerWarranties(CamelModel):
    """All warranties of one customer address."""

    address: str
    warranties: list[WarrantyRecordOut] = Field(default_factory=list)
    count: int = 0
