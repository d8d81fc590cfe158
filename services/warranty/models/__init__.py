"""Warranty domain records, ORM model and API schemas."""

from services.warranty.models.events import WarrantyIssuedEvent
from services.warranty.models.orm import WarrantyModel
from services.warranty.models.record import MAX_PERIOD_DAYS, WarrantyRecord
from services.warranty.models.schemas import (
    CustomerWarranties,
    IssuanceRequest,
    IssuanceResult,
    LedgerWarrantyOut,
    ProductSummary,
    RecordSummary,
    ResolutionSource,
    SerialResolution,
    ValidationSource,
    ValidityResult,
    WarrantyDetails,
    WarrantyRecordOut,
)

__all__ = [
    "MAX_PERIOD_DAYS",
    "WarrantyIssuedEvent",
    "WarrantyModel",
    "WarrantyRecord",
    "CustomerWarranties",
    "IssuanceRequest",
    "IssuanceResult",
    "LedgerWarrantyOut",
    "ProductSummary",
    "RecordSummary",
    "ResolutionSource",
    "SerialResolution",
    "ValidationSource",
    "ValidityResult",
    "WarrantyDetails",
    "WarrantyRecordOut",
]
