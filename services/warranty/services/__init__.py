"""Warranty core services."""

from services.warranty.services.issuance import IssuanceService, build_metadata_uri
from services.warranty.services.lookup import WarrantyLookupService
from services.warranty.services.recovery import (
    RecoveryState,
    TokenIdRecovery,
    TokenIdResolution,
)
from services.warranty.services.resolution import IdentifierResolver
from services.warranty.services.validity import ValidityService

__all__ = [
    "IssuanceService",
    "build_metadata_uri",
    "WarrantyLookupService",
    "RecoveryState",
    "TokenIdRecovery",
    "TokenIdResolution",
    "IdentifierResolver",
    "ValidityService",
]
