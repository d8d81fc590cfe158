"""
Warranty API Endpoints.

Issuance, lookup, validity and serial resolution.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from shared.blockchain import LedgerClient
from shared.logging import get_logger
from shared.models.common import BaseResponse
from services.warranty.dependencies import (
    get_issuance_service,
    get_ledger,
    get_lookup_service,
    get_resolver,
    get_store,
    get_validity_service,
)
from services.warranty.exceptions import (
    ConflictError,
    LedgerError,
    LedgerRejectedError,
    LedgerUnavailableError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    WarrantyError,
)
from services.warranty.models import (
    CustomerWarranties,
    IssuanceRequest,
    IssuanceResult,
    SerialResolution,
    ValidityResult,
    WarrantyDetails,
)
from services.warranty.services import (
    IdentifierResolver,
    IssuanceService,
    ValidityService,
    WarrantyLookupService,
)
from services.warranty.store import WarrantyStore

logger = get_logger(__name__)

router = APIRouter(prefix="/warranty", tags=["warranties"])

# Serials that GET /warranty/{identifier} cannot reach because a fixed
# route of the same name is matched first.
RESERVED_SERIALS = frozenset({"health"})


ERROR_STATUS: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    LedgerUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    LedgerRejectedError: status.HTTP_502_BAD_GATEWAY,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_error(error: WarrantyError | LedgerError) -> HTTPException:
    """Map a service error to an HTTPException with an ErrorResponse body."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break

    details: dict[str, Any] = dict(getattr(error, "details", {}))
    tx_hash = getattr(error, "tx_hash", None)
    if tx_hash:
        details["tx_hash"] = tx_hash

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("warranty_request_failed", error_code=error.code, error=error.message, **details)

    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.message,
            "error_code": error.code,
            "details": details or None,
        },
    )


# ============================================================================
# Health
# ============================================================================


@router.get("/health", response_model=BaseResponse[dict[str, Any]])
async def warranty_health(
    ledger: LedgerClient = Depends(get_ledger),
    store: WarrantyStore = Depends(get_store),
) -> BaseResponse[dict[str, Any]]:
    """Ledger and store health, including contract deployment."""
    ledger_health = await ledger.health_check()
    store_health = await store.health_check()
    healthy = all(h.get("status") == "healthy" for h in (ledger_health, store_health))

    return BaseResponse(
        success=healthy,
        data={"ledger": ledger_health, "store": store_health},
        message="Service is healthy" if healthy else "Service is degraded",
    )


# ============================================================================
# Issuance
# ============================================================================


@router.post(
    "/issue",
    response_model=BaseResponse[IssuanceResult],
    status_code=status.HTTP_201_CREATED,
    summary="Issue a warranty",
)
async def issue_warranty(
    request: IssuanceRequest,
    service: IssuanceService = Depends(get_issuance_service),
) -> BaseResponse[IssuanceResult]:
    """
    Issue a warranty on the ledger and record it locally.

    A result without a tokenId carries a warning; the identifier can be
    recovered later through the serial resolution endpoint.
    """
    serial_number = (request.serial_number or "").strip()
    try:
        if serial_number in RESERVED_SERIALS:
            raise ValidationError(
                f"Serial number '{serial_number}' is reserved",
                code="reserved_serial",
                field="serialNumber",
            )
        result = await service.issue(request)
    except (WarrantyError, LedgerError) as e:
        raise to_http_error(e) from e

    return BaseResponse(
        data=result,
        message="Warranty issued successfully",
        warning=result.warning,
    )


# ============================================================================
# Lookups
# ============================================================================


@router.get(
    "/serial/{serial_number}/token",
    response_model=BaseResponse[SerialResolution],
    summary="Resolve a serial number to its token id",
)
async def find_token_by_serial(
    serial_number: str,
    resolver: IdentifierResolver = Depends(get_resolver),
) -> BaseResponse[SerialResolution]:
    """Local index first, then the ledger's WarrantyIssued history."""
    try:
        resolution = await resolver.token_id_for_serial(serial_number)
    except (WarrantyError, LedgerError) as e:
        raise to_http_error(e) from e

    return BaseResponse(data=resolution)


@router.get(
    "/user/{address}",
    response_model=BaseResponse[CustomerWarranties],
    summary="List a customer's warranties",
)
async def get_user_warranties(
    address: str,
    service: WarrantyLookupService = Depends(get_lookup_service),
) -> BaseResponse[CustomerWarranties]:
    try:
        warranties = await service.list_customer_warranties(address)
    except (WarrantyError, LedgerError) as e:
        raise to_http_error(e) from e

    return BaseResponse(data=warranties)


@router.get(
    "/{identifier}/validate",
    response_model=BaseResponse[ValidityResult],
    summary="Check warranty validity",
)
async def validate_warranty(
    identifier: str,
    service: ValidityService = Depends(get_validity_service),
) -> BaseResponse[ValidityResult]:
    """
    Check whether a warranty is currently valid.

    validationSource tells whether the ledger or the local record answered.
    """
    try:
        result = await service.check(identifier)
    except (WarrantyError, LedgerError) as e:
        raise to_http_error(e) from e

    return BaseResponse(data=result)


@router.get(
    "/{identifier}",
    response_model=BaseResponse[WarrantyDetails],
    summary="Get warranty by token id or serial number",
)
async def get_warranty(
    identifier: str,
    service: WarrantyLookupService = Depends(get_lookup_service),
) -> BaseResponse[WarrantyDetails]:
    try:
        details = await service.get_warranty(identifier)
    except (WarrantyError, LedgerError) as e:
        raise to_http_error(e) from e

    return BaseResponse(data=details)
