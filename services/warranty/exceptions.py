"""
Warranty service exceptions.

Ledger-side failures (LedgerUnavailableError, LedgerRejectedError) come from
the ledger adapter and are re-exported here so callers import one taxonomy.
"""

from typing import Any

from shared.blockchain.exceptions import (
    EventDecodeError,
    LedgerError,
    LedgerRejectedError,
    LedgerUnavailableError,
)


class WarrantyError(Exception):
    """Base for all warranty service errors."""

    code = "warranty_error"

    def __init__(self, message: str, code: str | None = None, **details: Any) -> None:
        self.message = message
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(message)


class ValidationError(WarrantyError):
    """Malformed or missing input. Raised before any ledger interaction."""

    code = "validation_error"


class ConflictError(WarrantyError):
    """Duplicate serial number or ledger identifier."""

    code = "conflict"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        tx_hash: str | None = None,
        **details: Any,
    ) -> None:
        self.tx_hash = tx_hash
        super().__init__(message, code, **details)


class NotFoundError(WarrantyError):
    """No record matches the identifier by any lookup strategy."""

    code = "not_found"


class StoreError(WarrantyError):
    """Local store failure other than a uniqueness violation."""

    code = "store_error"


class PersistenceError(WarrantyError):
    """
    The ledger accepted an issuance but the local record could not be saved.

    The ledger has advanced and the local mirror has not; tx_hash identifies
    the transaction to reconcile by hand.
    """

    code = "persistence_failed"

    def __init__(self, message: str, tx_hash: str, **details: Any) -> None:
        self.tx_hash = tx_hash
        super().__init__(message, tx_hash=tx_hash, **details)


class IdentifierUnresolved(WarrantyError):
    """Warning attached to a successful issuance whose token id was not recovered."""

    code = "identifier_unresolved"

    def __init__(self, tx_hash: str | None) -> None:
        self.tx_hash = tx_hash
        super().__init__(
            "Token ID could not be extracted from the transaction; "
            "the record was saved without it",
            tx_hash=tx_hash,
        )


__all__ = [
    "WarrantyError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "PersistenceError",
    "IdentifierUnresolved",
    "LedgerError",
    "LedgerUnavailableError",
    "LedgerRejectedError",
    "EventDecodeError",
]
