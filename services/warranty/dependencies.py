"""
Warranty Service Dependencies
=============================

FastAPI dependency providers. The store and ledger are process-wide
singletons; set_store and set_ledger_client swap them for tests.

Version: 0.1.0
"""

from fastapi import Depends

from shared.blockchain import LedgerClient, get_ledger_client
from shared.config import StoreBackend, settings
from shared.database import PostgresClient
from shared.logging import get_logger
from services.warranty.services import (
    IdentifierResolver,
    IssuanceService,
    ValidityService,
    WarrantyLookupService,
)
from services.warranty.store import InMemoryWarrantyStore, SqlWarrantyStore, WarrantyStore

logger = get_logger(__name__)


# Global store instance
_store: WarrantyStore | None = None


def get_store() -> WarrantyStore:
    """Get the configured warranty store."""
    global _store

    if _store is None:
        backend = settings.warranty.store_backend
        if backend == StoreBackend.MEMORY:
            _store = InMemoryWarrantyStore()
        else:
            _store = SqlWarrantyStore(PostgresClient.get_session_factory())
        logger.info("warranty_store_initialized", backend=backend.value)

    return _store


def set_store(store: WarrantyStore) -> None:
    """Set a custom warranty store."""
    global _store
    _store = store


def reset_store() -> None:
    """Reset the store to be re-initialized."""
    global _store
    _store = None


def get_ledger() -> LedgerClient:
    return get_ledger_client()


def get_resolver(
    ledger: LedgerClient = Depends(get_ledger),
    store: WarrantyStore = Depends(get_store),
) -> IdentifierResolver:
    return IdentifierResolver(ledger, store)


def get_issuance_service(
    ledger: LedgerClient = Depends(get_ledger),
    store: WarrantyStore = Depends(get_store),
) -> IssuanceService:
    return IssuanceService(ledger, store)


def get_validity_service(
    ledger: LedgerClient = Depends(get_ledger),
    resolver: IdentifierResolver = Depends(get_resolver),
) -> ValidityService:
    return ValidityService(ledger, resolver)


def get_lookup_service(
    ledger: LedgerClient = Depends(get_ledger),
    store: WarrantyStore = Depends(get_store),
    resolver: IdentifierResolver = Depends(get_resolver),
) -> WarrantyLookupService:
    return WarrantyLookupService(ledger, store, resolver)
