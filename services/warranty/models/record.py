"""
Warranty Record
===============

Local mirror of an issued warranty.

Version: 0.1.0
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

# Longest coverage accepted at issuance (100 years).
MAX_PERIOD_DAYS = 36500


@dataclass
class WarrantyRecord:
    """
    Warranty record owned by the local store.

    serial_number never changes. token_id is assigned at most once, either at
    issuance or later by reconciliation.
    """

    serial_number: str
    product_name: str
    product_model: str
    manufacturer: str
    retailer: str
    customer_address: str
    warranty_period_days: int
    purchase_date: datetime
    token_id: int | None = None
    transaction_hash: str | None = None
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def expires_at(self) -> datetime:
        """End of coverage."""
        return self.purchase_date + timedelta(days=self.warranty_period_days)

    def is_locally_valid(self, now: datetime) -> bool:
        """Validity computed from local state only."""
        return self.is_active and self.expires_at > now
