"""
Warranty Database Model
=======================

SQLAlchemy ORM model for locally mirrored warranties.

Version: 0.1.0
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    CheckConstraint,
)

from shared.database.postgres import Base

# Largest token id the BigInteger column holds.
MAX_TOKEN_ID = 2**63 - 1


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WarrantyModel(Base):
    """
    SQLAlchemy model for warranty records.

    Unique on serial_number and on token_id; the unique index on token_id
    ignores NULLs, so records awaiting reconciliation do not collide.
    """

    __tablename__ = "warranties"
    __table_args__ = (
        Index("ix_warranties_customer", "customer_address"),
        Index("ix_warranties_created", "created_at"),
        CheckConstraint("warranty_period_days > 0", name="check_warranty_period"),
    )

    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Product
    serial_number = Column(String(255), nullable=False, unique=True)
    product_name = Column(String(255), nullable=False)
    product_model = Column(String(255), nullable=False)
    manufacturer = Column(String(255), nullable=False, default="Unknown")
    retailer = Column(String(255), nullable=False, default="Unknown")

    # Coverage
    customer_address = Column(String(42), nullable=False)
    warranty_period_days = Column(Integer, nullable=False, default=365)
    purchase_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    # Ledger anchor
    token_id = Column(BigInteger, unique=True, nullable=True)
    transaction_hash = Column(String(66))

    # Audit fields
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<WarrantyModel {self.serial_number} token={self.token_id}>"
