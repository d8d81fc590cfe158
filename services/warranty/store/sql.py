"""
SQL Warranty Store
==================

Async SQLAlchemy store for warranty records (PostgreSQL in production,
SQLite in tests). Uniqueness is enforced by the table's constraints.

Version: 0.1.0
"""

import time
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.warranty.exceptions import ConflictError, NotFoundError, StoreError
from services.warranty.models.orm import MAX_TOKEN_ID, WarrantyModel
from services.warranty.models.record import WarrantyRecord
from shared.logging import get_logger

logger = get_logger(__name__)


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _to_record(row: WarrantyModel) -> WarrantyRecord:
    return WarrantyRecord(
        id=row.id,
        serial_number=row.serial_number,
        product_name=row.product_name,
        product_model=row.product_model,
        manufacturer=row.manufacturer,
        retailer=row.retailer,
        customer_address=row.customer_address,
        warranty_period_days=row.warranty_period_days,
        purchase_date=_aware(row.purchase_date),
        token_id=row.token_id,
        transaction_hash=row.transaction_hash,
        is_active=row.is_active,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _conflict(error: IntegrityError, record: WarrantyRecord) -> ConflictError:
    if "token_id" in str(error.orig):
        return ConflictError(
            f"Token ID {record.token_id} is already assigned",
            code="duplicate_token_id",
        )
    return ConflictError(
        f"Warranty with serial number {record.serial_number} already exists",
        code="duplicate_serial",
    )


class SqlWarrantyStore:
    """
    Warranty store over an async SQLAlchemy session factory.

    Each operation runs in its own session and transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _fetch_one(self, *criteria: Any) -> WarrantyRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(WarrantyModel).where(*criteria))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Warranty lookup failed: {e}") from e
        return _to_record(row) if row else None

    async def find_by_serial(self, serial_number: str) -> WarrantyRecord | None:
        return await self._fetch_one(WarrantyModel.serial_number == serial_number)

    async def find_by_token_id(self, token_id: int) -> WarrantyRecord | None:
        if not 0 <= token_id <= MAX_TOKEN_ID:
            return None
        return await self._fetch_one(WarrantyModel.token_id == token_id)

    async def find_by_customer(self, customer_address: str) -> list[WarrantyRecord]:
        query = (
            select(WarrantyModel)
            .where(WarrantyModel.customer_address == customer_address.lower())
            .order_by(WarrantyModel.created_at.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Customer lookup failed: {e}") from e
        return [_to_record(row) for row in rows]

    async def insert(self, record: WarrantyRecord) -> WarrantyRecord:
        row = WarrantyModel(
            id=record.id,
            serial_number=record.serial_number,
            product_name=record.product_name,
            product_model=record.product_model,
            manufacturer=record.manufacturer,
            retailer=record.retailer,
            customer_address=record.customer_address,
            warranty_period_days=record.warranty_period_days,
            purchase_date=record.purchase_date,
            token_id=record.token_id,
            transaction_hash=record.transaction_hash,
            is_active=record.is_active,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except IntegrityError as e:
            raise _conflict(e, record) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Warranty insert failed: {e}") from e

        logger.debug("sql_record_inserted", serial_number=record.serial_number)
        return _to_record(row)

    async def attach_token_id(self, serial_number: str, token_id: int) -> WarrantyRecord:
        # Conditional update: a token id, once set, is never overwritten
        statement = (
            update(WarrantyModel)
            .where(
                WarrantyModel.serial_number == serial_number,
                WarrantyModel.token_id.is_(None),
            )
            .values(token_id=token_id, updated_at=datetime.now(UTC))
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                await session.commit()
                updated = result.rowcount
        except IntegrityError as e:
            raise ConflictError(
                f"Token ID {token_id} is already assigned",
                code="duplicate_token_id",
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Token attach failed: {e}") from e

        record = await self.find_by_serial(serial_number)
        if record is None:
            raise NotFoundError(f"No warranty with serial number {serial_number}")
        if not updated and record.token_id != token_id:
            raise ConflictError(
                f"Warranty {serial_number} is already anchored to token {record.token_id}",
                code="token_id_immutable",
            )
        return record

    async def health_check(self) -> dict[str, Any]:
        try:
            start = time.perf_counter()
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000
        except SQLAlchemyError as e:
            logger.error("sql_store_health_check_failed", error=str(e))
            return {"status": "unhealthy", "backend": "sql", "error": str(e)}
        return {"status": "healthy", "backend": "sql", "latency_ms": round(latency_ms, 2)}
