"""
Tests for the SQL warranty store (SQLite via aiosqlite).
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
import pytest_asyncio

from shared.blockchain import MockLedgerClient
from shared.database import create_engine, create_session_factory, create_tables
from services.warranty.exceptions import ConflictError, NotFoundError
from services.warranty.models import WarrantyRecord
from services.warranty.services import IdentifierResolver
from services.warranty.store import SqlWarrantyStore


CUSTOMER = "0x" + "ab" * 20


def make_record(serial_number: str = "SN-1", **overrides: object) -> WarrantyRecord:
    values = {
        "serial_number": serial_number,
        "product_name": "Laptop Pro",
        "product_model": "LP-2024",
        "manufacturer": "Acme",
        "retailer": "Shop",
        "customer_address": CUSTOMER,
        "warranty_period_days": 365,
        "purchase_date": datetime(2024, 1, 1, tzinfo=UTC),
    }
    values.update(overrides)
    return WarrantyRecord(**values)


@pytest_asyncio.fixture
async def sql_store() -> AsyncGenerator[SqlWarrantyStore, None]:
    """Store over a fresh in-memory SQLite database."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield SqlWarrantyStore(create_session_factory(engine))
    await engine.dispose()


class TestSqlWarrantyStore:
    """Tests for SqlWarrantyStore."""

    @pytest.mark.asyncio
    async def test_insert_and_find(self, sql_store: SqlWarrantyStore) -> None:
        inserted = await sql_store.insert(make_record(token_id=1, transaction_hash="0x" + "aa" * 32))

        by_serial = await sql_store.find_by_serial("SN-1")
        by_token = await sql_store.find_by_token_id(1)

        assert by_serial is not None and by_token is not None
        assert by_serial.id == inserted.id == by_token.id
        assert by_serial.transaction_hash == "0x" + "aa" * 32
        assert by_serial.purchase_date == datetime(2024, 1, 1, tzinfo=UTC)
        assert by_serial.purchase_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_find_missing(self, sql_store: SqlWarrantyStore) -> None:
        assert await sql_store.find_by_serial("SN-404") is None
        assert await sql_store.find_by_token_id(404) is None

    @pytest.mark.asyncio
    async def test_token_id_out_of_column_range(self, sql_store: SqlWarrantyStore) -> None:
        """Test ids the BigInteger column cannot hold are misses, not driver errors."""
        await sql_store.insert(make_record(token_id=1))

        assert await sql_store.find_by_token_id(int("9" * 25)) is None
        assert await sql_store.find_by_token_id(-1) is None

    @pytest.mark.asyncio
    async def test_oversize_numeric_serial_resolves(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record("9" * 25))

        record = await IdentifierResolver(MockLedgerClient(), sql_store).resolve_record("9" * 25)

        assert record.serial_number == "9" * 25

    @pytest.mark.asyncio
    async def test_duplicate_serial(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record())

        with pytest.raises(ConflictError) as exc_info:
            await sql_store.insert(make_record())

        assert exc_info.value.code == "duplicate_serial"

    @pytest.mark.asyncio
    async def test_duplicate_token_id(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record("SN-1", token_id=1))

        with pytest.raises(ConflictError) as exc_info:
            await sql_store.insert(make_record("SN-2", token_id=1))

        assert exc_info.value.code == "duplicate_token_id"

    @pytest.mark.asyncio
    async def test_many_records_without_token(self, sql_store: SqlWarrantyStore) -> None:
        """Test that a missing token id does not collide with another."""
        await sql_store.insert(make_record("SN-1"))
        await sql_store.insert(make_record("SN-2"))

        assert len(await sql_store.find_by_customer(CUSTOMER)) == 2

    @pytest.mark.asyncio
    async def test_attach_token_id(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record())

        record = await sql_store.attach_token_id("SN-1", 7)

        assert record.token_id == 7
        assert (await sql_store.find_by_token_id(7)) is not None

    @pytest.mark.asyncio
    async def test_attach_is_idempotent(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record(token_id=7))

        record = await sql_store.attach_token_id("SN-1", 7)

        assert record.token_id == 7

    @pytest.mark.asyncio
    async def test_attach_never_overwrites(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record(token_id=7))

        with pytest.raises(ConflictError) as exc_info:
            await sql_store.attach_token_id("SN-1", 8)

        assert exc_info.value.code == "token_id_immutable"
        record = await sql_store.find_by_serial("SN-1")
        assert record is not None and record.token_id == 7

    @pytest.mark.asyncio
    async def test_attach_unknown_serial(self, sql_store: SqlWarrantyStore) -> None:
        with pytest.raises(NotFoundError):
            await sql_store.attach_token_id("SN-404", 1)

    @pytest.mark.asyncio
    async def test_find_by_customer_newest_first(self, sql_store: SqlWarrantyStore) -> None:
        await sql_store.insert(make_record("SN-1", created_at=datetime(2024, 1, 1, tzinfo=UTC)))
        await sql_store.insert(make_record("SN-2", created_at=datetime(2024, 6, 1, tzinfo=UTC)))
        await sql_store.insert(make_record("SN-3", customer_address="0x" + "cd" * 20))

        records = await sql_store.find_by_customer(CUSTOMER.upper().replace("0X", "0x"))

        assert [r.serial_number for r in records] == ["SN-2", "SN-1"]

    @pytest.mark.asyncio
    async def test_health_check(self, sql_store: SqlWarrantyStore) -> None:
        health = await sql_store.health_check()

        assert health["status"] == "healthy"
        assert health["backend"] == "sql"
