"""
Tests for the in-memory warranty store.
"""

from datetime import UTC, datetime

import pytest

from services.warranty.exceptions import ConflictError, NotFoundError
from services.warranty.models import WarrantyRecord
from services.warranty.store import InMemoryWarrantyStore


def make_record(serial_number: str = "SN-1", **overrides: object) -> WarrantyRecord:
    values = {
        "serial_number": serial_number,
        "product_name": "Laptop Pro",
        "product_model": "LP-2024",
        "manufacturer": "Acme",
        "retailer": "Shop",
        "customer_address": "0x" + "ab" * 20,
        "warranty_period_days": 365,
        "purchase_date": datetime(2024, 1, 1, tzinfo=UTC),
    }
    values.update(overrides)
    return WarrantyRecord(**values)


class TestInMemoryWarrantyStore:
    """Tests for InMemoryWarrantyStore."""

    @pytest.mark.asyncio
    async def test_returns_copies(self, store: InMemoryWarrantyStore) -> None:
        """Test callers cannot mutate stored records."""
        await store.insert(make_record())

        record = await store.find_by_serial("SN-1")
        assert record is not None
        record.token_id = 99

        assert await store.find_by_token_id(99) is None
        stored = await store.find_by_serial("SN-1")
        assert stored is not None and stored.token_id is None

    @pytest.mark.asyncio
    async def test_duplicate_token_id(self, store: InMemoryWarrantyStore) -> None:
        await store.insert(make_record("SN-1", token_id=1))

        with pytest.raises(ConflictError) as exc_info:
            await store.insert(make_record("SN-2", token_id=1))

        assert exc_info.value.code == "duplicate_token_id"

    @pytest.mark.asyncio
    async def test_attach(self, store: InMemoryWarrantyStore) -> None:
        await store.insert(make_record())

        attached = await store.attach_token_id("SN-1", 3)
        again = await store.attach_token_id("SN-1", 3)

        assert attached.token_id == again.token_id == 3
        assert (await store.find_by_token_id(3)) is not None

    @pytest.mark.asyncio
    async def test_attach_conflicts(self, store: InMemoryWarrantyStore) -> None:
        await store.insert(make_record("SN-1", token_id=1))
        await store.insert(make_record("SN-2"))

        with pytest.raises(ConflictError) as exc_info:
            await store.attach_token_id("SN-1", 2)
        assert exc_info.value.code == "token_id_immutable"

        with pytest.raises(ConflictError) as exc_info:
            await store.attach_token_id("SN-2", 1)
        assert exc_info.value.code == "duplicate_token_id"

        with pytest.raises(NotFoundError):
            await store.attach_token_id("SN-404", 5)
