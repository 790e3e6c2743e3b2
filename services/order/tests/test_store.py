import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from order_service.errors import PersistenceFailure
from order_service.models import Order, OrderStatus
from order_service.store import SqlOrderStore, ensure_schema

pytestmark = pytest.mark.anyio


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}"


class TestSqlOrderStore:
    async def test_create_and_query_by_product(self, database_url):
        engine = create_async_engine(database_url)
        await ensure_schema(engine)
        store = SqlOrderStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

        first = Order.place("p1", 10.0, 1)
        second = Order.place("p1", 10.0, 2)
        other = Order.place("p2", 3.0, 1)
        for order in (first, second, other):
            await store.create(order)

        orders = await store.get_by_product_id("p1")

        assert [o.id for o in orders] == [first.id, second.id]
        assert orders[1].total_price == 20.0
        assert orders[1].quantity == 2
        assert orders[1].status is OrderStatus.PENDING
        assert await store.get_by_product_id("unknown") == []
        await engine.dispose()

    async def test_ensure_schema_is_idempotent(self, database_url):
        engine = create_async_engine(database_url)
        await ensure_schema(engine)
        await ensure_schema(engine)
        await engine.dispose()

    async def test_duplicate_id_is_persistence_failure(self, database_url):
        engine = create_async_engine(database_url)
        await ensure_schema(engine)
        store = SqlOrderStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        order = Order.place("p1", 10.0, 1)
        await store.create(order)

        with pytest.raises(PersistenceFailure):
            await store.create(order)
        await engine.dispose()

    async def test_missing_table_is_persistence_failure(self, database_url):
        engine = create_async_engine(database_url)
        store = SqlOrderStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

        with pytest.raises(PersistenceFailure):
            await store.get_by_product_id("p1")
        with pytest.raises(PersistenceFailure):
            await store.create(Order.place("p1", 10.0, 1))
        await engine.dispose()

    async def test_loads_rows_transitioned_elsewhere(self, database_url):
        engine = create_async_engine(database_url)
        await ensure_schema(engine)
        store = SqlOrderStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        order = Order.place("p1", 10.0, 1)
        await store.create(order)
        async with engine.begin() as conn:
            await conn.execute(
                text("UPDATE orders SET status = 'CONFIRMED' WHERE id = :id"),
                {"id": order.id},
            )

        (loaded,) = await store.get_by_product_id("p1")

        assert loaded.id == order.id
        assert loaded.status is OrderStatus.CONFIRMED
        await engine.dispose()
