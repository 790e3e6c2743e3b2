"""
Order Service — 注文ストア

システム・オブ・レコード。注文 1 件の INSERT と、商品 ID による検索だけを提供する。
SQLAlchemy の例外はすべて PersistenceFailure に変換して呼び出し元へ返す。
"""

from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import sessionmaker

from .errors import PersistenceFailure
from .models import Order, OrderStatus


class OrderStore(Protocol):
    async def create(self, order: Order) -> None: ...

    async def get_by_product_id(self, product_id: str) -> list[Order]: ...


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS orders (
        id          VARCHAR(36) PRIMARY KEY,
        product_id  TEXT NOT NULL,
        total_price DOUBLE PRECISION NOT NULL,
        quantity    INTEGER NOT NULL,
        status      VARCHAR(16) NOT NULL,
        created_at  TIMESTAMP WITH TIME ZONE NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_orders_product_id ON orders (product_id)",
)


async def ensure_schema(engine: AsyncEngine) -> None:
    """起動時に orders テーブルを作成する (既にあれば何もしない)。"""
    async with engine.begin() as conn:
        for statement in SCHEMA:
            await conn.execute(text(statement))


class SqlOrderStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def create(self, order: Order) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(
                    text("""
                        INSERT INTO orders
                            (id, product_id, total_price, quantity, status, created_at)
                        VALUES
                            (:id, :product_id, :total_price, :quantity, :status, :created_at)
                    """),
                    {
                        "id": order.id,
                        "product_id": order.product_id,
                        "total_price": order.total_price,
                        "quantity": order.quantity,
                        "status": order.status.value,
                        "created_at": order.created_at,
                    },
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"failed to persist order {order.id}: {e}") from e

    async def get_by_product_id(self, product_id: str) -> list[Order]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    text("""
                        SELECT id, product_id, total_price, quantity, status, created_at
                        FROM orders
                        WHERE product_id = :product_id
                    """),
                    {"product_id": product_id},
                )
                rows = result.fetchall()
        except SQLAlchemyError as e:
            raise PersistenceFailure(
                f"failed to load orders for product {product_id}: {e}"
            ) from e
        return [_row_to_order(row) for row in rows]


def _row_to_order(row) -> Order:
    return Order(
        id=str(row.id),
        product_id=row.product_id,
        total_price=float(row.total_price),
        quantity=row.quantity,
        status=OrderStatus(row.status),
        created_at=row.created_at,
    )
