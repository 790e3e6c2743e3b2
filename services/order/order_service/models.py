"""
Order Service — ドメインモデル

Order は生成後に変更しない(frozen)。
ステータスは PENDING で作られ、以降の遷移は外部サービスの責務。
ProductSnapshot はカタログから毎回取得する一時的なビューで、永続化もキャッシュもしない。
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    # このサービスが書くのは PENDING のみ。
    # CONFIRMED / CANCELLED は外部サービスが更新した行を読み出すために必要。
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Order(BaseModel):
    """永続化される注文"""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    product_id: str
    total_price: float
    quantity: int
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime

    @classmethod
    def place(cls, product_id: str, unit_price: float, quantity: int) -> "Order":
        """
        新しい注文を組み立てる。

        合計金額はこの時点のカタログ単価から計算し、以後は再計算しない。
        """
        return cls(
            id=str(uuid4()),
            product_id=product_id,
            total_price=unit_price * quantity,
            quantity=quantity,
            status=OrderStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )


class ProductSnapshot(BaseModel):
    """カタログサービスが返す商品情報 (price は数値文字列の場合もある)"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    unit_price: float = Field(alias="price")
    available_qty: int = Field(alias="qty")


order_list_adapter = TypeAdapter(list[Order])
