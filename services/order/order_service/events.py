"""
Order Service — イベント定義

下流のコンシューマへ通知する order.created イベント。
コンシューマはメッセージパターン形式 {"pattern": ..., "data": ...} を期待する。
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ORDER_CREATED = "order.created"


class OrderCreated(BaseModel):
    """注文が作成された"""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    product_id: str
    quantity: int

    def to_message(self) -> dict:
        return {
            "pattern": ORDER_CREATED,
            "data": self.model_dump(by_alias=True),
        }
