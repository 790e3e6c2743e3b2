"""
Order Service — 例外定義

ソース・オブ・トゥルース経路(カタログ検証・永続化)の失敗は呼び出し元へ返す。
ベストエフォート経路(キャッシュ・通知)の失敗はログに残して握りつぶす。

  OrderError
  ├─ InvalidQuantity       (返す)
  ├─ ProductUnavailable    (返す)
  ├─ InsufficientStock     (返す)
  ├─ PersistenceFailure    (返す)
  ├─ NotificationFailure   (ログのみ)
  └─ CacheFailure          (ログのみ)
"""


class OrderError(Exception):
    """注文サービスの例外の基底クラス"""


class InvalidQuantity(OrderError):
    """数量が 1 未満"""

    def __init__(self, quantity: int) -> None:
        super().__init__(f"quantity must be a positive integer, got {quantity}")
        self.quantity = quantity


class ProductUnavailable(OrderError):
    """商品が見つからない、またはカタログサービスが応答しない"""

    def __init__(self, product_id: str) -> None:
        super().__init__("product not found or service unavailable")
        self.product_id = product_id


class InsufficientStock(OrderError):
    """在庫不足"""

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__("insufficient stock")
        self.product_id = product_id
        self.requested = requested
        self.available = available


class PersistenceFailure(OrderError):
    """注文ストアへの書き込み・読み出しに失敗した"""


class NotificationFailure(OrderError):
    """order.created イベントの発行に失敗した"""


class CacheFailure(OrderError):
    """キャッシュの読み書きに失敗した"""
