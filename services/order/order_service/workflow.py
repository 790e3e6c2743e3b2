"""
Order Workflow — 注文作成と cache-aside 読み出し

  注文作成:
  ┌─────────────────────────────────────────────────────────┐
  │  1. カタログで単価と在庫数を確認                          │
  │     └─ 失敗 / 在庫不足 → エラーを返す (状態は変えない)     │
  │  2. 注文をストアに保存                                    │
  │     └─ 失敗 → エラーを返す (イベントは発行しない)          │
  │  3. order.created を発行                                  │
  │     └─ 失敗 → ログのみ (注文はそのまま返す)                │
  └─────────────────────────────────────────────────────────┘

  保存と発行は 1 つのトランザクションではない (dual write)。
  注文がソース・オブ・トゥルースで、イベントはベストエフォートの通知。

  注文一覧:
  ┌─────────────────────────────────────────────────────────┐
  │  1. キャッシュを確認 (ヒットすれば空リストでもそのまま返す) │
  │     └─ ミス / キャッシュ障害 → ストアへ                    │
  │  2. ストアから読み出す (失敗はエラーを返す)                │
  │  3. 結果をキャッシュに書く (失敗はログのみ)                │
  └─────────────────────────────────────────────────────────┘

既知の制約: 同じ商品への同時注文は、どちらも在庫確認を通過しうる。
在庫の引き当てはカタログ側の責務なので、ここではロックしない。
"""

import logging

from .cache import OrderReadCache, order_cache_key
from .catalog import ProductInfoClient
from .errors import CacheFailure, InsufficientStock, InvalidQuantity, NotificationFailure
from .models import Order
from .publisher import EventPublisher
from .store import OrderStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 60


class OrderWorkflow:
    def __init__(
        self,
        catalog: ProductInfoClient,
        store: OrderStore,
        cache: OrderReadCache,
        publisher: EventPublisher,
        cache_ttl: int = DEFAULT_CACHE_TTL,
    ):
        self.catalog = catalog
        self.store = store
        self.cache = cache
        self.publisher = publisher
        self.cache_ttl = cache_ttl

    async def create_order(self, product_id: str, quantity: int) -> Order:
        if quantity < 1:
            raise InvalidQuantity(quantity)

        # ── Step 1: 在庫を確認 ──────────────────────
        product = await self.catalog.fetch(product_id)
        if product.available_qty < quantity:
            raise InsufficientStock(product_id, quantity, product.available_qty)

        # ── Step 2: 注文を保存 ──────────────────────
        order = Order.place(product_id, product.unit_price, quantity)
        await self.store.create(order)

        # ── Step 3: order.created を発行 ────────────
        try:
            await self.publisher.publish(order.product_id, order.quantity)
        except NotificationFailure:
            logger.warning(
                "Failed to publish order.created event for order %s",
                order.id,
                exc_info=True,
            )
        else:
            logger.info("Published order.created event for product %s", order.product_id)

        return order

    async def list_orders_by_product(self, product_id: str) -> list[Order]:
        key = order_cache_key(product_id)

        try:
            cached = await self.cache.get(key)
        except CacheFailure:
            logger.warning("Cache error on get %s", key, exc_info=True)
            cached = None

        if cached is not None:
            logger.debug("Returning cached orders for %s", product_id)
            return cached

        logger.debug("Fetching orders for %s from store", product_id)
        orders = await self.store.get_by_product_id(product_id)

        try:
            await self.cache.set(key, orders, self.cache_ttl)
        except CacheFailure:
            logger.warning("Cache error on set %s", key, exc_info=True)

        return orders
