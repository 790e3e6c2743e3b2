import json

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from order_service.cache import InMemoryOrderCache
from order_service.errors import (
    CacheFailure,
    NotificationFailure,
    PersistenceFailure,
    ProductUnavailable,
)
from order_service.models import ProductSnapshot
from order_service.workflow import OrderWorkflow

CATALOG = {
    "valid-product": {"id": "valid-product", "name": "Test", "price": "10.0", "qty": 100},
    "no-stock": {"id": "no-stock", "name": "Test", "price": "10.0", "qty": 1},
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


def catalog_handler(request: httpx.Request) -> httpx.Response:
    product_id = request.url.path.removeprefix("/products/")
    if product_id in CATALOG:
        return httpx.Response(200, json=CATALOG[product_id])
    return httpx.Response(404, json={"message": "Product not found"})


class StubCatalog:
    def __init__(self, products: dict[str, dict] | None = None):
        products = CATALOG if products is None else products
        self.products = {
            product_id: ProductSnapshot.model_validate(data)
            for product_id, data in products.items()
        }
        self.calls: list[str] = []

    async def fetch(self, product_id: str) -> ProductSnapshot:
        self.calls.append(product_id)
        if product_id not in self.products:
            raise ProductUnavailable(product_id)
        return self.products[product_id]


class RecordingStore:
    def __init__(self):
        self.created = []
        self.get_calls: list[str] = []
        self.fail_create = False
        self.fail_get = False

    async def create(self, order) -> None:
        if self.fail_create:
            raise PersistenceFailure("database is down")
        self.created.append(order)

    async def get_by_product_id(self, product_id: str):
        self.get_calls.append(product_id)
        if self.fail_get:
            raise PersistenceFailure("database is down")
        return [o for o in self.created if o.product_id == product_id]


class RecordingPublisher:
    def __init__(self):
        self.published: list[tuple[str, int]] = []
        self.fail = False

    async def publish(self, product_id: str, quantity: int) -> None:
        if self.fail:
            raise NotificationFailure("broker is down")
        self.published.append((product_id, quantity))


class FlakyCache(InMemoryOrderCache):
    def __init__(self):
        super().__init__()
        self.fail_get = False
        self.fail_set = False
        self.set_calls = []

    async def get(self, key):
        if self.fail_get:
            raise CacheFailure("cache is down")
        return await super().get(key)

    async def set(self, key, orders, ttl):
        self.set_calls.append((key, list(orders), ttl))
        if self.fail_set:
            raise CacheFailure("cache is down")
        await super().set(key, orders, ttl)


class FakeRedis:
    """redis.asyncio.Redis(decode_responses=True) の get / set / publish だけを真似る"""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.expirations: dict[str, int] = {}
        self.published: list[tuple[str, dict]] = []
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def get(self, key):
        self._check()
        value = self.values.get(key)
        if isinstance(value, bytes):
            # decode_responses=True と同じく UTF-8 で復号する
            return value.decode()
        return value

    async def set(self, key, value, ex=None):
        self._check()
        if isinstance(value, bytes):
            value = value.decode()
        self.values[key] = value
        self.expirations[key] = ex
        return True

    async def publish(self, channel, message):
        self._check()
        self.published.append((channel, json.loads(message)))
        return 0


@pytest.fixture
def catalog_transport():
    return httpx.MockTransport(catalog_handler)


@pytest.fixture
def catalog():
    return StubCatalog()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def cache():
    return FlakyCache()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def workflow(catalog, store, cache, publisher):
    return OrderWorkflow(catalog, store, cache, publisher, cache_ttl=30)
