"""
Order Service — FastAPI エントリーポイント

  POST /orders                       注文作成
  GET  /orders/product/{product_id}  商品ごとの注文一覧 (cache-aside)

接続 (DB エンジン・Redis・HTTP クライアント) は lifespan が所有し、
起動途中で失敗した場合も作成済みのものは閉じる。
OrderWorkflow はそれらを借りるだけで、閉じることはしない。
"""

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
import redis.asyncio as aioredis
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .cache import InMemoryOrderCache, RedisOrderCache
from .catalog import HttpProductInfoClient
from .config import Settings
from .errors import (
    InsufficientStock,
    InvalidQuantity,
    OrderError,
    PersistenceFailure,
    ProductUnavailable,
)
from .models import Order
from .publisher import RedisEventPublisher
from .store import SqlOrderStore, ensure_schema
from .workflow import OrderWorkflow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    async with AsyncExitStack() as stack:
        engine = create_async_engine(settings.database_url, echo=False)
        stack.push_async_callback(engine.dispose)
        await ensure_schema(engine)
        async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        redis_pool = aioredis.from_url(settings.redis_url, decode_responses=True)
        stack.push_async_callback(redis_pool.aclose)
        await redis_pool.ping()

        http_client = await stack.enter_async_context(
            httpx.AsyncClient(timeout=settings.product_service_timeout)
        )

        if settings.order_cache_backend == "memory":
            cache = InMemoryOrderCache()
        else:
            cache = RedisOrderCache(redis_pool)

        app.state.workflow = OrderWorkflow(
            catalog=HttpProductInfoClient(http_client, settings.product_service_url),
            store=SqlOrderStore(async_session),
            cache=cache,
            publisher=RedisEventPublisher(redis_pool, settings.order_events_channel),
            cache_ttl=settings.order_cache_ttl_seconds,
        )
        logger.info("Order service is running on :%s", settings.port)
        yield


app = FastAPI(title="Order Service", lifespan=lifespan)


def get_workflow(request: Request) -> OrderWorkflow:
    return request.app.state.workflow


# ── エラー → HTTP ステータス ─────────────────────

ERROR_STATUS = {
    InvalidQuantity: 422,
    ProductUnavailable: 404,
    InsufficientStock: 409,
    PersistenceFailure: 500,
}


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error("Order request failed: %s", exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ── Request Models ───────────────────────────────


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str
    quantity: int


# ── Endpoints ────────────────────────────────────


@app.post("/orders", response_model=Order, status_code=201)
async def create_order(
    req: CreateOrderRequest,
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """注文作成"""
    return await workflow.create_order(req.product_id, req.quantity)


@app.get("/orders/product/{product_id}", response_model=list[Order])
async def list_orders_by_product(
    product_id: str,
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """商品ごとの注文一覧"""
    return await workflow.list_orders_by_product(product_id)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "order-service"}


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run("order_service.main:app", host="0.0.0.0", port=settings.port)
