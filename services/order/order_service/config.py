"""
Order Service — 設定

環境変数から読み込む。DATABASE_URL / REDIS_URL が無い場合は
DATABASE_HOST などの個別変数から組み立てる。
"""

import os
from typing import Literal

from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str
    redis_url: str = "redis://localhost:6379"
    product_service_url: str = "http://localhost:3000"
    product_service_timeout: float = 10.0
    order_cache_ttl_seconds: int = 60
    order_cache_backend: Literal["redis", "memory"] = "redis"
    order_events_channel: str = "order.created"
    log_level: str = "INFO"
    port: int = 8080

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        values = {
            "database_url": env.get("DATABASE_URL") or _database_url_from_parts(env),
            "redis_url": env.get("REDIS_URL") or _redis_url_from_parts(env),
        }
        for field in (
            "product_service_url",
            "product_service_timeout",
            "order_cache_ttl_seconds",
            "order_cache_backend",
            "order_events_channel",
            "log_level",
            "port",
        ):
            if field.upper() in env:
                values[field] = env[field.upper()]
        return cls(**values)


def _database_url_from_parts(env) -> str:
    return "postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}".format(
        user=env.get("DATABASE_USER", "postgres"),
        password=env.get("DATABASE_PASSWORD", ""),
        host=env.get("DATABASE_HOST", "localhost"),
        port=env.get("DATABASE_PORT", "5432"),
        name=env.get("DATABASE_NAME", "orders"),
    )


def _redis_url_from_parts(env) -> str:
    host = env.get("REDIS_HOST", "localhost")
    port = env.get("REDIS_PORT", "6379")
    return f"redis://{host}:{port}"
