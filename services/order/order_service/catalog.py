"""
Order Service — 商品カタログクライアント

外部のカタログサービスから単価と在庫数を取得する。
「商品が存在しない」と「カタログが落ちている」は区別せず、
どちらも ProductUnavailable として呼び出し元へ返す。
"""

import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from .errors import ProductUnavailable
from .models import ProductSnapshot

logger = logging.getLogger(__name__)


class ProductInfoClient(Protocol):
    async def fetch(self, product_id: str) -> ProductSnapshot: ...


class HttpProductInfoClient:
    """GET {base_url}/products/{product_id} を 1 回だけ呼ぶ"""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def fetch(self, product_id: str) -> ProductSnapshot:
        # ID は 1 つのパスセグメントとして扱う ("#" や "?" で別商品を引かない)
        url = f"{self.base_url}/products/{quote(product_id, safe='')}"
        try:
            resp = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Error fetching product %s: %s", product_id, e)
            raise ProductUnavailable(product_id) from e

        if resp.status_code != httpx.codes.OK:
            logger.warning(
                "Product service returned status %s for product %s",
                resp.status_code,
                product_id,
            )
            raise ProductUnavailable(product_id)

        try:
            return ProductSnapshot.model_validate(resp.json())
        except ValueError as e:
            # JSONDecodeError / ValidationError
            logger.warning("Malformed product response for %s: %s", product_id, e)
            raise ProductUnavailable(product_id) from e
