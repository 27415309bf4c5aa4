from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from urllib.parse import quote

import httpx
import structlog

from shared.config.settings import PRODUCT_LOOKUP_TIMEOUT, PRODUCT_SERVICE_URL
from shared.observability import order_product_lookup_seconds

from .exceptions import ProductNotFound
from .models import CENTS, MAX_AMOUNT

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Name and price as the Product service reported them at validation time."""
    product_id: str
    name: str
    price: Decimal


class ProductClient:
    """
    Client for the Product service's ``GET /products/{id}`` endpoint.

    Not-found, malformed ids, bad payloads and transport errors all surface
    as ProductNotFound; callers cannot and should not tell them apart.
    """

    def __init__(
        self,
        base_url: str = PRODUCT_SERVICE_URL,
        timeout: float = PRODUCT_LOOKUP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def fetch(self, product_id: str) -> ProductSnapshot:
        try:
            with order_product_lookup_seconds.time():
                resp = await self._client.get(f"/products/{quote(product_id, safe='')}")
            resp.raise_for_status()
            product = resp.json()
            price = Decimal(str(product["price"]))
            if not price.is_finite() or price < 0 or price > MAX_AMOUNT:
                raise ValueError(f"unusable price {product['price']!r}")
            return ProductSnapshot(
                product_id=product_id,
                name=str(product["name"]),
                price=price.quantize(CENTS),
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.warning("product_lookup_failed", product_id=product_id, error=repr(e))
            raise ProductNotFound(product_id) from e

    async def aclose(self) -> None:
        await self._client.aclose()
