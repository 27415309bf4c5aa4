from .setup import setup_observability
from .metrics import (
    orders_created_total,
    order_product_lookup_seconds,
    gateway_proxy_requests_total,
    gateway_rate_limited_total,
)
