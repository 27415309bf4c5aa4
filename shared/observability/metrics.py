from prometheus_client import Counter, Histogram

# Order Service
orders_created_total = Counter(
    "orders_created_total",
    "Order creation attempts",
    ["outcome"] # Labels: 'created', 'empty', 'invalid_product', 'persistence_error'
)

order_product_lookup_seconds = Histogram(
    "order_product_lookup_seconds",
    "Latency of product lookups made while validating an order"
)

# Gateway
gateway_proxy_requests_total = Counter(
    "gateway_proxy_requests_total",
    "Requests forwarded to backend services",
    ["service", "outcome"] # Labels: outcome='relayed', 'unavailable'
)

gateway_rate_limited_total = Counter(
    "gateway_rate_limited_total",
    "Requests rejected by the gateway rate limiter"
)
