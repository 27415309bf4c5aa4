from dataclasses import dataclass
from typing import Optional, Sequence

from shared.config.settings import ORDER_SERVICE_URL, PRODUCT_SERVICE_URL, USER_SERVICE_URL

SERVICES = {
    "user": USER_SERVICE_URL,
    "product": PRODUCT_SERVICE_URL,
    "order": ORDER_SERVICE_URL,
}


@dataclass(frozen=True)
class Route:
    prefix: str          # public path prefix, e.g. /api/orders
    service: str         # key into SERVICES
    target_prefix: str   # backend-local path that replaces the prefix
    auth_required: bool = False

    @property
    def base_url(self) -> str:
        return SERVICES[self.service]

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    def rewrite(self, path: str) -> str:
        rest = path[len(self.prefix):]
        if rest == "/":
            rest = ""
        return self.target_prefix + rest


# Evaluated top to bottom; the first match wins
ROUTES: tuple[Route, ...] = (
    Route("/api/users", "user", "/users"),
    Route("/api/auth", "user", "/auth"),
    Route("/api/products", "product", "/products"),
    Route("/api/orders", "order", "/orders", auth_required=True),
)


def match_route(path: str, routes: Sequence[Route] = ROUTES) -> Optional[Route]:
    for route in routes:
        if route.matches(path):
            return route
    return None
