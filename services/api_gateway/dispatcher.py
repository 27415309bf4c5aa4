from datetime import datetime, timezone

import httpx
import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from shared.observability import gateway_proxy_requests_total

from .routes import Route

logger = structlog.get_logger(__name__)

FORWARDED_REQUEST_HEADERS = ("authorization", "content-type", "accept")
RELAYED_RESPONSE_HEADERS = ("location", "retry-after", "www-authenticate")


class ReverseDispatcher:
    """
    Forwards a request to the backend named by its route and relays the
    answer untouched. There are no retries and no circuit breaker: a backend
    that cannot be reached yields a single synthesized 503.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    def build_url(self, request: Request, route: Route) -> str:
        url = route.base_url.rstrip("/") + route.rewrite(request.url.path)
        if request.url.query:
            url = f"{url}?{request.url.query}"
        return url

    async def forward(self, request: Request, route: Route) -> Response:
        url = self.build_url(request, route)
        headers = {
            name: request.headers[name]
            for name in FORWARDED_REQUEST_HEADERS
            if name in request.headers
        }
        body = await request.body()

        try:
            upstream = await self._client.request(request.method, url, headers=headers, content=body or None)
        except httpx.TransportError as e:
            # Connection refused, DNS failure, timeouts
            gateway_proxy_requests_total.labels(service=route.service, outcome="unavailable").inc()
            logger.error("proxy_upstream_unreachable", service=route.service, url=url, error=repr(e))
            return JSONResponse(
                status_code=503,
                content={
                    "error": "Service unavailable",
                    "service": route.service,
                    "url": route.base_url,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

        gateway_proxy_requests_total.labels(service=route.service, outcome="relayed").inc()
        relayed = {
            name: upstream.headers[name]
            for name in RELAYED_RESPONSE_HEADERS
            if name in upstream.headers
        }
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers=relayed,
            media_type=upstream.headers.get("content-type"),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
