from datetime import datetime, timezone

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.settings import (
    CORS_ALLOW_ORIGINS,
    GATEWAY_UPSTREAM_TIMEOUT,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_STORAGE_URI,
    RATE_LIMIT_WINDOW_SECONDS,
)
from shared.observability import gateway_rate_limited_total, setup_observability
from shared.security import FixedWindowRateLimiter, client_key

from .dispatcher import ReverseDispatcher
from .router import router

logger = structlog.get_logger(__name__)

gateway_app = FastAPI(title="API Gateway", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(gateway_app, "api_gateway")

# --- SECURITY SETUP ---
gateway_app.state.rate_limiter = FixedWindowRateLimiter(
    max_requests=RATE_LIMIT_MAX_REQUESTS,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    storage_uri=RATE_LIMIT_STORAGE_URI,
)

gateway_app.include_router(router)


@gateway_app.middleware("http")
async def rate_limit(request: Request, call_next):
    key = client_key(request)
    decision = request.app.state.rate_limiter.admit(key)
    if not decision.allowed:
        gateway_rate_limited_total.inc()
        logger.warning("rate_limited", client=key, retry_after=decision.retry_after)
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests", "retryAfter": decision.retry_after},
            headers={"Retry-After": str(decision.retry_after)},
        )
    return await call_next(request)


# Outermost middleware: 429 responses carry CORS headers too
gateway_app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@gateway_app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    content = {"error": exc.detail}
    if exc.status_code == 404:
        content = {"error": "Route not found", "path": request.url.path, "method": request.method}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@gateway_app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("gateway_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "timestamp": datetime.now(timezone.utc).isoformat()},
    )


@gateway_app.on_event("startup")
async def startup_event():
    client = httpx.AsyncClient(timeout=GATEWAY_UPSTREAM_TIMEOUT)
    gateway_app.state.dispatcher = ReverseDispatcher(client)
    logger.info("gateway_started", max_requests=RATE_LIMIT_MAX_REQUESTS, window_seconds=RATE_LIMIT_WINDOW_SECONDS)


@gateway_app.on_event("shutdown")
async def shutdown_event():
    await gateway_app.state.dispatcher.aclose()
