"""
Pytest fixtures shared by the gateway and order service tests
"""

import os

# Settings are read at import time, so these must be set before the apps load
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import timedelta
from decimal import Decimal
from typing import Dict

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.config.database import Base, get_db
from shared.security import FixedWindowRateLimiter, create_access_token
from services.api_gateway.dependencies import get_dispatcher
from services.api_gateway.dispatcher import ReverseDispatcher
from services.api_gateway.main import gateway_app
from services.order_service.dependencies import get_product_client
from services.order_service.main import order_app
from services.order_service.product_client import ProductClient


def make_token(user_id: str = "1", email: str = "alice@example.com", expires_delta: timedelta = None) -> str:
    return create_access_token({"sub": user_id, "email": email}, expires_delta=expires_delta)


def auth_headers(user_id: str = "1") -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email=f'user{user_id}@example.com')}"}


class FakeCatalog:
    """In-memory stand-in for the Product service's GET /products/{id}."""

    def __init__(self):
        self.products: Dict[str, dict] = {}
        self.requested: list[str] = []

    def add(self, product_id: str, name: str, price) -> None:
        self.products[product_id] = {"id": product_id, "name": name, "price": price, "stock": 10}

    def handler(self, request: httpx.Request) -> httpx.Response:
        product_id = request.url.path.rsplit("/", 1)[-1]
        self.requested.append(product_id)
        if product_id not in self.products:
            return httpx.Response(404, json={"error": "Product not found"})
        return httpx.Response(200, json=self.products[product_id])


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        # SQLite has no schemas; put the order tables in the default one
        execution_options={"schema_translate_map": {"order_schema": None}},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog() -> FakeCatalog:
    catalog = FakeCatalog()
    catalog.add("p1", "Mechanical Keyboard", 50.00)
    catalog.add("p2", "USB-C Cable", "5.50")
    catalog.add("p3", "Monitor Arm", 19.99)
    return catalog


@pytest.fixture
async def product_client(catalog):
    client = ProductClient(base_url="http://products.test", transport=httpx.MockTransport(catalog.handler))
    yield client
    await client.aclose()


@pytest.fixture
async def order_client(session_factory, product_client):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    order_app.dependency_overrides[get_db] = override_get_db
    order_app.dependency_overrides[get_product_client] = lambda: product_client
    transport = httpx.ASGITransport(app=order_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://orders.test") as client:
        yield client
    order_app.dependency_overrides.clear()


class FakeBackends:
    """Records what the gateway forwards and answers with canned responses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: Dict[str, httpx.Response] = {}
        self.unreachable: set[str] = set()
        self.timeouts: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        if request.url.host in self.timeouts:
            raise httpx.ReadTimeout("timed out", request=request)
        canned = self.responses.get(request.url.path)
        if canned is not None:
            return canned
        return httpx.Response(200, json={"path": request.url.path, "method": request.method})


@pytest.fixture
def backends() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
def rate_limiter():
    limiter = FixedWindowRateLimiter(max_requests=100, window_seconds=60)
    original = gateway_app.state.rate_limiter
    gateway_app.state.rate_limiter = limiter
    yield limiter
    gateway_app.state.rate_limiter = original


@pytest.fixture
async def gateway_client(backends, rate_limiter):
    dispatcher = ReverseDispatcher(httpx.AsyncClient(transport=httpx.MockTransport(backends.handler)))
    gateway_app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = httpx.ASGITransport(app=gateway_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://gateway.test") as client:
        yield client
    gateway_app.dependency_overrides.clear()
    await dispatcher.aclose()


def as_decimal(value) -> Decimal:
    return Decimal(str(value))
