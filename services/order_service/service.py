import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional, Sequence

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.settings import (
    ORDER_ENFORCE_TRANSITIONS,
    PRODUCT_LOOKUP_CONCURRENCY,
    PRODUCT_LOOKUP_TIMEOUT,
)
from shared.observability import orders_created_total

from .exceptions import (
    CannotCancel,
    EmptyOrder,
    InvalidStatus,
    InvalidTransition,
    OrderNotFound,
    OrderTotalTooLarge,
    PersistenceError,
    ProductNotFound,
)
from .models import (
    CANCELLABLE_STATUSES,
    CENTS,
    MAX_AMOUNT,
    TERMINAL_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
)
from .product_client import ProductClient, ProductSnapshot
from .repository import OrderRepository
from .schemas import OrderCreate, OrderItemCreate

logger = structlog.get_logger(__name__)

VALID_STATUSES = frozenset(s.value for s in OrderStatus)

# Consulted only when ORDER_ENFORCE_TRANSITIONS is on
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING.value: frozenset({"confirmed", "processing", "cancelled"}),
    OrderStatus.CONFIRMED.value: frozenset({"processing", "cancelled"}),
    OrderStatus.PROCESSING.value: frozenset({"shipped"}),
    OrderStatus.SHIPPED.value: frozenset({"delivered"}),
    **{s.value: frozenset() for s in TERMINAL_STATUSES},
}


@asynccontextmanager
async def _persistence(action: str, **context):
    """Turns storage failures into PersistenceError, keeping the detail in the logs."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("order_persistence_failed", action=action, error=str(e), **context)
        raise PersistenceError() from e


async def validate_items(
    products: ProductClient,
    items: Sequence[OrderItemCreate],
    concurrency: int = PRODUCT_LOOKUP_CONCURRENCY,
    timeout: float = PRODUCT_LOOKUP_TIMEOUT,
) -> list[tuple[OrderItemCreate, ProductSnapshot]]:
    """
    Looks every item up in the Product service, at most ``concurrency`` at a
    time and each within ``timeout`` seconds. The first failure cancels the
    lookups still in flight and, of the lookups that finished, the earliest
    failing item in input order is reported. With ``concurrency=1`` lookups
    run strictly in input order.
    """
    if not items:
        return []

    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def lookup(item: OrderItemCreate) -> ProductSnapshot:
        async with semaphore:
            try:
                return await asyncio.wait_for(products.fetch(item.product_id), timeout)
            except asyncio.TimeoutError as e:
                logger.warning("product_lookup_timed_out", product_id=item.product_id, timeout=timeout)
                raise ProductNotFound(item.product_id) from e

    if concurrency <= 1:
        return [(item, await lookup(item)) for item in items]

    tasks = [asyncio.create_task(lookup(item)) for item in items]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    failures = [t.exception() for t in tasks if not t.cancelled() and t.exception() is not None]
    if failures:
        raise failures[0]

    return [(item, task.result()) for item, task in zip(items, tasks)]


class OrderService:

    @staticmethod
    async def create_order(
        db: AsyncSession,
        products: ProductClient,
        user_id: str,
        data: OrderCreate,
    ) -> Order:
        if not data.items:
            orders_created_total.labels(outcome="empty").inc()
            raise EmptyOrder()

        try:
            validated = await validate_items(products, data.items)
        except ProductNotFound as e:
            orders_created_total.labels(outcome="invalid_product").inc()
            logger.info("order_rejected", user_id=user_id, product_id=e.product_id)
            raise

        # Snapshot name and price; the total is never recomputed afterwards
        total = Decimal("0")
        items = []
        for item, product in validated:
            price = product.price
            total += price * item.quantity
            items.append(OrderItem(
                product_id=item.product_id,
                product_name=product.name,
                quantity=item.quantity,
                price=price,
            ))

        if total > MAX_AMOUNT:
            orders_created_total.labels(outcome="total_too_large").inc()
            raise OrderTotalTooLarge()

        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=total.quantize(CENTS),
            shipping_address=data.shipping_address,
            items=items,
        )

        try:
            async with _persistence("create_order", user_id=user_id):
                order = await OrderRepository.create_order(db, order)
        except PersistenceError:
            orders_created_total.labels(outcome="persistence_error").inc()
            raise

        orders_created_total.labels(outcome="created").inc()
        logger.info("order_created", order_id=order.id, user_id=user_id, total_amount=str(order.total_amount), items=len(items))
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> tuple[Sequence[Order], int]:
        async with _persistence("list_orders", user_id=user_id):
            return await OrderRepository.list_orders(db, user_id, offset=(page - 1) * limit, limit=limit, status=status)

    @staticmethod
    async def get_order(db: AsyncSession, user_id: str, order_id: int) -> Order:
        async with _persistence("get_order", user_id=user_id, order_id=order_id):
            order = await OrderRepository.get_order(db, order_id, user_id)
        if order is None:
            raise OrderNotFound()
        return order

    @staticmethod
    async def update_status(db: AsyncSession, user_id: str, order_id: int, new_status: str) -> Order:
        if new_status not in VALID_STATUSES:
            raise InvalidStatus()

        from_statuses = None
        if ORDER_ENFORCE_TRANSITIONS:
            current = await OrderService.get_order(db, user_id, order_id)
            if new_status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransition(current.status, new_status)
            # Guard against a concurrent change between the read and the write
            from_statuses = [current.status]

        async with _persistence("update_status", user_id=user_id, order_id=order_id):
            updated = await OrderRepository.update_status(db, order_id, user_id, new_status, from_statuses)
        if updated == 0:
            raise OrderNotFound()

        logger.info("order_status_updated", order_id=order_id, user_id=user_id, status=new_status)
        return await OrderService.get_order(db, user_id, order_id)

    @staticmethod
    async def cancel_order(db: AsyncSession, user_id: str, order_id: int) -> None:
        async with _persistence("cancel_order", user_id=user_id, order_id=order_id):
            updated = await OrderRepository.update_status(
                db,
                order_id,
                user_id,
                OrderStatus.CANCELLED.value,
                from_statuses=[s.value for s in CANCELLABLE_STATUSES],
            )
        if updated == 0:
            raise CannotCancel()
        logger.info("order_cancelled", order_id=order_id, user_id=user_id)
