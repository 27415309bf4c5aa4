from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import TokenClaims, get_current_user

from .dependencies import get_product_client
from .exceptions import OrderServiceError
from .product_client import ProductClient
from .schemas import (
    OrderCreate,
    OrderCreatedResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderStatusUpdatedResponse,
    Pagination,
)
from .service import OrderService

# Every order route requires a valid bearer token
router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(get_current_user)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)


def _http_error(error: OrderServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@public_router.get("/health")
async def health_check():
    return {
        "service": "order-service",
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user: TokenClaims = Depends(get_current_user),
    products: ProductClient = Depends(get_product_client),
    db: AsyncSession = Depends(get_db),
):
    try:
        order = await OrderService.create_order(db, products, user.user_id, payload)
    except OrderServiceError as e:
        raise _http_error(e)
    return OrderCreatedResponse(order=OrderResponse.model_validate(order))


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        orders, total = await OrderService.list_orders(db, user.user_id, page, limit, status_filter)
    except OrderServiceError as e:
        raise _http_error(e)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        pagination=Pagination(page=page, limit=limit, total=total),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await OrderService.get_order(db, user.user_id, order_id)
    except OrderServiceError as e:
        raise _http_error(e)


@router.patch("/{order_id}/status", response_model=OrderStatusUpdatedResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        order = await OrderService.update_status(db, user.user_id, order_id, payload.status)
    except OrderServiceError as e:
        raise _http_error(e)
    return OrderStatusUpdatedResponse(order=OrderResponse.model_validate(order))


@router.delete("/{order_id}")
async def cancel_order(
    order_id: int,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await OrderService.cancel_order(db, user.user_id, order_id)
    except OrderServiceError as e:
        raise _http_error(e)
    return {"message": "Order cancelled successfully"}
