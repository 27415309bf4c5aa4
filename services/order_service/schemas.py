from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import MAX_ITEM_QUANTITY


class OrderItemCreate(BaseModel):
    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(gt=0, le=MAX_ITEM_QUANTITY)

    class Config:
        populate_by_name = True

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_product_id(cls, value: Any) -> Any:
        # Product ids are opaque; numeric ids are accepted and kept as text
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(default_factory=list)
    shipping_address: Optional[dict[str, Any]] = Field(default=None, alias="shippingAddress")

    class Config:
        populate_by_name = True


class OrderStatusUpdate(BaseModel):
    status: str


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    product_id: str
    product_name: str
    quantity: int
    price: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    user_id: str
    status: str
    total_amount: Decimal
    shipping_address: Optional[dict[str, Any]]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    pagination: Pagination


class OrderCreatedResponse(BaseModel):
    message: str = "Order created successfully"
    order: OrderResponse


class OrderStatusUpdatedResponse(BaseModel):
    message: str = "Order status updated successfully"
    order: OrderResponse
