import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from shared.config.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)
TERMINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

# Money columns are Numeric(10, 2)
CENTS = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")
MAX_ITEM_QUANTITY = 10_000


class Order(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(50), nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Numeric(10, 2), nullable=False) # calculated once at creation
    shipping_address = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("order_schema.orders.id"), nullable=False, index=True)
    product_id = Column(String(255), nullable=False) # external reference, not a local FK
    product_name = Column(String(255), nullable=False) # snapshot
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False) # snapshot
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="items")
