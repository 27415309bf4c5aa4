from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, utcnow


class OrderRepository:
    """
    Every query is scoped by owner as well as id, so an order that belongs to
    someone else is indistinguishable from one that does not exist.
    """

    @staticmethod
    async def create_order(db: AsyncSession, order: Order) -> Order:
        """Inserts the order and its items in one transaction; rolls back on any failure."""
        try:
            db.add(order)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, user_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id, Order.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        user_id: str,
        offset: int,
        limit: int,
        status: Optional[str] = None,
    ) -> tuple[Sequence[Order], int]:
        conditions = [Order.user_id == user_id]
        if status:
            conditions.append(Order.status == status)

        total = await db.scalar(select(func.count()).select_from(Order).where(*conditions))
        result = await db.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return result.scalars().all(), total or 0

    @staticmethod
    async def update_status(
        db: AsyncSession,
        order_id: int,
        user_id: str,
        new_status: str,
        from_statuses: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Conditional UPDATE scoped by (id, owner) and optionally by current status.
        Returns the number of rows changed. No row lock is taken; concurrent
        writers are left to the database's isolation level.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.user_id == user_id)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if from_statuses is not None:
            stmt = stmt.where(Order.status.in_(list(from_statuses)))

        try:
            result = await db.execute(stmt)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        return result.rowcount
