from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.base import LIKE_ESCAPE, contains_pattern
from app.db.enums import OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem


def _with_details(stmt):
    return stmt.options(
        selectinload(Order.pharmacy),
        selectinload(Order.items).selectinload(OrderItem.medication),
    ).execution_options(populate_existing=True)


class OrderCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: UUID) -> Order | None:
        result = await self.session.execute(
            _with_details(select(Order).where(Order.id == order_id))
        )
        return result.scalar_one_or_none()

    async def get_by_confirmation_code(
        self, code: str, *, guest_only: bool = False
    ) -> Order | None:
        stmt = select(Order).where(Order.confirmation_code == code.upper())
        if guest_only:
            stmt = stmt.where(Order.is_guest_order.is_(True))
        result = await self.session.execute(_with_details(stmt))
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        return bool(
            await self.session.scalar(
                select(func.count(Order.id)).where(Order.confirmation_code == code)
            )
        )

    async def get_customer_orders(self, customer_id: UUID):
        result = await self.session.execute(
            _with_details(
                select(Order)
                .where(Order.customer_id == customer_id)
                .order_by(Order.created_at.desc())
            )
        )
        return result.scalars().all()

    async def find_by_contact(
        self, *, name: str, phone: str, email: str | None, limit: int = 10
    ):
        stmt = select(Order).where(
            Order.customer_name.ilike(contains_pattern(name), escape=LIKE_ESCAPE),
            Order.customer_phone == phone,
        )
        if email:
            stmt = stmt.where(func.lower(Order.customer_email) == email.lower())
        result = await self.session.execute(
            _with_details(stmt.order_by(Order.created_at.desc()).limit(limit))
        )
        return result.scalars().all()

    async def list_orders(
        self, *, status: OrderStatus | None, skip: int, limit: int
    ) -> tuple[list[Order], int]:
        count_stmt = select(func.count(Order.id))
        stmt = select(Order)
        if status is not None:
            count_stmt = count_stmt.where(Order.status == status)
            stmt = stmt.where(Order.status == status)

        total = await self.session.scalar(count_stmt)
        result = await self.session.execute(
            _with_details(stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit))
        )
        return list(result.scalars().all()), total or 0

    async def dashboard_totals(self, since: datetime) -> dict:
        """Aggregate order counts and revenue. Cancelled orders earn no revenue."""
        not_cancelled = Order.status != OrderStatus.CANCELLED
        is_today = Order.created_at >= since

        row = (
            await self.session.execute(
                select(
                    func.count(Order.id),
                    func.coalesce(func.sum(case((is_today, 1), else_=0)), 0),
                    func.coalesce(
                        func.sum(case((Order.status == OrderStatus.PENDING, 1), else_=0)), 0
                    ),
                    func.coalesce(
                        func.sum(case((not_cancelled, Order.total_price), else_=0)), 0
                    ),
                    func.coalesce(
                        func.sum(
                            case((not_cancelled & is_today, Order.total_price), else_=0)
                        ),
                        0,
                    ),
                    func.coalesce(func.avg(case((not_cancelled, Order.total_price))), 0),
                )
            )
        ).one()

        return {
            "total_orders": row[0],
            "todays_orders": row[1],
            "pending_orders": row[2],
            "total_revenue": float(row[3]),
            "todays_revenue": float(row[4]),
            "avg_order_value": round(float(row[5]), 2),
        }

    async def status_breakdown(self) -> dict[str, int]:
        result = await self.session.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )
        return {status.value: count for status, count in result.all()}
