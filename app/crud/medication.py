from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.base import LIKE_ESCAPE, contains_pattern
from app.models.medication import Medication
from app.models.order_item import OrderItem


class MedicationCRUD:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, medication_id: UUID) -> Medication | None:
        """Fetch a medication with its pharmacy, bypassing stale identity-map state."""
        result = await self.session.execute(
            select(Medication)
            .options(selectinload(Medication.pharmacy))
            .where(Medication.id == medication_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many(self, medication_ids: list[UUID]) -> dict[UUID, Medication]:
        result = await self.session.execute(
            select(Medication)
            .where(Medication.id.in_(medication_ids))
            .execution_options(populate_existing=True)
        )
        return {m.id: m for m in result.scalars().all()}

    def _filtered(
        self,
        stmt,
        *,
        search: str | None,
        category: str | None,
        requires_prescription: bool | None,
        pharmacy_id: UUID | None,
        in_stock_only: bool,
    ):
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.where(
                or_(
                    Medication.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Medication.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if category:
            stmt = stmt.where(Medication.category == category)
        if requires_prescription is not None:
            stmt = stmt.where(Medication.requires_prescription == requires_prescription)
        if pharmacy_id:
            stmt = stmt.where(Medication.pharmacy_id == pharmacy_id)
        if in_stock_only:
            stmt = stmt.where(Medication.stock_quantity > 0)
        return stmt

    async def search(
        self,
        *,
        skip: int,
        limit: int,
        search: str | None = None,
        category: str | None = None,
        requires_prescription: bool | None = None,
        pharmacy_id: UUID | None = None,
        in_stock_only: bool = True,
    ) -> tuple[list[Medication], int]:
        filters = dict(
            search=search,
            category=category,
            requires_prescription=requires_prescription,
            pharmacy_id=pharmacy_id,
            in_stock_only=in_stock_only,
        )

        total = await self.session.scalar(
            self._filtered(select(func.count(Medication.id)), **filters)
        )

        stmt = self._filtered(
            select(Medication).options(selectinload(Medication.pharmacy)), **filters
        )
        result = await self.session.execute(
            stmt.order_by(Medication.name.asc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total or 0

    async def decrement_online_stock(self, medication_id: UUID, quantity: int) -> bool:
        """
        Guarded decrement: only succeeds while enough online stock remains.
        Returns False when no row was updated.
        """
        result = await self.session.execute(
            update(Medication)
            .where(
                Medication.id == medication_id,
                Medication.online_stock >= quantity,
            )
            .values(
                online_stock=Medication.online_stock - quantity,
                stock_quantity=Medication.stock_quantity - quantity,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def restock_online(self, medication_id: UUID, quantity: int) -> None:
        await self.session.execute(
            update(Medication)
            .where(Medication.id == medication_id)
            .values(
                online_stock=Medication.online_stock + quantity,
                stock_quantity=Medication.stock_quantity + quantity,
            )
            .execution_options(synchronize_session=False)
        )

    async def is_ordered(self, medication_id: UUID) -> bool:
        count = await self.session.scalar(
            select(func.count(OrderItem.id)).where(OrderItem.medication_id == medication_id)
        )
        return bool(count)
