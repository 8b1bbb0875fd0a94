from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.pharmacy import Pharmacy


class PharmacyCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, pharmacy_id: UUID) -> Pharmacy | None:
        return await self.session.get(Pharmacy, pharmacy_id)

    async def list_all(self) -> list[Pharmacy]:
        result = await self.session.execute(select(Pharmacy).order_by(Pharmacy.name.asc()))
        return list(result.scalars().all())

    async def create(self, data: dict) -> Pharmacy:
        pharmacy = Pharmacy(**data)
        self.session.add(pharmacy)
        await self.session.commit()
        await self.session.refresh(pharmacy)
        return pharmacy
