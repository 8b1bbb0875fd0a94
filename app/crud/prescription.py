from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.enums import PrescriptionStatus
from app.models.prescription import Prescription


def _with_details(stmt):
    return stmt.options(
        selectinload(Prescription.medication),
        selectinload(Prescription.patient),
        selectinload(Prescription.reviewer),
    ).execution_options(populate_existing=True)


class PrescriptionCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, prescription_id: UUID) -> Prescription | None:
        result = await self.session.execute(
            _with_details(select(Prescription).where(Prescription.id == prescription_id))
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID):
        result = await self.session.execute(
            _with_details(
                select(Prescription)
                .where(Prescription.user_id == user_id)
                .order_by(Prescription.created_at.desc())
            )
        )
        return result.scalars().all()

    async def list_all(self, status: PrescriptionStatus | None = None):
        stmt = select(Prescription)
        if status is not None:
            stmt = stmt.where(Prescription.status == status)
        result = await self.session.execute(
            _with_details(stmt.order_by(Prescription.created_at.desc()))
        )
        return result.scalars().all()

    async def has_approved(self, *, user_id: UUID, medication_id: UUID) -> bool:
        count = await self.session.scalar(
            select(func.count(Prescription.id)).where(
                Prescription.user_id == user_id,
                Prescription.medication_id == medication_id,
                Prescription.status == PrescriptionStatus.APPROVED,
            )
        )
        return bool(count)
