import logging
import math
from datetime import datetime, time, timezone
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status

from app.crud.order import OrderCRUD
from app.crud.pharmacy import PharmacyCRUD
from app.crud.user import UserCRUD
from app.db.enums import OrderStatus, UserRole
from app.models.pharmacy import Pharmacy
from app.models.user import User
from app.schemas.admin import AdminOrderList, DashboardStatsResponse, Pagination
from app.schemas.order import OrderSummary
from app.schemas.pharmacy import PharmacyCreate
from app.schemas.user import RoleAssignmentRequest

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.order_crud = OrderCRUD(session)
        self.user_crud = UserCRUD(session)
        self.pharmacy_crud = PharmacyCRUD(session)

    async def dashboard_stats(self) -> DashboardStatsResponse:
        start_of_today = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)

        totals = await self.order_crud.dashboard_totals(since=start_of_today)
        breakdown = await self.order_crud.status_breakdown()

        return DashboardStatsResponse(stats=totals, status_breakdown=breakdown)

    async def list_orders(self, *, status_filter: str | None, page: int, limit: int) -> AdminOrderList:
        order_status = None
        if status_filter:
            try:
                order_status = OrderStatus(status_filter)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid status filter: {status_filter}",
                )

        orders, total = await self.order_crud.list_orders(
            status=order_status, skip=(page - 1) * limit, limit=limit
        )
        total_pages = math.ceil(total / limit) if total else 0

        return AdminOrderList(
            orders=[OrderSummary.model_validate(o) for o in orders],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_orders=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    async def list_users(self, *, role: UserRole | None, page: int, limit: int):
        return await self.user_crud.list_users(role=role, skip=(page - 1) * limit, limit=limit)

    async def assign_role(self, user_id: UUID, body: RoleAssignmentRequest, admin: User) -> User:
        user = await self.user_crud.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if user.id == admin.id and body.role != UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Admins cannot remove their own admin role",
            )

        pharmacy_id = body.pharmacy_id or user.pharmacy_id
        if body.role == UserRole.PHARMACIST and not pharmacy_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Pharmacists must be affiliated with a pharmacy",
            )
        if body.pharmacy_id and not await self.pharmacy_crud.get_by_id(body.pharmacy_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pharmacy not found")

        previous = user.role
        user.role = body.role
        user.pharmacy_id = pharmacy_id
        await self.session.commit()
        await self.session.refresh(user)

        logger.warning(
            f"AUDIT: {user.email} role changed {previous.value} -> {body.role.value} by admin {admin.email}"
        )
        return user

    async def create_pharmacy(self, body: PharmacyCreate, admin: User) -> Pharmacy:
        pharmacy = await self.pharmacy_crud.create(body.model_dump())
        logger.info(f"Pharmacy created: {pharmacy.id} ({pharmacy.name}) by admin {admin.id}")
        return pharmacy

    async def list_pharmacies(self) -> list[Pharmacy]:
        return await self.pharmacy_crud.list_all()
