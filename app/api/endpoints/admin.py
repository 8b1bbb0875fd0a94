from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from starlette import status

from app.core.deps import get_current_admin, get_service
from app.db.enums import UserRole
from app.models.user import User
from app.schemas.admin import AdminOrderList, DashboardStatsResponse
from app.schemas.order import OrderRead, OrderStatusUpdate
from app.schemas.pharmacy import PharmacyCreate, PharmacyRead
from app.schemas.user import RoleAssignmentRequest, UserRead
from app.services.admin_service import AdminService
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_current_admin)],
)


# -------------------------------------------------
# DASHBOARD
# -------------------------------------------------
@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(admin_service: AdminService = Depends(get_service(AdminService))):
    return await admin_service.dashboard_stats()


# -------------------------------------------------
# ORDERS
# -------------------------------------------------
@router.get("/orders", response_model=AdminOrderList)
async def list_orders(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin_service: AdminService = Depends(get_service(AdminService)),
):
    return await admin_service.list_orders(status_filter=status_filter, page=page, limit=limit)


@router.get("/orders/{order_id}", response_model=OrderRead)
async def order_detail(
    order_id: UUID,
    order_service: OrderService = Depends(get_service(OrderService)),
):
    return await order_service.get_order(order_id)


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: UUID,
    body: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    order_service: OrderService = Depends(get_service(OrderService)),
):
    """
    Move an order along the fulfilment flow. Cancelling restocks its items.
    """
    return await order_service.update_status(
        order_id=order_id,
        new_status=body.status,
        admin=admin,
        background_tasks=background_tasks,
    )


# -------------------------------------------------
# USERS & PHARMACIES
# -------------------------------------------------
@router.get("/users", response_model=list[UserRead])
async def list_users(
    role: UserRole | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin_service: AdminService = Depends(get_service(AdminService)),
):
    return await admin_service.list_users(role=role, page=page, limit=limit)


@router.patch("/users/{user_id}/role", response_model=UserRead)
async def assign_role(
    user_id: UUID,
    body: RoleAssignmentRequest,
    admin: User = Depends(get_current_admin),
    admin_service: AdminService = Depends(get_service(AdminService)),
):
    return await admin_service.assign_role(user_id, body, admin)


@router.post("/pharmacies", status_code=status.HTTP_201_CREATED, response_model=PharmacyRead)
async def create_pharmacy(
    body: PharmacyCreate,
    admin: User = Depends(get_current_admin),
    admin_service: AdminService = Depends(get_service(AdminService)),
):
    return await admin_service.create_pharmacy(body, admin)
