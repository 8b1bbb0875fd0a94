from pydantic import BaseModel

from app.schemas.order import OrderSummary


class DashboardStats(BaseModel):
    total_orders: int
    todays_orders: int
    pending_orders: int
    total_revenue: float
    todays_revenue: float
    avg_order_value: float


class DashboardStatsResponse(BaseModel):
    stats: DashboardStats
    status_breakdown: dict[str, int]


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool


class AdminOrderList(BaseModel):
    orders: list[OrderSummary]
    pagination: Pagination
