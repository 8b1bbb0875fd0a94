from fastapi import APIRouter, BackgroundTasks, Depends, Response
from starlette import status

from app.core.deps import Identity, get_current_customer, get_optional_identity, get_service
from app.models.user import User
from app.schemas.order import (
    FindOrdersRequest,
    OrderCreate,
    OrderCreateResponse,
    OrderRead,
    OrderSummary,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=OrderCreateResponse)
async def create_order(
    order_in: OrderCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_optional_identity),
    order_service: OrderService = Depends(get_service(OrderService)),
):
    """
    Open to customers, guest token holders and anonymous callers.
    """
    order = await order_service.create_order(order_in, identity, background_tasks)
    return {
        "message": "Order placed successfully",
        "order": order,
        "confirmation_code": order.confirmation_code,
    }


@router.get("/me", response_model=list[OrderSummary])
async def list_my_orders(
    current_user: User = Depends(get_current_customer),
    order_service: OrderService = Depends(get_service(OrderService)),
):
    return await order_service.list_customer_orders(current_user.id)


@router.post("/find-by-customer", response_model=list[OrderSummary])
async def find_orders_by_customer(
    search: FindOrdersRequest,
    order_service: OrderService = Depends(get_service(OrderService)),
):
    """
    Lets a customer recover orders without the confirmation code. Capped at 10 results.
    """
    return await order_service.find_by_customer(search)


@router.get("/{confirmation_code}/receipt")
async def download_receipt(
    confirmation_code: str,
    order_service: OrderService = Depends(get_service(OrderService)),
):
    code, pdf = await order_service.receipt_pdf(confirmation_code)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="receipt-{code}.pdf"'},
    )


@router.get("/{confirmation_code}", response_model=OrderRead)
async def get_order_by_confirmation_code(
    confirmation_code: str,
    order_service: OrderService = Depends(get_service(OrderService)),
):
    return await order_service.get_by_confirmation_code(confirmation_code)
