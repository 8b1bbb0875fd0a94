from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from redis.asyncio import Redis
from starlette import status

from app.core.deps import get_current_customer, get_redis, get_service
from app.models.user import User
from app.schemas.cart import CartCheckout, CartItemCreate, CartItemUpdate, CartRead
from app.schemas.order import OrderCreateResponse
from app.schemas.user import MessageResponse
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


# -------------------------------
# ADD ITEM TO CART
# -------------------------------
@router.post("/add", response_model=CartRead)
async def add_to_cart(
    item_in: CartItemCreate,
    current_user: User = Depends(get_current_customer),
    redis: Redis = Depends(get_redis),
    cart_service: CartService = Depends(get_service(CartService)),
):
    """
    Prescription-only medications need an approved prescription first.
    """
    return await cart_service.add_item(redis, current_user, item_in.medication_id, item_in.quantity)


# -------------------------------
# VIEW CART
# -------------------------------
@router.get("", response_model=CartRead)
async def view_cart(
    current_user: User = Depends(get_current_customer),
    redis: Redis = Depends(get_redis),
    cart_service: CartService = Depends(get_service(CartService)),
):
    return await cart_service.get_cart(redis, current_user.id)


# -------------------------------
# UPDATE CART ITEM
# -------------------------------
@router.put("/{medication_id}", response_model=CartRead)
async def update_cart_item(
    medication_id: UUID,
    item_in: CartItemUpdate,
    current_user: User = Depends(get_current_customer),
    redis: Redis = Depends(get_redis),
    cart_service: CartService = Depends(get_service(CartService)),
):
    """
    Set a line's quantity. 0 removes the item.
    """
    return await cart_service.update_item(redis, current_user, medication_id, item_in.quantity)


# -------------------------------
# CLEAR CART
# -------------------------------
@router.delete("", response_model=MessageResponse)
async def clear_cart(
    current_user: User = Depends(get_current_customer),
    redis: Redis = Depends(get_redis),
    cart_service: CartService = Depends(get_service(CartService)),
):
    await cart_service.clear(redis, current_user.id)
    return {"message": "Cart cleared"}


# -------------------------------
# CHECKOUT
# -------------------------------
@router.post("/checkout", status_code=status.HTTP_201_CREATED, response_model=OrderCreateResponse)
async def checkout(
    checkout_in: CartCheckout,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_customer),
    redis: Redis = Depends(get_redis),
    cart_service: CartService = Depends(get_service(CartService)),
):
    order = await cart_service.checkout(redis, current_user, checkout_in, background_tasks)
    return {
        "message": "Order placed successfully",
        "order": order,
        "confirmation_code": order.confirmation_code,
    }
