import logging
from uuid import UUID
from fastapi import BackgroundTasks, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status

from app.core.deps import Identity
from app.crud.cart import CartCRUD
from app.crud.medication import MedicationCRUD
from app.crud.prescription import PrescriptionCRUD
from app.models.cart import CartItem
from app.models.order import Order
from app.models.user import User
from app.schemas.cart import CartCheckout
from app.schemas.order import OrderCreate, OrderItemCreate
from app.services.notification.notification_service import NotificationService
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


class CartService:
    """
    Server-side cart for signed-in customers. Rows in cart_items are the source
    of truth; Redis keeps the rendered cart for quick reads.
    """
    CART_TTL = 60 * 60 * 24 * 14  # 14 days

    def __init__(self, session: AsyncSession, notification_service: NotificationService):
        self.session = session
        self.cart_crud = CartCRUD(session)
        self.medication_crud = MedicationCRUD(session)
        self.prescription_crud = PrescriptionCRUD(session)
        self.order_service = OrderService(session, notification_service)

    @staticmethod
    def _summarize(lines: list[dict]) -> dict:
        return {
            "items": lines,
            "total_items": sum(line["quantity"] for line in lines),
            "total_price": round(sum(line["subtotal"] for line in lines), 2),
        }

    async def _load_lines(self, user_id: UUID) -> list[dict]:
        items = await self.cart_crud.get_db_items(user_id)
        return [
            {
                "medication_id": str(item.medication_id),
                "name": item.medication.name,
                "price": float(item.medication.price),
                "quantity": item.quantity,
                "requires_prescription": item.medication.requires_prescription,
                "subtotal": round(float(item.medication.price) * item.quantity, 2),
            }
            for item in items
        ]

    async def _refresh_cache(self, redis: Redis, user_id: UUID) -> dict:
        lines = await self._load_lines(user_id)
        await self.cart_crud.set_redis_items(redis, user_id, lines, self.CART_TTL)
        return self._summarize(lines)

    async def get_cart(self, redis: Redis, user_id: UUID) -> dict:
        """
        Retrieve cart from Redis first, fallback to DB.
        """
        cached = await self.cart_crud.get_redis_items(redis, user_id)
        if cached is not None:
            return self._summarize(cached)

        return await self._refresh_cache(redis, user_id)

    async def _check_purchasable(self, user: User, medication_id: UUID, target_quantity: int):
        medication = await self.medication_crud.get(medication_id)
        if not medication:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Medication not found",
            )

        if medication.requires_prescription and not await self.prescription_crud.has_approved(
            user_id=user.id, medication_id=medication_id
        ):
            logger.info(f"Cart add blocked for user {user.id}: {medication_id} needs an approved prescription")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Prescription approval required for this medication",
            )

        if target_quantity > medication.online_stock:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only {medication.online_stock} of {medication.name} available online",
            )

    async def add_item(
        self,
        redis: Redis,
        user: User,
        medication_id: UUID,
        quantity: int,
    ) -> dict:
        """
        Adds to an existing line or creates one.
        """
        if quantity <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Quantity must be positive",
            )

        existing = await self.cart_crud.get_db_item(user.id, medication_id)
        target_quantity = quantity + (existing.quantity if existing else 0)

        await self._check_purchasable(user, medication_id, target_quantity)

        if existing:
            existing.quantity = target_quantity
        else:
            self.session.add(
                CartItem(user_id=user.id, medication_id=medication_id, quantity=quantity)
            )

        await self.session.commit()
        logger.info(f"Cart: user {user.id} now has {target_quantity} x {medication_id}")
        return await self._refresh_cache(redis, user.id)

    async def update_item(
        self,
        redis: Redis,
        user: User,
        medication_id: UUID,
        quantity: int,
    ) -> dict:
        """
        Update quantity of an item in the cart.
        If quantity == 0 the item is removed.
        """
        existing = await self.cart_crud.get_db_item(user.id, medication_id)
        if not existing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in cart"
            )

        if quantity == 0:
            await self.session.delete(existing)
        else:
            await self._check_purchasable(user, medication_id, quantity)
            existing.quantity = quantity

        await self.session.commit()
        return await self._refresh_cache(redis, user.id)

    async def clear(self, redis: Redis, user_id: UUID) -> None:
        await self.cart_crud.clear_db_cart(user_id)
        await self.session.commit()
        await self.cart_crud.delete_redis_cart(redis, user_id)

    async def checkout(
        self,
        redis: Redis,
        user: User,
        checkout_in: CartCheckout,
        background_tasks: BackgroundTasks,
    ) -> Order:
        """
        Converts the cart into an order, then empties it.
        """
        user_id = user.id
        items = await self.cart_crud.get_db_items(user_id)
        if not items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty"
            )

        phone = checkout_in.customer_phone or user.phone_number
        if not phone:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A phone number is required to place an order",
            )

        try:
            order_in = OrderCreate(
                customer_name=user.full_name,
                customer_phone=phone,
                customer_email=user.email,
                customer_notes=checkout_in.customer_notes,
                pharmacy_id=checkout_in.pharmacy_id,
                order_type=checkout_in.order_type,
                items=[
                    OrderItemCreate(medication_id=item.medication_id, quantity=item.quantity)
                    for item in items
                ],
            )
        except ValidationError as e:
            # Account details that no longer pass order validation
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Your account details cannot be used for an order. Please update your profile.",
                    "errors": jsonable_encoder(e.errors(include_url=False)),
                },
            )

        order = await self.order_service.create_order(order_in, Identity(user=user), background_tasks)

        await self.clear(redis, user_id)
        logger.info(f"Cart checked out by user {user_id} as order {order.confirmation_code}")
        return order
