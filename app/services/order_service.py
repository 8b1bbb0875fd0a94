import logging
from decimal import Decimal
from uuid import UUID
from fastapi import BackgroundTasks, HTTPException
from starlette import status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import Identity
from app.core.exceptions import InsufficientStockError
from app.core.security import generate_confirmation_code
from app.crud.medication import MedicationCRUD
from app.crud.order import OrderCRUD
from app.crud.pharmacy import PharmacyCRUD
from app.crud.prescription import PrescriptionCRUD
from app.db.enums import ORDER_STATUS_TRANSITIONS, OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.user import User
from app.schemas.order import FindOrdersRequest, OrderCreate
from app.services.notification.notification_service import NotificationService
from app.services.receipt_service import ReceiptService

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


class OrderService:
    def __init__(self, session: AsyncSession, notification_service: NotificationService):
        self.session = session
        self.notification_service = notification_service
        self.order_crud = OrderCRUD(session)
        self.medication_crud = MedicationCRUD(session)
        self.pharmacy_crud = PharmacyCRUD(session)
        self.prescription_crud = PrescriptionCRUD(session)

    async def _new_confirmation_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = generate_confirmation_code()
            if not await self.order_crud.code_exists(code):
                return code
        raise RuntimeError("Could not generate a unique confirmation code")

    async def create_order(
        self,
        order_in: OrderCreate,
        identity: Identity,
        background_tasks: BackgroundTasks,
    ) -> Order:
        """
        Places an order in a single transaction.

        Every line runs a guarded stock decrement; if any of them finds too
        little online stock the whole order (rows and decrements) is rolled back.
        """
        # Same medication twice becomes one line
        quantities: dict[UUID, int] = {}
        for item in order_in.items:
            quantities[item.medication_id] = quantities.get(item.medication_id, 0) + item.quantity

        if not await self.pharmacy_crud.get_by_id(order_in.pharmacy_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Pharmacy not found",
            )

        medications = await self.medication_crud.get_many(list(quantities))
        for medication_id in quantities:
            medication = medications.get(medication_id)
            if medication is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Medication {medication_id} not found",
                )
            if medication.pharmacy_id != order_in.pharmacy_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{medication.name} is not sold by the selected pharmacy",
                )

        user: User | None = identity.user
        if user is not None:
            for medication_id in quantities:
                medication = medications[medication_id]
                if medication.requires_prescription and not await self.prescription_crud.has_approved(
                    user_id=user.id, medication_id=medication_id
                ):
                    raise HTTPException(
                        status_code=status.HTTP_403_FORBIDDEN,
                        detail=f"An approved prescription is required for {medication.name}",
                    )

        customer_email = order_in.customer_email
        if customer_email is None:
            if user is not None:
                customer_email = user.email
            elif identity.guest:
                customer_email = identity.guest.get("email")

        total_price = sum(
            (medications[mid].price * qty for mid, qty in quantities.items()), Decimal("0")
        )
        total_items = sum(quantities.values())
        confirmation_code = await self._new_confirmation_code()

        order = Order(
            customer_id=user.id if user is not None else None,
            customer_name=order_in.customer_name,
            customer_phone=order_in.customer_phone,
            customer_email=customer_email,
            customer_notes=order_in.customer_notes,
            pharmacy_id=order_in.pharmacy_id,
            order_type=order_in.order_type,
            is_guest_order=user is None,
            confirmation_code=confirmation_code,
            total_price=total_price,
            total_number_of_items=total_items,
            status=OrderStatus.PENDING,
        )

        try:
            self.session.add(order)
            await self.session.flush()

            for medication_id, quantity in quantities.items():
                medication = medications[medication_id]
                self.session.add(
                    OrderItem(
                        order_id=order.id,
                        medication_id=medication_id,
                        quantity=quantity,
                        price_per_unit=medication.price,
                    )
                )
                if not await self.medication_crud.decrement_online_stock(medication_id, quantity):
                    raise InsufficientStockError(medication.name)

            await self.session.commit()

        except InsufficientStockError as e:
            await self.session.rollback()
            logger.warning(f"Order {confirmation_code} rolled back: {e}")
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Order {confirmation_code} failed and was rolled back: {str(e)}")
            raise

        order = await self.order_crud.get_by_id(order.id)
        logger.info(
            f"Order placed: {order.confirmation_code} | {total_items} items | "
            f"total {total_price} | guest={order.is_guest_order}"
        )

        if order.customer_email:
            background_tasks.add_task(
                self.notification_service.notify,
                email=order.customer_email,
                subject=f"Order confirmation {order.confirmation_code}",
                message=(
                    f"Hello {order.customer_name},\n\n"
                    f"Thank you for your order at {order.pharmacy_name}.\n"
                    f"Your confirmation code is {order.confirmation_code}. "
                    "Keep it to track your order.\n\n"
                    f"Total: {order.total_price:.2f}"
                ),
                attachment=ReceiptService.generate_pdf_bytes(order),
                filename=f"receipt-{order.confirmation_code}.pdf",
            )

        return order

    async def get_by_confirmation_code(self, code: str, *, guest_only: bool = False) -> Order:
        order = await self.order_crud.get_by_confirmation_code(code, guest_only=guest_only)

        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )

        return order

    async def find_by_customer(self, search: FindOrdersRequest):
        return await self.order_crud.find_by_contact(
            name=search.customer_name,
            phone=search.customer_phone,
            email=search.customer_email,
        )

    async def list_customer_orders(self, user_id: UUID):
        return await self.order_crud.get_customer_orders(user_id)

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.order_crud.get_by_id(order_id)

        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )

        return order

    async def receipt_pdf(self, code: str) -> tuple[str, bytes]:
        order = await self.get_by_confirmation_code(code)
        return order.confirmation_code, ReceiptService.generate_pdf_bytes(order)

    async def update_status(
        self,
        *,
        order_id: UUID,
        new_status: str | None,
        admin: User,
        background_tasks: BackgroundTasks,
    ) -> Order:
        """
        Moves an order one step along the fulfilment flow.
        Cancelling returns the ordered quantities to online stock.
        """
        if not new_status:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Status is required",
            )

        try:
            target = OrderStatus(new_status)
        except ValueError:
            valid = ", ".join(s.value for s in OrderStatus)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status. Must be one of: {valid}",
            )

        order = await self.get_order(order_id)
        current = order.status

        if target not in ORDER_STATUS_TRANSITIONS[current]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change order status from {current.value} to {target.value}",
            )

        if target in (OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED) and not order.order_type.is_delivery:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only delivery orders can be sent out",
            )

        try:
            if target == OrderStatus.CANCELLED:
                for item in order.items:
                    await self.medication_crud.restock_online(item.medication_id, item.quantity)
            order.status = target
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Status update failed for order {order_id}: {str(e)}")
            raise

        order = await self.get_order(order_id)
        logger.info(
            f"Order {order.confirmation_code} moved {current.value} -> {target.value} by admin {admin.id}"
        )

        if order.customer_email:
            background_tasks.add_task(
                self.notification_service.notify,
                email=order.customer_email,
                subject=f"Order {order.confirmation_code} is now {target.value.replace('_', ' ')}",
                message=(
                    f"Hello {order.customer_name},\n\n"
                    f"Your order {order.confirmation_code} status changed to "
                    f"{target.value.replace('_', ' ')}."
                ),
            )

        return order
