from uuid import UUID
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.db.enums import OrderStatus, OrderType
from app.schemas.user import PersonName, PhoneNumber


# REQUESTS
class OrderItemCreate(BaseModel):
    medication_id: UUID
    quantity: int = Field(..., gt=0)
    # Informational only; the medication's current price is charged
    price: Decimal | None = Field(None, ge=0)


class OrderCreate(BaseModel):
    customer_name: PersonName
    customer_phone: PhoneNumber
    customer_email: EmailStr | None = None
    customer_notes: str | None = Field(None, max_length=2000)
    pharmacy_id: UUID
    order_type: OrderType = OrderType.ONLINE
    items: list[OrderItemCreate] = Field(..., min_length=1)


class FindOrdersRequest(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: PhoneNumber
    customer_email: EmailStr | None = None


class OrderStatusUpdate(BaseModel):
    status: str | None = None


# RESPONSES
class OrderItemRead(BaseModel):
    id: UUID
    medication_id: UUID
    medication_name: str | None = None
    quantity: int
    price_per_unit: float

    model_config = ConfigDict(from_attributes=True)


class OrderSummary(BaseModel):
    id: UUID
    confirmation_code: str
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    pharmacy_id: UUID
    pharmacy_name: str | None = None
    order_type: OrderType
    is_guest_order: bool
    status: OrderStatus
    total_price: float
    total_number_of_items: int
    item_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderRead(OrderSummary):
    customer_id: UUID | None = None
    customer_notes: str | None = None
    updated_at: datetime
    items: list[OrderItemRead] = []


class OrderCreateResponse(BaseModel):
    message: str
    order: OrderRead
    confirmation_code: str
