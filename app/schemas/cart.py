from uuid import UUID
from pydantic import BaseModel, Field

from app.db.enums import OrderType
from app.schemas.user import PhoneNumber


class CartItemCreate(BaseModel):
    medication_id: UUID
    quantity: int = Field(1, gt=0)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0)


class CartLine(BaseModel):
    medication_id: UUID
    name: str
    price: float
    quantity: int
    requires_prescription: bool
    subtotal: float


class CartRead(BaseModel):
    items: list[CartLine]
    total_items: int
    total_price: float


class CartCheckout(BaseModel):
    pharmacy_id: UUID
    order_type: OrderType = OrderType.ONLINE
    customer_phone: PhoneNumber | None = None
    customer_notes: str | None = Field(None, max_length=2000)
