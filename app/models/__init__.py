from app.models.pharmacy import Pharmacy
from app.models.user import User
from app.models.medication import Medication
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.prescription import Prescription
from app.models.cart import CartItem

__all__ = [
    "Pharmacy",
    "User",
    "Medication",
    "Order",
    "OrderItem",
    "Prescription",
    "CartItem",
]
