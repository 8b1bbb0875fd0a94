import uuid

from sqlalchemy import Numeric, ForeignKey, DateTime, String, Boolean, Integer, Text, func, Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column
from decimal import Decimal
from datetime import datetime
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base
from app.db.enums import OrderStatus, OrderType


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Registered customer, if any. Guests are identified by contact details.
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    pharmacy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("pharmacies.id"),
        index=True,
        nullable=False,
    )

    order_type: Mapped[OrderType] = mapped_column(
        Enum(
            OrderType,
            name="order_type_enum",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        default=OrderType.ONLINE,
        nullable=False,
    )

    is_guest_order: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    confirmation_code: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        index=True,
        nullable=False,
    )

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )

    total_number_of_items: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(
            OrderStatus,
            name="order_status_enum",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    customer = relationship("User", back_populates="orders")
    pharmacy = relationship("Pharmacy", back_populates="orders")

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def pharmacy_name(self) -> str | None:
        return self.pharmacy.name if self.pharmacy is not None else None

    @property
    def item_count(self) -> int:
        return len(self.items)
