import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Medication(Base):
    __tablename__ = "medications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )  # e.g. "Pain Relief", "Antibiotics"

    dosage: Mapped[str | None] = mapped_column(String(100), nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # stock_quantity is always online_stock + in_person_stock
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    online_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    in_person_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    requires_prescription: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    image_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    pharmacy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("pharmacies.id"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    pharmacy = relationship("Pharmacy", back_populates="medications")
    cart_items = relationship(
        "CartItem", back_populates="medication", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_medications_price_positive"),
        CheckConstraint("online_stock >= 0", name="ck_medications_online_stock"),
        CheckConstraint("in_person_stock >= 0", name="ck_medications_in_person_stock"),
        CheckConstraint("stock_quantity >= 0", name="ck_medications_stock_quantity"),
    )
