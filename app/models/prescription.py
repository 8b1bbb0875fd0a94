import uuid
from datetime import datetime

from sqlalchemy import String, Enum, DateTime, ForeignKey, func, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID
from app.db.enums import PrescriptionStatus

from app.db.base import Base


class Prescription(Base):
    __tablename__ = "prescriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # The patient/owner
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    medication_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Storage key, not a public URL
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)

    filename: Mapped[str] = mapped_column(String(512), nullable=False)

    content_type: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(
            PrescriptionStatus,
            name="prescription_status_enum",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        default=PrescriptionStatus.PENDING,
        nullable=False,
        index=True
    )

    # Review
    pharmacist_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    patient = relationship("User", foreign_keys=[user_id], back_populates="prescriptions")
    reviewer = relationship("User", foreign_keys=[pharmacist_id])
    medication = relationship("Medication")

    @property
    def medication_name(self) -> str | None:
        return self.medication.name if self.medication is not None else None

    @property
    def customer_name(self) -> str | None:
        return self.patient.full_name if self.patient is not None else None

    @property
    def customer_email(self) -> str | None:
        return self.patient.email if self.patient is not None else None

    @property
    def reviewer_name(self) -> str | None:
        return self.reviewer.full_name if self.reviewer is not None else None
