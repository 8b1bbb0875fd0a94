from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.db.enums import PrescriptionStatus


class PrescriptionRead(BaseModel):
    id: UUID
    user_id: UUID
    medication_id: UUID
    medication_name: str | None = None
    filename: str
    content_type: str
    status: PrescriptionStatus
    notes: str | None = None
    pharmacist_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrescriptionAdminRead(PrescriptionRead):
    customer_name: str | None = None
    customer_email: str | None = None
    reviewer_name: str | None = None


class PrescriptionStatusUpdate(BaseModel):
    status: PrescriptionStatus
    notes: str | None = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def must_be_decision(cls, v: PrescriptionStatus) -> PrescriptionStatus:
        if v == PrescriptionStatus.PENDING:
            raise ValueError("Status must be 'approved' or 'rejected'")
        return v
