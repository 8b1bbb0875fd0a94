from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, model_validator

from app.schemas.pharmacy import PharmacyPublic, PharmacyRead


class MedicationPublicRead(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    category: str | None = None
    dosage: str | None = None
    price: float
    stock_quantity: int
    online_stock: int
    in_person_stock: int
    requires_prescription: bool
    image_url: str | None = None
    pharmacy_id: UUID
    pharmacy: PharmacyPublic | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationRead(MedicationPublicRead):
    """Staff view, including pharmacy contact details."""
    pharmacy: PharmacyRead | None = None
    updated_at: datetime


class MedicationListResponse(BaseModel):
    medications: list[SerializeAsAny[MedicationPublicRead]]
    total_count: int
    current_page: int
    total_pages: int


class PrescriptionCheckResponse(BaseModel):
    medication_id: UUID
    requires_prescription: bool


class StockUpdateRequest(BaseModel):
    online_stock: int | None = Field(None, ge=0)
    in_person_stock: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def at_least_one(self):
        if self.online_stock is None and self.in_person_stock is None:
            raise ValueError("Provide online_stock and/or in_person_stock")
        return self
