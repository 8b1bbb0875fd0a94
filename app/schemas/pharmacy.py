from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.user import PhoneNumber


class PharmacyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: str | None = None
    contact_phone: PhoneNumber | None = None
    contact_email: EmailStr | None = None


class PharmacyPublic(BaseModel):
    """What customers and guests may see."""
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class PharmacyRead(PharmacyPublic):
    address: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
