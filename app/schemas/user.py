import uuid
import re
from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr, ConfigDict, AfterValidator, StringConstraints
from app.db.enums import UserRole

# International phone numbers: +[CountryCode][Number]
PHONE_REGEX = r"^\+?[1-9]\d{6,15}$"


def normalize_phone_number(v: str) -> str:
    """Strips spaces, dashes, dots and parentheses before validating."""
    cleaned = re.sub(r"[\s\-().]", "", v)
    if not re.match(PHONE_REGEX, cleaned):
        raise ValueError("Invalid phone number format")
    return cleaned

PhoneNumber = Annotated[str, AfterValidator(normalize_phone_number)]


def validate_password_strength(v: str) -> str:
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain a number")
    if not re.search(r"[^A-Za-z0-9]", v):
        raise ValueError("Password must contain a special character")
    return v

StrongPassword = Annotated[str, Field(min_length=8), AfterValidator(validate_password_strength)]

# Whitespace is stripped before the length check
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    message: str


# REGISTRATION & VERIFICATION
class RegisterRequest(BaseModel):
    email: EmailStr
    password: StrongPassword
    full_name: PersonName
    phone_number: PhoneNumber | None = Field(None, json_schema_extra={"example": "+234800000000"})


class RegisterResponse(BaseModel):
    message: str
    email: EmailStr


class ResendVerificationRequest(BaseModel):
    email: EmailStr


# Login Request
class LoginRequest(BaseModel):
    """Schema for user login credentials."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, max_length=100)


# Change Password Request
class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: StrongPassword


# USER RESPONSE (API OUTPUT)
class UserRead(BaseSchema):
    id: uuid.UUID
    full_name: str
    email: EmailStr
    phone_number: str | None = None
    role: UserRole
    pharmacy_id: uuid.UUID | None = None
    is_active: bool
    is_email_verified: bool
    created_at: datetime


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class RoleAssignmentRequest(BaseModel):
    role: UserRole
    pharmacy_id: uuid.UUID | None = None


# GUEST CHECKOUT
class GuestInitiateRequest(BaseModel):
    name: PersonName
    phone: PhoneNumber
    email: EmailStr | None = None


class GuestData(BaseModel):
    guest_id: str
    name: str
    phone: str
    email: EmailStr | None = None


class GuestInitiateResponse(BaseModel):
    message: str
    guest_token: str
    guest: GuestData
