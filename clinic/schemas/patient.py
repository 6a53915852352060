# clinic/schemas/patient.py
import re
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from clinic.models.patient import Gender
from clinic.models.treatment import PaymentStatus
from clinic.schemas.common import UTCDateTime


def normalize_phone(phone: str) -> str:
    """Normalize phone number: remove spaces, dashes, parentheses, keep + and digits."""
    if not phone:
        return ""
    # Remove common separators but keep + at start
    normalized = re.sub(r"[\s\-\(\)]", "", phone)
    return normalized


def validate_phone_digits(phone: str) -> bool:
    """Check if phone has 8-15 digits after normalization."""
    normalized = normalize_phone(phone)
    if normalized.startswith("+"):
        digits = normalized[1:]
    else:
        digits = normalized
    digit_count = sum(c.isdigit() for c in digits)
    return 8 <= digit_count <= 15


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if not validate_phone_digits(v):
        raise ValueError("Phone must be 8-15 digits (remove spaces or symbols)")
    return normalize_phone(v)


class PatientCreate(BaseModel):
    name: str
    age: int = Field(ge=0, le=150)
    gender: Gender
    residence: str
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 200:
            raise ValueError("Name must be 1-200 characters")
        return v

    @field_validator("residence")
    @classmethod
    def validate_residence(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 255:
            raise ValueError("Residence must be 1-255 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)

    @field_validator("email", "address", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PatientUpdate(BaseModel):
    """Partial update; only fields present in the payload are written."""

    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[Gender] = None
    residence: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    @field_validator("name", "residence")
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)

    @field_validator("email", "address", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PatientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    age: int
    gender: Gender
    residence: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    created_by: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


class PatientBalance(BaseModel):
    """Billing position of one patient, derived from their treatments."""

    patient_id: UUID
    treatment_count: int
    total_cost: Decimal
    total_paid: Decimal
    total_owed: Decimal
    has_outstanding_balance: bool
    payment_status: PaymentStatus


class PatientResponse(PatientRead):
    total_outstanding: Decimal = Decimal("0.00")
    has_outstanding_balance: bool = False
