# clinic/schemas/treatment.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from clinic.models.inventory import MAX_STOCK_QUANTITY
from clinic.models.treatment import PaymentStatus
from clinic.schemas.common import UTCDateTime

OptStr500 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=500),
    ]
    | None
)


class MedicationLineCreate(BaseModel):
    """
    One prescribed medication. Name and unit cost are taken from the
    inventory item at prescribing time, never from the client.
    """

    inventory_item_id: UUID
    quantity: int = Field(le=MAX_STOCK_QUANTITY)
    dosage: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    instructions: OptStr500 = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("instructions", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ServiceLineCreate(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    description: OptStr500 = None
    cost: Decimal = Field(ge=0, max_digits=12, decimal_places=2)

    model_config = ConfigDict(extra="forbid")

    @field_validator("description", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TreatmentCreate(BaseModel):
    diagnosis: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
    notes: Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)] | None = None
    treatment_date: date | None = None
    due_date: date | None = None
    medications: list[MedicationLineCreate] = Field(default_factory=list)
    services: list[ServiceLineCreate] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class TreatmentMedicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    inventory_item_id: UUID | None = None
    name: str
    quantity: int
    dosage: str
    instructions: str | None = None
    unit_cost: Decimal
    total_cost: Decimal


class TreatmentServiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    cost: Decimal


class TreatmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    diagnosis: str
    notes: str | None = None
    treatment_date: date
    due_date: date | None = None
    medications: list[TreatmentMedicationRead]
    services: list[TreatmentServiceRead]
    total_cost: Decimal
    amount_paid: Decimal
    payment_status: PaymentStatus
    created_by: str
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @property
    def outstanding(self) -> Decimal:
        return self.total_cost - self.amount_paid


class TreatmentResponse(TreatmentRead):
    outstanding_balance: Decimal = Decimal("0.00")
    patient_name: str | None = None
