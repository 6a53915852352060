# clinic/schemas/payment.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from clinic.models.payment import PaymentMethod, PaymentRecordStatus
from clinic.schemas.common import UTCDateTime
from clinic.schemas.treatment import TreatmentResponse


class PaymentCreate(BaseModel):
    """
    A payment against one treatment. The amount is checked by the billing
    service (must be > 0) and capped at the outstanding balance.
    """

    amount: Decimal = Field(max_digits=12, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    payment_date: date | None = None
    notes: Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)] | None = None

    model_config = ConfigDict(extra="forbid")


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    treatment_id: UUID
    patient_id: UUID
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    status: PaymentRecordStatus
    notes: str | None = None
    created_by: str
    created_at: UTCDateTime


class PaymentResult(BaseModel):
    treatment: TreatmentResponse
    payment: PaymentRead
