# clinic/api/v1/endpoints/payments.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.schemas.payment import PaymentRead

router = APIRouter()


@router.get("", response_model=list[PaymentRead])
def list_payments(
    patient_id: Optional[UUID] = Query(None),
    treatment_id: Optional[UUID] = Query(None),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[PaymentRead]:
    """
    Payments, newest first, optionally filtered by patient and/or treatment.
    """
    if patient_id is not None:
        ctx.state.get_patient(patient_id)
    if treatment_id is not None:
        ctx.state.get_treatment(treatment_id)
    return ctx.billing.list_payments(patient_id=patient_id, treatment_id=treatment_id)
