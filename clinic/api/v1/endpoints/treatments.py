# clinic/api/v1/endpoints/treatments.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.schemas.payment import PaymentCreate, PaymentResult
from clinic.schemas.treatment import TreatmentResponse
from clinic.services import treatment_service

router = APIRouter()


def _with_patient_name(ctx: ClinicContext, treatment) -> TreatmentResponse:
    patient = ctx.state.get_patient(treatment.patient_id)
    return treatment_service.to_response(treatment, patient.name)


@router.get("", response_model=list[TreatmentResponse])
def list_treatments(
    patient_id: Optional[UUID] = Query(None, description="Only treatments of this patient"),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[TreatmentResponse]:
    """
    Treatments, most recent treatment_date first.
    """
    return [_with_patient_name(ctx, t) for t in ctx.treatments.list_treatments(patient_id)]


@router.get("/{treatment_id}", response_model=TreatmentResponse)
def get_treatment(
    treatment_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> TreatmentResponse:
    return _with_patient_name(ctx, ctx.state.get_treatment(treatment_id))


@router.post(
    "/{treatment_id}/payments",
    response_model=PaymentResult,
    status_code=status.HTTP_201_CREATED,
)
def create_treatment_payment(
    treatment_id: UUID,
    payload: PaymentCreate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PaymentResult:
    """
    Apply a payment to a treatment.

    The amount applied is capped at the outstanding balance; the returned
    payment shows what was actually applied.
    """
    treatment, payment = ctx.billing.apply_payment(treatment_id, payload, created_by=ctx.user_id)
    return PaymentResult(treatment=_with_patient_name(ctx, treatment), payment=payment)
