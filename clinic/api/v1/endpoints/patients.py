# clinic/api/v1/endpoints/patients.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import StreamingResponse

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.schemas.patient import PatientBalance, PatientCreate, PatientResponse, PatientUpdate
from clinic.schemas.treatment import TreatmentCreate, TreatmentResponse
from clinic.services import patient_service, treatment_service
from clinic.utils.datetime_utils import utc_today
from clinic.utils.statement_pdf import generate_statement_pdf

router = APIRouter()


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_patient(
    payload: PatientCreate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PatientResponse:
    """
    Register a patient. A new patient has no treatments and therefore
    no outstanding balance.
    """
    patient = patient_service.create_patient(
        ctx.state, ctx.store, payload=payload, created_by=ctx.user_id
    )
    return ctx.billing.patient_response(patient)


@router.get("", response_model=list[PatientResponse])
def list_patients(
    search: Optional[str] = Query(None, description="Search by name, residence or phone (case-insensitive)"),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[PatientResponse]:
    """
    List patients, newest first.
    """
    patients = patient_service.search_patients(ctx.state, search)
    return ctx.billing.patient_responses(patients)


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(
    patient_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PatientResponse:
    return ctx.billing.patient_response(ctx.state.get_patient(patient_id))


@router.patch("/{patient_id}", response_model=PatientResponse)
def update_patient(
    patient_id: UUID,
    payload: PatientUpdate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PatientResponse:
    patient = patient_service.update_patient(
        ctx.state, ctx.store, patient_id=patient_id, payload=payload
    )
    return ctx.billing.patient_response(patient)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> Response:
    """
    Delete a patient with all of their treatments and payments.
    """
    patient_service.delete_patient(ctx.state, ctx.store, patient_id=patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{patient_id}/balance", response_model=PatientBalance)
def get_patient_balance(
    patient_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PatientBalance:
    return ctx.billing.patient_balance(patient_id)


@router.get("/{patient_id}/treatments", response_model=list[TreatmentResponse])
def list_patient_treatments(
    patient_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[TreatmentResponse]:
    patient = ctx.state.get_patient(patient_id)
    return [
        treatment_service.to_response(t, patient.name)
        for t in ctx.treatments.list_treatments(patient_id)
    ]


@router.post(
    "/{patient_id}/treatments",
    response_model=TreatmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_patient_treatment(
    patient_id: UUID,
    payload: TreatmentCreate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> TreatmentResponse:
    """
    Record a treatment. Line items are priced from inventory at this moment
    and prescribed medications are deducted from stock.
    """
    treatment = ctx.treatments.create_treatment(patient_id, payload, created_by=ctx.user_id)
    return treatment_service.to_response(treatment, ctx.state.get_patient(patient_id).name)


@router.get("/{patient_id}/statement.pdf")
def download_patient_statement(
    patient_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
):
    """
    Billing statement for one patient as a PDF download.
    """
    patient = ctx.state.get_patient(patient_id)
    settings = ctx.settings
    pdf_buffer = generate_statement_pdf(
        patient,
        ctx.state.treatments_for(patient_id),
        ctx.billing.list_payments(patient_id=patient_id),
        ctx.billing.patient_balance(patient_id),
        currency_symbol=settings.currency_symbol,
        clinic_name=settings.clinic_name,
        clinic_address=settings.clinic_address,
        clinic_phone=settings.clinic_phone,
        clinic_email=settings.clinic_email,
    )

    filename = f"statement_{patient_id.hex[:8]}_{utc_today().isoformat()}.pdf"
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
