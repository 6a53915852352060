# clinic/services/patient_service.py
import logging
from typing import Optional
from uuid import UUID

from clinic.core.exceptions import ValidationError
from clinic.schemas.patient import PatientCreate, PatientRead, PatientUpdate
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "age", "gender", "residence")


def create_patient(
    state: ClinicState,
    store: ClinicStore,
    *,
    payload: PatientCreate,
    created_by: str,
) -> PatientRead:
    """Register a new patient."""
    patient = store.create_patient(**payload.model_dump(), created_by=created_by)
    state.apply_patient(patient)
    logger.info("Registered patient %s (%s)", patient.name, patient.id)
    return patient


def update_patient(
    state: ClinicState,
    store: ClinicStore,
    *,
    patient_id: UUID,
    payload: PatientUpdate,
) -> PatientRead:
    """
    Partial update. Only fields present in the payload are written;
    required fields cannot be cleared.
    """
    patient = state.get_patient(patient_id)

    update_data = payload.model_dump(exclude_unset=True)
    for field in REQUIRED_FIELDS:
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be empty.")
    if not update_data:
        return patient

    patient = store.update_patient(patient_id, **update_data)
    state.apply_patient(patient)
    return patient


def delete_patient(state: ClinicState, store: ClinicStore, *, patient_id: UUID) -> None:
    """Delete a patient together with their treatments and payments."""
    patient = state.get_patient(patient_id)
    store.delete_patient(patient_id)
    state.remove_patient(patient_id)
    logger.info("Deleted patient %s (%s)", patient.name, patient_id)


def search_patients(state: ClinicState, search: Optional[str] = None) -> list[PatientRead]:
    """Patients whose name, residence or phone contains the search term, newest first."""
    patients = state.patients
    if not search or not search.strip():
        return patients

    term = search.strip().lower()
    return [
        p
        for p in patients
        if term in p.name.lower() or term in p.residence.lower() or term in (p.phone or "")
    ]
