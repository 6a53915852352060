# clinic/services/billing_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from clinic.core.exceptions import ValidationError
from clinic.models.payment import PaymentRecordStatus
from clinic.models.treatment import PaymentStatus
from clinic.schemas.patient import PatientBalance, PatientRead, PatientResponse
from clinic.schemas.payment import PaymentCreate, PaymentRead
from clinic.schemas.treatment import TreatmentRead
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore
from clinic.utils.datetime_utils import utc_today
from clinic.utils.money import ZERO, money_sum, to_money

logger = logging.getLogger(__name__)

PAYMENT_TOLERANCE = Decimal("0.01")


def classify(total_paid: Decimal, total_cost: Decimal) -> PaymentStatus:
    """
    pending when nothing was paid, partial while below the total,
    paid otherwise. Rules are checked in that order.
    """
    if total_paid == 0:
        return PaymentStatus.PENDING
    if total_paid < total_cost:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PAID


def total_cost(treatments: Iterable[TreatmentRead]) -> Decimal:
    return money_sum(t.total_cost for t in treatments)


def total_paid(treatments: Iterable[TreatmentRead]) -> Decimal:
    return money_sum(t.amount_paid for t in treatments)


def total_owed(treatments: Iterable[TreatmentRead]) -> Decimal:
    """Sum of per-treatment outstanding balances; never negative."""
    return money_sum(max(t.total_cost - t.amount_paid, ZERO) for t in treatments)


class BillingService:
    """
    Payments against treatments and the patient balances derived from them.
    """

    def __init__(self, state: ClinicState, store: ClinicStore, *, tolerance: Decimal = PAYMENT_TOLERANCE):
        self.state = state
        self.store = store
        self.tolerance = to_money(tolerance)

    def apply_payment(
        self,
        treatment_id: UUID,
        payload: PaymentCreate,
        *,
        created_by: str,
    ) -> tuple[TreatmentRead, PaymentRead]:
        """
        Apply a payment to a treatment.

        The paid amount is capped at the treatment's total cost; the payment
        row records what was actually applied. Raises ValidationError for a
        non-positive amount or a treatment already paid in full, NotFoundError
        for an unknown treatment and BackendError when the write fails.
        """
        treatment = self.state.get_treatment(treatment_id)
        amount = to_money(payload.amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero.")

        outstanding = treatment.total_cost - treatment.amount_paid
        if outstanding < self.tolerance:
            raise ValidationError("Treatment is already paid in full.", code="already_paid")

        new_paid = min(treatment.amount_paid + amount, treatment.total_cost)
        applied = new_paid - treatment.amount_paid
        surplus = amount - applied
        status = classify(new_paid, treatment.total_cost)

        notes = payload.notes
        if surplus > 0:
            surplus_note = f"Overpayment of {surplus} not applied."
            notes = f"{notes} {surplus_note}" if notes else surplus_note
            logger.warning(
                "Payment on treatment %s exceeded balance: received=%s applied=%s",
                treatment_id,
                amount,
                applied,
            )

        with self.store.transaction():
            updated = self.store.update_treatment(
                treatment_id,
                amount_paid=new_paid,
                payment_status=status,
            )
            payment = self.store.create_payment(
                treatment_id=treatment_id,
                patient_id=treatment.patient_id,
                amount=applied,
                payment_date=payload.payment_date or utc_today(),
                method=payload.method,
                status=PaymentRecordStatus.COMPLETED,
                notes=notes,
                created_by=created_by,
            )

        self.state.apply_treatment(updated)
        self.state.apply_payment(payment)
        logger.info(
            "Payment %s applied to treatment %s: %s via %s, status %s",
            payment.id,
            treatment_id,
            applied,
            payload.method.value,
            status.value,
        )
        return updated, payment

    def list_payments(
        self,
        *,
        patient_id: UUID | None = None,
        treatment_id: UUID | None = None,
    ) -> list[PaymentRead]:
        """Payments, newest first."""
        rows = self.state.payments_for(patient_id=patient_id, treatment_id=treatment_id)
        return sorted(rows, key=lambda p: (p.payment_date, p.created_at), reverse=True)

    def patient_balance(self, patient_id: UUID) -> PatientBalance:
        self.state.get_patient(patient_id)
        treatments = self.state.treatments_for(patient_id)
        cost = total_cost(treatments)
        paid = total_paid(treatments)
        owed = total_owed(treatments)
        return PatientBalance(
            patient_id=patient_id,
            treatment_count=len(treatments),
            total_cost=cost,
            total_paid=paid,
            total_owed=owed,
            has_outstanding_balance=owed > self.tolerance,
            payment_status=classify(paid, cost),
        )

    def patient_response(self, patient: PatientRead) -> PatientResponse:
        owed = total_owed(self.state.treatments_for(patient.id))
        return PatientResponse(
            **patient.model_dump(),
            total_outstanding=owed,
            has_outstanding_balance=owed > self.tolerance,
        )

    def patient_responses(self, patients: Iterable[PatientRead]) -> list[PatientResponse]:
        return [self.patient_response(p) for p in patients]
