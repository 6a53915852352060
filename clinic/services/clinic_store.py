# clinic/services/clinic_store.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from clinic.core.exceptions import BackendError, NotFoundError
from clinic.models.inventory import InventoryItem, InventoryTransaction
from clinic.models.patient import Patient
from clinic.models.payment import Payment
from clinic.models.treatment import Treatment, TreatmentMedication, TreatmentService
from clinic.schemas.inventory import InventoryItemRead, InventoryTransactionRead
from clinic.schemas.patient import PatientRead
from clinic.schemas.payment import PaymentRead
from clinic.schemas.treatment import TreatmentRead

logger = logging.getLogger(__name__)


class ClinicStore:
    """
    Write-through adapter over the database.

    Every method returns detached pydantic records, never ORM objects, so
    callers cannot mutate persisted rows behind the store's back.

    Writes only flush; they become durable when the surrounding
    `transaction()` block commits. Outside such a block each write commits
    on its own.
    """

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator["ClinicStore", None, None]:
        """
        Group several writes into one commit.

        Any SQLAlchemyError rolls the whole group back and surfaces as
        BackendError; domain errors raised inside the block also roll back
        and propagate unchanged.
        """
        if self._depth:
            # Nested use joins the outer unit of work
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Store write failed; transaction rolled back")
            raise BackendError() from exc
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._depth = 0

    @contextmanager
    def _write(self) -> Generator[None, None, None]:
        if self._depth:
            yield
            return
        with self.transaction():
            yield

    # ------------------------------------------------------------------
    # Bulk reads (session start)
    # ------------------------------------------------------------------

    def read_all_patients(self) -> list[PatientRead]:
        rows = self.db.query(Patient).order_by(Patient.created_at.desc()).all()
        return [PatientRead.model_validate(r) for r in rows]

    def read_all_items(self) -> list[InventoryItemRead]:
        rows = self.db.query(InventoryItem).order_by(InventoryItem.name.asc()).all()
        return [InventoryItemRead.model_validate(r) for r in rows]

    def read_all_transactions(self) -> list[InventoryTransactionRead]:
        rows = (
            self.db.query(InventoryTransaction)
            .order_by(InventoryTransaction.created_at.asc(), InventoryTransaction.id.asc())
            .all()
        )
        return [InventoryTransactionRead.model_validate(r) for r in rows]

    def read_all_treatments(self) -> list[TreatmentRead]:
        rows = (
            self.db.query(Treatment)
            .options(selectinload(Treatment.medications), selectinload(Treatment.services))
            .order_by(Treatment.treatment_date.desc(), Treatment.created_at.desc())
            .all()
        )
        return [TreatmentRead.model_validate(r) for r in rows]

    def read_all_payments(self) -> list[PaymentRead]:
        rows = self.db.query(Payment).order_by(Payment.created_at.asc()).all()
        return [PaymentRead.model_validate(r) for r in rows]

    def read_transactions(self, item_id: UUID) -> list[InventoryTransactionRead]:
        rows = (
            self.db.query(InventoryTransaction)
            .filter(InventoryTransaction.inventory_item_id == item_id)
            .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
            .all()
        )
        return [InventoryTransactionRead.model_validate(r) for r in rows]

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def _get_item_row(self, item_id: UUID) -> InventoryItem:
        item = self.db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
        if not item:
            raise NotFoundError("Inventory item not found.")
        return item

    def create_item(self, **fields: Any) -> InventoryItemRead:
        with self._write():
            item = InventoryItem(**fields)
            self.db.add(item)
            self.db.flush()
            return InventoryItemRead.model_validate(item)

    def update_item(self, item_id: UUID, **fields: Any) -> InventoryItemRead:
        with self._write():
            item = self._get_item_row(item_id)
            for field, value in fields.items():
                setattr(item, field, value)
            self.db.flush()
            return InventoryItemRead.model_validate(item)

    def delete_item(self, item_id: UUID) -> None:
        with self._write():
            item = self._get_item_row(item_id)
            self.db.delete(item)
            self.db.flush()

    def update_item_stock(self, item_id: UUID, new_balance: int) -> InventoryItemRead:
        return self.update_item(item_id, current_stock=new_balance)

    def create_transaction(self, **fields: Any) -> InventoryTransactionRead:
        with self._write():
            txn = InventoryTransaction(**fields)
            self.db.add(txn)
            self.db.flush()
            return InventoryTransactionRead.model_validate(txn)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def _get_patient_row(self, patient_id: UUID) -> Patient:
        patient = self.db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            raise NotFoundError("Patient not found.")
        return patient

    def create_patient(self, **fields: Any) -> PatientRead:
        with self._write():
            patient = Patient(**fields)
            self.db.add(patient)
            self.db.flush()
            return PatientRead.model_validate(patient)

    def update_patient(self, patient_id: UUID, **fields: Any) -> PatientRead:
        with self._write():
            patient = self._get_patient_row(patient_id)
            for field, value in fields.items():
                setattr(patient, field, value)
            self.db.flush()
            return PatientRead.model_validate(patient)

    def delete_patient(self, patient_id: UUID) -> None:
        with self._write():
            patient = self._get_patient_row(patient_id)
            self.db.delete(patient)
            self.db.flush()

    # ------------------------------------------------------------------
    # Treatments & payments
    # ------------------------------------------------------------------

    def create_treatment(
        self,
        *,
        medications: list[dict[str, Any]],
        services: list[dict[str, Any]],
        **fields: Any,
    ) -> TreatmentRead:
        with self._write():
            treatment = Treatment(**fields)
            treatment.medications = [
                TreatmentMedication(position=pos, **line) for pos, line in enumerate(medications)
            ]
            treatment.services = [
                TreatmentService(position=pos, **line) for pos, line in enumerate(services)
            ]
            self.db.add(treatment)
            self.db.flush()
            return TreatmentRead.model_validate(treatment)

    def update_treatment(self, treatment_id: UUID, **fields: Any) -> TreatmentRead:
        with self._write():
            treatment = (
                self.db.query(Treatment)
                .options(selectinload(Treatment.medications), selectinload(Treatment.services))
                .filter(Treatment.id == treatment_id)
                .first()
            )
            if not treatment:
                raise NotFoundError("Treatment not found.")
            for field, value in fields.items():
                setattr(treatment, field, value)
            self.db.flush()
            return TreatmentRead.model_validate(treatment)

    def create_payment(self, **fields: Any) -> PaymentRead:
        with self._write():
            payment = Payment(**fields)
            self.db.add(payment)
            self.db.flush()
            return PaymentRead.model_validate(payment)
