# clinic/services/clinic_state.py
from __future__ import annotations

import logging
from collections import defaultdict
from uuid import UUID

from clinic.core.exceptions import NotFoundError
from clinic.schemas.inventory import InventoryItemRead, InventoryTransactionRead
from clinic.schemas.patient import PatientRead
from clinic.schemas.payment import PaymentRead
from clinic.schemas.treatment import TreatmentRead
from clinic.services.clinic_store import ClinicStore

logger = logging.getLogger(__name__)


class ClinicState:
    """
    In-session cache of every clinic entity.

    Loaded once per session from the store. The services write to the store
    first and call the matching apply_* method only after the write
    committed, so a failed write never leaves the cache ahead of the database.
    """

    def __init__(
        self,
        *,
        patients: list[PatientRead] | None = None,
        items: list[InventoryItemRead] | None = None,
        transactions: list[InventoryTransactionRead] | None = None,
        treatments: list[TreatmentRead] | None = None,
        payments: list[PaymentRead] | None = None,
    ):
        self._patients: dict[UUID, PatientRead] = {p.id: p for p in patients or []}
        self._items: dict[UUID, InventoryItemRead] = {i.id: i for i in items or []}
        self._treatments: dict[UUID, TreatmentRead] = {t.id: t for t in treatments or []}
        self._payments: list[PaymentRead] = list(payments or [])

        # Ledger per item in append order (oldest first)
        self._ledger: dict[UUID, list[InventoryTransactionRead]] = defaultdict(list)
        for txn in sorted(transactions or [], key=lambda t: t.created_at):
            self._ledger[txn.inventory_item_id].append(txn)

    @classmethod
    def load(cls, store: ClinicStore) -> "ClinicState":
        state = cls(
            patients=store.read_all_patients(),
            items=store.read_all_items(),
            transactions=store.read_all_transactions(),
            treatments=store.read_all_treatments(),
            payments=store.read_all_payments(),
        )
        logger.debug(
            "Loaded clinic state patients=%d items=%d treatments=%d payments=%d",
            len(state._patients),
            len(state._items),
            len(state._treatments),
            len(state._payments),
        )
        return state

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def patients(self) -> list[PatientRead]:
        return sorted(self._patients.values(), key=lambda p: p.created_at, reverse=True)

    @property
    def items(self) -> list[InventoryItemRead]:
        return sorted(self._items.values(), key=lambda i: i.name.lower())

    @property
    def treatments(self) -> list[TreatmentRead]:
        return sorted(
            self._treatments.values(),
            key=lambda t: (t.treatment_date, t.created_at),
            reverse=True,
        )

    @property
    def payments(self) -> list[PaymentRead]:
        return list(self._payments)

    @property
    def transactions(self) -> list[InventoryTransactionRead]:
        rows = [txn for ledger in self._ledger.values() for txn in ledger]
        return sorted(rows, key=lambda t: t.created_at)

    def get_patient(self, patient_id: UUID) -> PatientRead:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise NotFoundError("Patient not found.")
        return patient

    def get_item(self, item_id: UUID) -> InventoryItemRead:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError("Inventory item not found.")
        return item

    def get_treatment(self, treatment_id: UUID) -> TreatmentRead:
        treatment = self._treatments.get(treatment_id)
        if treatment is None:
            raise NotFoundError("Treatment not found.")
        return treatment

    def ledger_for(self, item_id: UUID) -> list[InventoryTransactionRead]:
        """Transactions of one item, oldest first."""
        return list(self._ledger.get(item_id, []))

    def treatments_for(self, patient_id: UUID) -> list[TreatmentRead]:
        return [t for t in self.treatments if t.patient_id == patient_id]

    def payments_for(
        self,
        *,
        patient_id: UUID | None = None,
        treatment_id: UUID | None = None,
    ) -> list[PaymentRead]:
        rows = self._payments
        if patient_id is not None:
            rows = [p for p in rows if p.patient_id == patient_id]
        if treatment_id is not None:
            rows = [p for p in rows if p.treatment_id == treatment_id]
        return list(rows)

    # ------------------------------------------------------------------
    # Writes (called after the store confirmed)
    # ------------------------------------------------------------------

    def apply_patient(self, patient: PatientRead) -> None:
        self._patients[patient.id] = patient

    def remove_patient(self, patient_id: UUID) -> None:
        self._patients.pop(patient_id, None)
        for treatment_id in [t.id for t in self._treatments.values() if t.patient_id == patient_id]:
            del self._treatments[treatment_id]
        self._payments = [p for p in self._payments if p.patient_id != patient_id]

    def apply_item(self, item: InventoryItemRead) -> None:
        self._items[item.id] = item

    def remove_item(self, item_id: UUID) -> None:
        self._items.pop(item_id, None)
        self._ledger.pop(item_id, None)

    def apply_transaction(self, txn: InventoryTransactionRead) -> None:
        """
        Append a ledger row and move the owning item's cached stock to its balance.
        """
        self._ledger[txn.inventory_item_id].append(txn)
        item = self._items.get(txn.inventory_item_id)
        if item is not None:
            self._items[item.id] = item.model_copy(update={"current_stock": txn.balance})

    def apply_treatment(self, treatment: TreatmentRead) -> None:
        self._treatments[treatment.id] = treatment

    def apply_payment(self, payment: PaymentRead) -> None:
        self._payments.append(payment)
